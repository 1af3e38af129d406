"""
HELMSMAN Configuration System

Pydantic models for every configurable part of the helm pipeline, loaded
from YAML with environment variable overrides.

Discovery order (first existing file wins):
    ./helmsman.yaml
    ~/.helmsman/config.yaml
    /etc/helmsman/config.yaml

Environment overrides use HELMSMAN_<SECTION>_<FIELD>, for example
HELMSMAN_LLM_BACKEND=openai or HELMSMAN_SERVER_PORT=9000. Top-level fields
use HELMSMAN_<FIELD> (HELMSMAN_LOG_LEVEL=DEBUG). List fields are comma
separated; per-component log levels are name=LEVEL pairs
(HELMSMAN_LOG_LEVELS=llm_client=DEBUG,feedback=WARNING).

Credentials default to the conventional variables (GROQ_API_KEY,
OPENAI_API_KEY, ANTHROPIC_API_KEY, ELEVENLABS_API_KEY) when not set here.
"""

import logging
import os
import typing
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from helmsman.exceptions import ConfigurationError

logger = logging.getLogger("helmsman.config")

ENV_PREFIX = "HELMSMAN"

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
RemoteBackend = Literal["groq", "openai", "anthropic", "mock"]


class LLMConfig(BaseModel):
    """Text-transformation backend for correction and interpretation."""

    backend: Literal["groq", "openai", "anthropic", "mock", "grammar"] = "groq"
    model: Optional[str] = None
    api_key: Optional[str] = None
    fallback_backends: List[RemoteBackend] = Field(default_factory=list)
    temperature: float = Field(default=0.1, ge=0.0, le=1.0)
    correction_max_tokens: int = Field(default=100, ge=16, le=4096)
    interpretation_max_tokens: int = Field(default=250, ge=16, le=4096)
    timeout_sec: float = Field(default=15.0, ge=1.0, le=120.0)
    correction_timeout_sec: float = Field(default=30.0, ge=1.0, le=300.0)
    interpretation_timeout_sec: float = Field(default=30.0, ge=1.0, le=300.0)

    @model_validator(mode="after")
    def _no_self_fallback(self) -> "LLMConfig":
        if self.backend in self.fallback_backends:
            raise ValueError(f"Backend '{self.backend}' cannot also be a fallback")
        return self


class TTSConfig(BaseModel):
    """Spoken feedback channels."""

    enabled: bool = True
    primary: Literal["elevenlabs", "none"] = "elevenlabs"
    elevenlabs_api_key: Optional[str] = None
    voice_id: str = "KdK3sZnIcumA6iSIe9KG"
    model_id: str = "eleven_flash_v2_5"
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.75, ge=0.0, le=1.0)
    style: float = Field(default=0.0, ge=0.0, le=1.0)
    use_speaker_boost: bool = True
    sample_rate: Literal[16000, 22050, 24000, 44100] = 22050
    primary_timeout_sec: float = Field(default=15.0, ge=1.0, le=120.0)
    fallback_timeout_sec: float = Field(default=30.0, ge=1.0, le=120.0)
    # On-device voice
    rate: float = Field(default=0.95, ge=0.5, le=2.0)
    pitch: float = Field(default=1.1, ge=0.5, le=2.0)
    volume: float = Field(default=1.0, ge=0.0, le=1.0)
    preferred_voices: List[str] = Field(default_factory=lambda: ["Daniel", "Premium", "Natural"])


class VoiceConfig(BaseModel):
    """Push-to-talk speech capture."""

    enabled: bool = True
    model: str = "base.en"
    device: Literal["auto", "cpu", "cuda"] = "auto"
    compute_type: str = "int8"
    language: str = "en"
    sample_rate: int = Field(default=16000, ge=8000, le=48000)
    max_record_sec: float = Field(default=15.0, ge=1.0, le=120.0)


class SessionConfig(BaseModel):
    """Helm session behaviour."""

    muted: bool = False
    log_size: int = Field(default=5, ge=1, le=100)
    remote_url: Optional[str] = None

    @field_validator("remote_url")
    @classmethod
    def _validate_url(cls, v: Optional[str]) -> Optional[str]:
        if v and not v.startswith(("http://", "https://")):
            raise ValueError("remote_url must start with http:// or https://")
        return v


class ServerConfig(BaseModel):
    """HTTP command server."""

    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)


class HelmsmanConfig(BaseModel):
    """Master configuration."""

    llm: LLMConfig = Field(default_factory=LLMConfig)
    tts: TTSConfig = Field(default_factory=TTSConfig)
    voice: VoiceConfig = Field(default_factory=VoiceConfig)
    session: SessionConfig = Field(default_factory=SessionConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    log_level: LogLevel = "INFO"
    log_file: Optional[str] = None
    # Component logger name under "helmsman" -> level
    log_levels: Dict[str, LogLevel] = Field(default_factory=dict)

    @field_validator("log_levels", mode="before")
    @classmethod
    def _upper_levels(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {name: str(level).upper() for name, level in v.items()}
        return v


def get_config_paths() -> List[Path]:
    """Config file locations, in search order."""
    return [
        Path("./helmsman.yaml"),
        Path.home() / ".helmsman" / "config.yaml",
        Path("/etc/helmsman/config.yaml"),
    ]


def _is_list_field(annotation: Any) -> bool:
    if typing.get_origin(annotation) in (list, List):
        return True
    if typing.get_origin(annotation) is Union:
        return any(_is_list_field(arg) for arg in typing.get_args(annotation))
    return False


def _is_dict_field(annotation: Any) -> bool:
    return typing.get_origin(annotation) in (dict, Dict)


def _parse_pairs(value: str) -> Dict[str, str]:
    pairs = {}
    for item in value.split(","):
        name, sep, level = item.partition("=")
        if sep and name.strip():
            pairs[name.strip()] = level.strip()
    return pairs


def _env_overrides(model: type, prefix: str) -> Dict[str, Any]:
    """Collect PREFIX_FIELD environment values for one model."""
    overrides: Dict[str, Any] = {}
    for name, info in model.model_fields.items():
        if isinstance(info.annotation, type) and issubclass(info.annotation, BaseModel):
            continue
        env_name = f"{prefix}_{name.upper()}"
        value = os.environ.get(env_name)
        if value is None:
            continue
        if _is_dict_field(info.annotation):
            overrides[name] = _parse_pairs(value)
        elif _is_list_field(info.annotation):
            overrides[name] = [item.strip() for item in value.split(",") if item.strip()]
        else:
            overrides[name] = value
        logger.debug(f"Config override from {env_name}")
    return overrides


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    data = dict(data)
    data.update(_env_overrides(HelmsmanConfig, ENV_PREFIX))
    for section, info in HelmsmanConfig.model_fields.items():
        if not (isinstance(info.annotation, type) and issubclass(info.annotation, BaseModel)):
            continue
        overrides = _env_overrides(info.annotation, f"{ENV_PREFIX}_{section.upper()}")
        if overrides:
            section_data = dict(data.get(section) or {})
            section_data.update(overrides)
            data[section] = section_data
    return data


def load_config(path: Optional[Union[str, Path]] = None) -> HelmsmanConfig:
    """
    Load configuration from YAML plus environment overrides.

    Args:
        path: Explicit config file; auto-discovered when None

    Returns:
        Validated HelmsmanConfig (defaults when no file exists)

    Raises:
        ConfigurationError: File missing, unparseable or invalid
    """
    config_file: Optional[Path] = None
    if path is not None:
        config_file = Path(path)
        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                config_file=str(config_file),
            )
    else:
        for candidate in get_config_paths():
            if candidate.exists():
                config_file = candidate
                break

    data: Dict[str, Any] = {}
    if config_file is not None:
        logger.info(f"Loading configuration from {config_file}")
        try:
            with open(config_file, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                config_file=str(config_file),
            ) from e
        if not isinstance(data, dict):
            raise ConfigurationError(
                "Invalid YAML in configuration file: top level must be a mapping",
                config_file=str(config_file),
            )

    data = _apply_env_overrides(data)

    try:
        return HelmsmanConfig.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        key = ".".join(str(part) for part in first["loc"])
        raise ConfigurationError(
            f"Configuration validation failed: {key}: {first['msg']}",
            config_key=key,
            config_file=str(config_file) if config_file else None,
        ) from e
