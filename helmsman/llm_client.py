"""
HELMSMAN LLM Client
Text-completion collaborator used for command correction and interpretation.

Provides a unified ``transform(context, text) -> str`` interface over:
- Groq chat completions (primary, as used by the helm console)
- Optional OpenAI API fallback
- Optional Anthropic Claude API fallback
- A scripted mock backend for tests

Each call is a single stateless completion: the instruction context is sent
as the system message and the command text as the user message, with low
temperature for reproducible corrections. Calls are bounded by a timeout;
a timeout is reported the same way as a network failure.

Usage:
    from helmsman.llm_client import LLMClient

    client = LLMClient(backend="groq", max_tokens=100)
    corrected = await client.transform(CORRECTION_CONTEXT, "hell love 20")
"""

from __future__ import annotations

import asyncio
import logging
import os
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from helmsman.exceptions import (
    MissingCredentialError,
    TransformationError,
    TransformationTimeoutError,
)

logger = logging.getLogger("helmsman.llm_client")


__all__ = [
    "LLMClient",
    "LLMBackend",
    "CompletionResponse",
    "TokenUsage",
    "MockLLMClient",
    "GroqClient",
    "OpenAIClient",
    "AnthropicClient",
    "create_llm_client",
]


# =============================================================================
# Enums and Data Classes
# =============================================================================


class LLMBackend(Enum):
    """Supported completion backends."""
    GROQ = "groq"
    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    MOCK = "mock"


DEFAULT_MODELS = {
    LLMBackend.GROQ: "llama-3.3-70b-versatile",
    LLMBackend.OPENAI: "gpt-4o-mini",
    LLMBackend.ANTHROPIC: "claude-3-haiku-20240307",
    LLMBackend.MOCK: "mock",
}

API_KEY_ENV_VARS = {
    LLMBackend.GROQ: "GROQ_API_KEY",
    LLMBackend.OPENAI: "OPENAI_API_KEY",
    LLMBackend.ANTHROPIC: "ANTHROPIC_API_KEY",
}


@dataclass
class TokenUsage:
    """Token usage for the last request plus session totals."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    session_prompt_tokens: int = 0
    session_completion_tokens: int = 0
    session_total_tokens: int = 0

    def add(self, prompt: int, completion: int):
        """Add token counts from a request."""
        self.prompt_tokens = prompt
        self.completion_tokens = completion
        self.total_tokens = prompt + completion

        self.session_prompt_tokens += prompt
        self.session_completion_tokens += completion
        self.session_total_tokens += prompt + completion

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
            "session_prompt_tokens": self.session_prompt_tokens,
            "session_completion_tokens": self.session_completion_tokens,
            "session_total_tokens": self.session_total_tokens,
        }


@dataclass
class CompletionResponse:
    """A single text completion."""
    content: str
    finish_reason: str = ""
    model: str = ""
    usage: Optional[TokenUsage] = None
    latency_ms: float = 0.0


def build_messages(context: str, text: str) -> List[Dict[str, str]]:
    """Chat messages for one stateless transformation."""
    return [
        {"role": "system", "content": context},
        {"role": "user", "content": text},
    ]


# =============================================================================
# Base Client Interface
# =============================================================================


class BaseLLMClient(ABC):
    """Abstract base class for completion backends."""

    name: str = "base"

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 256,
    ) -> CompletionResponse:
        """Send a chat completion request."""

    async def ensure_ready(self) -> None:
        """Raise MissingCredentialError if the backend cannot be called."""

    async def health_check(self) -> bool:
        """Check if the backend is configured."""
        try:
            await self.ensure_ready()
            return True
        except MissingCredentialError:
            return False


# =============================================================================
# Mock Client (for testing)
# =============================================================================


class MockLLMClient(BaseLLMClient):
    """Scripted completion backend.

    Queued items are returned in order; an Exception instance is raised
    instead of returned.
    """

    name = "mock"

    def __init__(self, responses: Optional[List[Union[str, Exception]]] = None):
        self.responses: List[Union[str, Exception]] = list(responses or [])
        self.requests: List[List[Dict[str, str]]] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def set_response(self, response: Union[str, Exception]):
        """Queue the next response."""
        self.responses.append(response)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 256,
    ) -> CompletionResponse:
        self.requests.append(messages)

        if self.responses:
            item = self.responses.pop(0)
            if isinstance(item, Exception):
                raise item
            content = item
        else:
            content = messages[-1]["content"]

        return CompletionResponse(
            content=content,
            finish_reason="stop",
            model="mock",
            usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )


# =============================================================================
# Groq Client (Primary)
# =============================================================================


class GroqClient(BaseLLMClient):
    """
    Groq chat completions client.

    Requires GROQ_API_KEY unless an api_key is passed explicitly.
    """

    name = "groq"

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMBackend.GROQ]):
        self.api_key = api_key or os.environ.get("GROQ_API_KEY")
        self.model = model
        self._client = None

    async def ensure_ready(self) -> None:
        """Lazily initialize the client."""
        if self._client is not None:
            return

        if not self.api_key:
            raise MissingCredentialError(
                "GROQ_API_KEY not set", service_name="groq", env_var="GROQ_API_KEY"
            )

        from groq import AsyncGroq
        self._client = AsyncGroq(api_key=self.api_key)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 256,
    ) -> CompletionResponse:
        await self.ensure_ready()
        start_time = time.time()

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        latency_ms = (time.time() - start_time) * 1000
        choice = response.choices[0]

        usage = TokenUsage()
        if response.usage:
            usage.add(response.usage.prompt_tokens, response.usage.completion_tokens)

        return CompletionResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "",
            model=self.model,
            usage=usage,
            latency_ms=latency_ms,
        )


# =============================================================================
# OpenAI Client (Fallback)
# =============================================================================


class OpenAIClient(BaseLLMClient):
    """
    OpenAI API client.

    Optional fallback. Requires OPENAI_API_KEY.
    """

    name = "openai"

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMBackend.OPENAI]):
        self.api_key = api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model
        self._client = None

    async def ensure_ready(self) -> None:
        if self._client is not None:
            return

        if not self.api_key:
            raise MissingCredentialError(
                "OPENAI_API_KEY not set", service_name="openai", env_var="OPENAI_API_KEY"
            )

        from openai import AsyncOpenAI
        self._client = AsyncOpenAI(api_key=self.api_key)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 256,
    ) -> CompletionResponse:
        await self.ensure_ready()
        start_time = time.time()

        response = await self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        latency_ms = (time.time() - start_time) * 1000
        choice = response.choices[0]

        usage = TokenUsage()
        if response.usage:
            usage.add(response.usage.prompt_tokens, response.usage.completion_tokens)

        return CompletionResponse(
            content=choice.message.content or "",
            finish_reason=choice.finish_reason or "",
            model=self.model,
            usage=usage,
            latency_ms=latency_ms,
        )


# =============================================================================
# Anthropic Client (Fallback)
# =============================================================================


class AnthropicClient(BaseLLMClient):
    """
    Anthropic Claude API client.

    Optional fallback. Requires ANTHROPIC_API_KEY.
    """

    name = "anthropic"

    def __init__(self, api_key: Optional[str] = None, model: str = DEFAULT_MODELS[LLMBackend.ANTHROPIC]):
        self.api_key = api_key or os.environ.get("ANTHROPIC_API_KEY")
        self.model = model
        self._client = None

    async def ensure_ready(self) -> None:
        if self._client is not None:
            return

        if not self.api_key:
            raise MissingCredentialError(
                "ANTHROPIC_API_KEY not set", service_name="anthropic", env_var="ANTHROPIC_API_KEY"
            )

        from anthropic import AsyncAnthropic
        self._client = AsyncAnthropic(api_key=self.api_key)

    async def complete(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.1,
        max_tokens: int = 256,
    ) -> CompletionResponse:
        await self.ensure_ready()
        start_time = time.time()

        # System prompt travels separately
        system_content = ""
        chat_messages = []
        for msg in messages:
            if msg["role"] == "system":
                system_content = msg["content"]
            else:
                chat_messages.append(msg)

        response = await self._client.messages.create(
            model=self.model,
            max_tokens=max_tokens,
            system=system_content,
            messages=chat_messages,
            temperature=temperature,
        )

        latency_ms = (time.time() - start_time) * 1000

        content = "".join(block.text for block in response.content if block.type == "text")

        usage = TokenUsage()
        usage.add(response.usage.input_tokens, response.usage.output_tokens)

        return CompletionResponse(
            content=content,
            finish_reason=response.stop_reason or "",
            model=self.model,
            usage=usage,
            latency_ms=latency_ms,
        )


# =============================================================================
# Main LLM Client (backend selection and fallback)
# =============================================================================


class LLMClient:
    """
    Unified completion client with ordered backend fallback.

    Implements the TextTransformer protocol. Tracks token usage across the
    session.
    """

    def __init__(
        self,
        backend: Union[LLMBackend, str] = LLMBackend.GROQ,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        fallback_backends: Optional[List[Union[LLMBackend, str]]] = None,
        temperature: float = 0.1,
        max_tokens: int = 256,
        timeout_sec: float = 15.0,
        clients: Optional[Dict[LLMBackend, BaseLLMClient]] = None,
    ):
        """
        Initialize LLM client.

        Args:
            backend: Primary backend to use
            api_key: API key for the primary backend (environment otherwise)
            model: Model name for the primary backend
            fallback_backends: Ordered list of fallback backends
            temperature: Sampling temperature (keep low for reproducibility)
            max_tokens: Completion token budget
            timeout_sec: Per-backend request timeout
            clients: Pre-built backend clients (used by tests)
        """
        if isinstance(backend, str):
            backend = LLMBackend(backend)

        self.backend = backend
        self.api_key = api_key
        self.model = model
        self.fallback_backends = [
            LLMBackend(b) if isinstance(b, str) else b for b in (fallback_backends or [])
        ]
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout_sec = timeout_sec

        self.token_usage = TokenUsage()
        self._clients: Dict[LLMBackend, BaseLLMClient] = dict(clients or {})

        logger.info(f"LLM client initialized with backend: {backend.value}")

    def _get_client(self, backend: LLMBackend) -> BaseLLMClient:
        """Get or create client for backend."""
        if backend in self._clients:
            return self._clients[backend]

        # Explicit key and model only apply to the primary backend
        primary = backend == self.backend
        api_key = self.api_key if primary else None
        model = (self.model if primary else None) or DEFAULT_MODELS[backend]

        if backend == LLMBackend.GROQ:
            client = GroqClient(api_key=api_key, model=model)
        elif backend == LLMBackend.OPENAI:
            client = OpenAIClient(api_key=api_key, model=model)
        elif backend == LLMBackend.ANTHROPIC:
            client = AnthropicClient(api_key=api_key, model=model)
        elif backend == LLMBackend.MOCK:
            client = MockLLMClient()
        else:
            raise ValueError(f"Unknown backend: {backend}")

        self._clients[backend] = client
        return client

    async def complete(self, context: str, text: str) -> CompletionResponse:
        """
        Run one completion, trying the primary backend then the fallbacks.

        Raises:
            MissingCredentialError: No backend is configured with credentials
            TransformationTimeoutError: The last tried backend timed out
            TransformationError: The last tried backend failed
        """
        messages = build_messages(context, text)
        backends_to_try = [self.backend] + self.fallback_backends

        missing: List[MissingCredentialError] = []
        last_error: Optional[TransformationError] = None

        for backend in backends_to_try:
            client = self._get_client(backend)
            try:
                await client.ensure_ready()
            except MissingCredentialError as e:
                logger.warning(f"Backend {backend.value} not configured: {e}")
                missing.append(e)
                continue

            try:
                response = await asyncio.wait_for(
                    client.complete(
                        messages,
                        temperature=self.temperature,
                        max_tokens=self.max_tokens,
                    ),
                    timeout=self.timeout_sec,
                )
            except asyncio.TimeoutError:
                logger.warning(f"Backend {backend.value} timed out after {self.timeout_sec}s")
                last_error = TransformationTimeoutError(
                    "Completion request timed out",
                    backend=backend.value,
                    timeout_seconds=self.timeout_sec,
                )
                continue
            except Exception as e:
                logger.warning(f"Backend {backend.value} failed: {e}")
                last_error = TransformationError(
                    f"Completion request failed: {e}", backend=backend.value
                )
                continue

            if response.usage:
                self.token_usage.add(
                    response.usage.prompt_tokens,
                    response.usage.completion_tokens,
                )

            logger.debug(f"Completion via {backend.value} in {response.latency_ms:.0f}ms")
            return response

        if last_error is None and missing:
            raise missing[0]
        raise last_error or TransformationError("No completion backends configured")

    async def transform(self, context: str, text: str) -> str:
        """TextTransformer entry point: completion content for (context, text)."""
        response = await self.complete(context, text)
        return response.content

    def get_token_usage(self) -> Dict[str, int]:
        return self.token_usage.to_dict()

    def reset_session_tokens(self):
        self.token_usage.session_prompt_tokens = 0
        self.token_usage.session_completion_tokens = 0
        self.token_usage.session_total_tokens = 0


# =============================================================================
# Factory Function
# =============================================================================


def create_llm_client(llm_config: Any, max_tokens: int) -> LLMClient:
    """
    Create an LLM client from an ``LLMConfig``.

    Args:
        llm_config: helmsman.config.LLMConfig instance
        max_tokens: Token budget for this pipeline stage

    Returns:
        Configured LLMClient instance
    """
    return LLMClient(
        backend=llm_config.backend,
        api_key=llm_config.api_key,
        model=llm_config.model,
        fallback_backends=llm_config.fallback_backends,
        temperature=llm_config.temperature,
        max_tokens=max_tokens,
        timeout_sec=llm_config.timeout_sec,
    )
