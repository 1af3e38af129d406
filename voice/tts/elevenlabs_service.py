"""
HELMSMAN Voice TTS - ElevenLabs Channel
Primary spoken feedback channel.

Requests raw 16-bit PCM from the ElevenLabs text-to-speech API and plays it
once through the local output device. Any failure raises AudioChannelError
(or MissingCredentialError before the request) so the feedback dispatcher
can fall back to the on-device voice.
"""

import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from typing import Callable, Optional

import aiohttp
import numpy as np

from helmsman.exceptions import AudioChannelError, MissingCredentialError

# Try to import audio playback
try:
    import sounddevice as sd
    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError):
    SOUNDDEVICE_AVAILABLE = False

logger = logging.getLogger("helmsman.voice.elevenlabs")

API_URL = "https://api.elevenlabs.io/v1/text-to-speech"
API_KEY_ENV_VAR = "ELEVENLABS_API_KEY"
DEFAULT_VOICE_ID = "KdK3sZnIcumA6iSIe9KG"
DEFAULT_MODEL_ID = "eleven_flash_v2_5"


@dataclass
class VoiceSettings:
    """ElevenLabs voice settings."""
    stability: float = 0.5
    similarity_boost: float = 0.75
    style: float = 0.0
    use_speaker_boost: bool = True


def decode_pcm(payload: bytes) -> np.ndarray:
    """
    Decode signed 16-bit little-endian PCM into float32 samples in [-1, 1).

    Raises:
        AudioChannelError: Payload is empty or not whole samples
    """
    if not payload:
        raise AudioChannelError("Empty audio payload", channel="elevenlabs")
    if len(payload) % 2:
        raise AudioChannelError(
            "Audio payload is not 16-bit PCM", channel="elevenlabs", size=len(payload)
        )
    audio = np.frombuffer(payload, dtype="<i2").astype(np.float32)
    return audio / 32768.0


def play_samples(audio: np.ndarray, sample_rate: int) -> None:
    """Blocking playback on the default output device."""
    if not SOUNDDEVICE_AVAILABLE:
        raise AudioChannelError("Audio playback not available (sounddevice not installed)",
                                channel="elevenlabs")
    sd.play(audio, sample_rate)
    sd.wait()


def stop_playback() -> None:
    """Abort any playback started by :func:`play_samples`."""
    if SOUNDDEVICE_AVAILABLE:
        sd.stop()


class ElevenLabsChannel:
    """
    ElevenLabs speech channel.

    Args:
        api_key: API key (ELEVENLABS_API_KEY when None)
        voice_id: ElevenLabs voice
        model_id: Synthesis model
        settings: Voice settings
        sample_rate: PCM rate requested from the API
        session: Shared aiohttp session
        player: Blocking ``(samples, sample_rate)`` playback function
        stopper: Aborts the player's playback from another thread
    """

    name = "elevenlabs"

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        settings: Optional[VoiceSettings] = None,
        sample_rate: int = 22050,
        session: Optional[aiohttp.ClientSession] = None,
        player: Optional[Callable[[np.ndarray, int], None]] = None,
        stopper: Optional[Callable[[], None]] = None,
    ):
        self.api_key = api_key or os.environ.get(API_KEY_ENV_VAR)
        self.voice_id = voice_id
        self.model_id = model_id
        self.settings = settings or VoiceSettings()
        self.sample_rate = sample_rate
        self.player = player or play_samples
        self.stopper = stopper or stop_playback
        self._session = session
        self._owns_session = session is None

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    async def synthesize(self, text: str) -> bytes:
        """Fetch raw PCM for ``text``."""
        if not self.api_key:
            raise MissingCredentialError(
                "Missing ElevenLabs API key", service_name=self.name, env_var=API_KEY_ENV_VAR
            )

        url = f"{API_URL}/{self.voice_id}"
        params = {"output_format": f"pcm_{self.sample_rate}"}
        headers = {
            "xi-api-key": self.api_key,
            "Content-Type": "application/json",
        }
        body = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": asdict(self.settings),
        }

        session = await self._get_session()
        try:
            async with session.post(url, params=params, headers=headers, json=body) as response:
                if response.status != 200:
                    detail = await response.text()
                    raise AudioChannelError(
                        f"ElevenLabs API error: HTTP {response.status}",
                        channel=self.name,
                        status=response.status,
                        body=detail[:200],
                    )
                return await response.read()
        except aiohttp.ClientError as e:
            raise AudioChannelError(f"ElevenLabs request failed: {e}", channel=self.name) from e

    async def speak(self, text: str) -> None:
        """Synthesize and play ``text`` once."""
        payload = await self.synthesize(text)
        audio = decode_pcm(payload)
        logger.debug(f"Playing {len(audio) / self.sample_rate:.2f}s of ElevenLabs audio")
        try:
            await asyncio.to_thread(self.player, audio, self.sample_rate)
        except asyncio.CancelledError:
            # The worker thread cannot be cancelled; stop the device instead
            logger.debug("Playback cancelled, stopping output device")
            self.stopper()
            raise
        except AudioChannelError:
            raise
        except Exception as e:
            raise AudioChannelError(f"Audio playback error: {e}", channel=self.name) from e
