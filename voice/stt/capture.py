"""
HELMSMAN Voice STT - Push-to-Talk Capture
Microphone capture with faster-whisper transcription.

Audio is recorded between ``start()`` and ``stop()``. On stop the recording
is transcribed off the event loop and each registered callback receives the
transcript. Stopping never cancels a command already being processed.

Raises CaptureUnavailableError when sounddevice or faster-whisper is missing
or no input stream can be opened; typed commands keep working in that case.
A recording that fails to transcribe raises SpeechRecognitionError.
"""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, List, Optional, Union

import numpy as np

from helmsman.exceptions import CaptureUnavailableError, SpeechRecognitionError

# Try to import audio libraries
try:
    import sounddevice as sd
    SOUNDDEVICE_AVAILABLE = True
except (ImportError, OSError):
    SOUNDDEVICE_AVAILABLE = False

# Try to import Whisper
try:
    from faster_whisper import WhisperModel
    WHISPER_AVAILABLE = True
except ImportError:
    WHISPER_AVAILABLE = False

logger = logging.getLogger("helmsman.voice.capture")

TranscriptCallback = Callable[[str], Union[None, Awaitable[None]]]
Transcriber = Callable[[np.ndarray], str]

MIN_RECORDING_SEC = 0.3


class WhisperTranscriber:
    """Lazy-loading faster-whisper model wrapper."""

    def __init__(
        self,
        model_size: str = "base.en",
        device: str = "auto",
        compute_type: str = "int8",
        language: str = "en",
    ):
        self.model_size = model_size
        self.device = device
        self.compute_type = compute_type
        self.language = language
        self._model = None

    def _load(self):
        if not WHISPER_AVAILABLE:
            raise CaptureUnavailableError(
                "faster-whisper not available. Install with: pip install faster-whisper"
            )
        logger.info(f"Loading Whisper model: {self.model_size}")
        self._model = WhisperModel(
            self.model_size, device=self.device, compute_type=self.compute_type
        )

    def __call__(self, audio: np.ndarray) -> str:
        if self._model is None:
            self._load()
        segments, _info = self._model.transcribe(
            audio, language=self.language, beam_size=5, vad_filter=True
        )
        return " ".join(segment.text.strip() for segment in segments).strip()


class PushToTalkCapture:
    """
    Push-to-talk recorder.

    Args:
        transcriber: Audio -> text function (faster-whisper when None)
        sample_rate: Capture rate in Hz (Whisper expects 16 kHz)
        max_record_sec: Recording is truncated beyond this length
    """

    def __init__(
        self,
        transcriber: Optional[Transcriber] = None,
        sample_rate: int = 16000,
        max_record_sec: float = 15.0,
    ):
        self.transcriber = transcriber or WhisperTranscriber()
        self.sample_rate = sample_rate
        self.max_record_sec = max_record_sec

        self._stream = None
        self._chunks: List[np.ndarray] = []
        self._recording = False
        self._callbacks: List[TranscriptCallback] = []

    @property
    def is_recording(self) -> bool:
        return self._recording

    def register_callback(self, callback: TranscriptCallback):
        """Register callback for transcripts."""
        self._callbacks.append(callback)

    def check_available(self) -> None:
        """
        Raises:
            CaptureUnavailableError: Capture cannot work on this host
        """
        if not SOUNDDEVICE_AVAILABLE:
            raise CaptureUnavailableError(
                "Speech capture not supported: sounddevice not installed"
            )
        if isinstance(self.transcriber, WhisperTranscriber) and not WHISPER_AVAILABLE:
            raise CaptureUnavailableError(
                "Speech capture not supported: faster-whisper not installed"
            )
        try:
            sd.query_devices(kind="input")
        except Exception as e:
            raise CaptureUnavailableError(f"Speech capture not supported: no input device ({e})") from e

    def _audio_callback(self, indata, frames, time, status):
        """Callback for audio input stream."""
        if status:
            logger.debug(f"Audio status: {status}")
        self.feed(indata.copy().flatten())

    def feed(self, chunk: np.ndarray) -> None:
        """Append captured samples while recording."""
        if not self._recording:
            return
        captured = sum(len(c) for c in self._chunks)
        remaining = int(self.max_record_sec * self.sample_rate) - captured
        if remaining > 0:
            self._chunks.append(chunk[:remaining])

    def _close_stream(self) -> None:
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except Exception as e:
            logger.warning(f"Error closing input stream: {e}")

    def start(self) -> None:
        """Begin recording."""
        if self._recording:
            return
        self.check_available()
        self._chunks = []
        try:
            self._stream = sd.InputStream(
                samplerate=self.sample_rate,
                channels=1,
                dtype="float32",
                callback=self._audio_callback,
            )
            self._stream.start()
        except Exception as e:
            self._close_stream()
            raise CaptureUnavailableError(
                f"Speech capture not supported: could not open input stream ({e})"
            ) from e
        self._recording = True
        logger.info("Recording started")

    async def stop(self) -> Optional[str]:
        """
        Stop recording, transcribe and notify callbacks.

        Returns:
            The transcript, or None if nothing usable was heard
        """
        if not self._recording:
            return None
        self._recording = False
        self._close_stream()

        chunks, self._chunks = self._chunks, []
        if not chunks:
            return None
        audio = np.concatenate(chunks).astype(np.float32)
        if len(audio) < self.sample_rate * MIN_RECORDING_SEC:
            logger.debug("Recording too short, ignoring")
            return None

        try:
            text = (await asyncio.to_thread(self.transcriber, audio)).strip()
        except CaptureUnavailableError:
            raise
        except Exception as e:
            raise SpeechRecognitionError(f"Transcription failed: {e}") from e
        if not text:
            logger.info("No speech recognized")
            return None

        logger.info(f"Heard: {text}")
        for callback in self._callbacks:
            result = callback(text)
            if inspect.isawaitable(result):
                await result
        return text
