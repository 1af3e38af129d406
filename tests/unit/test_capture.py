"""
Unit tests for HELMSMAN push-to-talk capture.

The microphone stream is replaced with a fake so recording, truncation
and transcript delivery can be tested without audio hardware.
"""

from types import SimpleNamespace

import numpy as np
import pytest

from helmsman.exceptions import CaptureUnavailableError, SpeechRecognitionError
from voice.stt import capture as capture_module
from voice.stt.capture import PushToTalkCapture, WhisperTranscriber


class FakeInputStream:
    """Stands in for sounddevice.InputStream."""

    def __init__(self, samplerate, channels, dtype, callback):
        self.samplerate = samplerate
        self.callback = callback
        self.started = False
        self.closed = False

    def start(self):
        self.started = True

    def stop(self):
        self.started = False

    def close(self):
        self.closed = True


@pytest.fixture
def fake_audio(monkeypatch):
    """Pretend sounddevice is installed with one input device."""
    fake_sd = SimpleNamespace(
        InputStream=FakeInputStream,
        query_devices=lambda kind=None: {"name": "Bridge microphone"},
    )
    monkeypatch.setattr(capture_module, "SOUNDDEVICE_AVAILABLE", True)
    monkeypatch.setattr(capture_module, "sd", fake_sd, raising=False)
    return fake_sd


def speech(seconds: float, sample_rate: int = 16000) -> np.ndarray:
    return np.full(int(seconds * sample_rate), 0.1, dtype=np.float32)


class TestAvailability:
    """Tests for capture availability checks."""

    def test_no_sounddevice(self, monkeypatch):
        monkeypatch.setattr(capture_module, "SOUNDDEVICE_AVAILABLE", False)
        capture = PushToTalkCapture(transcriber=lambda audio: "")

        with pytest.raises(CaptureUnavailableError):
            capture.start()
        assert not capture.is_recording

    def test_no_whisper(self, fake_audio, monkeypatch):
        monkeypatch.setattr(capture_module, "WHISPER_AVAILABLE", False)
        capture = PushToTalkCapture(transcriber=WhisperTranscriber())

        with pytest.raises(CaptureUnavailableError) as exc_info:
            capture.check_available()
        assert "faster-whisper" in exc_info.value.message

    def test_no_input_device(self, fake_audio):
        def no_device(kind=None):
            raise ValueError("No input device matching")

        fake_audio.query_devices = no_device
        capture = PushToTalkCapture(transcriber=lambda audio: "")

        with pytest.raises(CaptureUnavailableError):
            capture.start()

    def test_input_stream_fails_to_open(self, fake_audio):
        def broken_stream(**kwargs):
            raise RuntimeError("Error opening InputStream: Invalid sample rate")

        fake_audio.InputStream = broken_stream
        capture = PushToTalkCapture(transcriber=lambda audio: "")

        with pytest.raises(CaptureUnavailableError) as exc_info:
            capture.start()
        assert "Invalid sample rate" in exc_info.value.message
        assert not capture.is_recording

    def test_transcriber_without_whisper_model(self, monkeypatch):
        monkeypatch.setattr(capture_module, "WHISPER_AVAILABLE", False)
        with pytest.raises(CaptureUnavailableError):
            WhisperTranscriber()(speech(1.0))


class TestRecording:
    """Tests for start/feed/stop."""

    @pytest.mark.asyncio
    async def test_transcript_delivered(self, fake_audio):
        heard = []
        capture = PushToTalkCapture(transcriber=lambda audio: " left 20 degrees rudder ")
        capture.register_callback(heard.append)

        capture.start()
        assert capture.is_recording
        capture.feed(speech(1.0))
        text = await capture.stop()

        assert text == "left 20 degrees rudder"
        assert heard == ["left 20 degrees rudder"]
        assert not capture.is_recording

    @pytest.mark.asyncio
    async def test_async_callback_awaited(self, fake_audio):
        heard = []

        async def on_transcript(text):
            heard.append(text)

        capture = PushToTalkCapture(transcriber=lambda audio: "all stop")
        capture.register_callback(on_transcript)

        capture.start()
        capture.feed(speech(0.5))
        await capture.stop()

        assert heard == ["all stop"]

    @pytest.mark.asyncio
    async def test_short_recording_ignored(self, fake_audio):
        calls = []
        capture = PushToTalkCapture(transcriber=lambda audio: calls.append(audio) or "noise")

        capture.start()
        capture.feed(speech(0.1))

        assert await capture.stop() is None
        assert calls == []

    @pytest.mark.asyncio
    async def test_no_speech_recognized(self, fake_audio):
        heard = []
        capture = PushToTalkCapture(transcriber=lambda audio: "   ")
        capture.register_callback(heard.append)

        capture.start()
        capture.feed(speech(1.0))

        assert await capture.stop() is None
        assert heard == []

    @pytest.mark.asyncio
    async def test_recording_truncated(self, fake_audio):
        lengths = []
        capture = PushToTalkCapture(
            transcriber=lambda audio: lengths.append(len(audio)) or "all stop",
            max_record_sec=1.0,
        )

        capture.start()
        capture.feed(speech(0.75))
        capture.feed(speech(0.75))
        await capture.stop()

        assert lengths == [16000]

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        capture = PushToTalkCapture(transcriber=lambda audio: "all stop")
        assert await capture.stop() is None

    def test_feed_ignored_when_idle(self):
        capture = PushToTalkCapture(transcriber=lambda audio: "all stop")
        capture.feed(speech(1.0))
        assert capture._chunks == []

    @pytest.mark.asyncio
    async def test_transcription_failure(self, fake_audio):
        heard = []

        def broken_transcriber(audio):
            raise RuntimeError("CUDA out of memory")

        capture = PushToTalkCapture(transcriber=broken_transcriber)
        capture.register_callback(heard.append)

        capture.start()
        capture.feed(speech(1.0))

        with pytest.raises(SpeechRecognitionError) as exc_info:
            await capture.stop()
        assert "CUDA" in exc_info.value.message
        assert heard == []
        assert not capture.is_recording
