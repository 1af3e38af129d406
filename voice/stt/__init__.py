"""
HELMSMAN Voice STT

Push-to-talk speech capture using Whisper.
"""

from .capture import PushToTalkCapture, WhisperTranscriber

__all__ = [
    "PushToTalkCapture",
    "WhisperTranscriber",
]
