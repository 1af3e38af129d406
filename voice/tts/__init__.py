"""
HELMSMAN Voice TTS Channels

Spoken confirmation via ElevenLabs or the on-device speech command.
"""

from .elevenlabs_service import ElevenLabsChannel, VoiceSettings, decode_pcm
from .system_service import SystemSpeechChannel, SystemVoiceConfig, select_voice

__all__ = [
    "ElevenLabsChannel",
    "VoiceSettings",
    "decode_pcm",
    "SystemSpeechChannel",
    "SystemVoiceConfig",
    "select_voice",
]
