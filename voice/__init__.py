"""
HELMSMAN Voice I/O

Audio edges of the helm pipeline:
- STT: push-to-talk capture transcribed with faster-whisper
- TTS: ElevenLabs primary voice, espeak / macOS say fallback

Audio libraries are optional; modules degrade to typed errors when
sounddevice or faster-whisper is missing.
"""
