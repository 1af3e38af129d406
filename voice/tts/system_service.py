"""
HELMSMAN Voice TTS - On-Device Channel
Fallback spoken feedback using the platform speech command.

- Linux: espeak
- macOS: say

A voice whose name matches one of the preferred patterns ("Daniel",
"Premium", "Natural") is used when installed; otherwise the system default.
"""

import asyncio
import logging
import platform
import re
import shutil
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from helmsman.exceptions import AudioChannelError

logger = logging.getLogger("helmsman.voice.system")

ESPEAK_DEFAULT_RATE = 175   # words per minute
ESPEAK_DEFAULT_PITCH = 50   # 0-99
SAY_DEFAULT_RATE = 200

_SAY_VOICE_LINE = re.compile(r"^(?P<name>.+?)\s{2,}(?P<locale>[a-z]{2}[_-]\w+)\s+#")


@dataclass
class SystemVoiceConfig:
    """On-device voice parameters (multipliers on the engine defaults)."""
    rate: float = 0.95
    pitch: float = 1.1
    volume: float = 1.0
    preferred_voices: List[str] = field(default_factory=lambda: ["Daniel", "Premium", "Natural"])


def select_voice(voices: Sequence[str], preferred: Sequence[str]) -> Optional[str]:
    """First installed voice matching a preferred pattern, in pattern order."""
    for pattern in preferred:
        for voice in voices:
            if pattern.lower() in voice.lower():
                return voice
    return None


def parse_espeak_voices(output: str) -> List[str]:
    """Voice names from ``espeak --voices`` output."""
    voices = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if len(parts) >= 4:
            voices.append(parts[3])
    return voices


def parse_say_voices(output: str) -> List[str]:
    """Voice names from ``say -v ?`` output."""
    voices = []
    for line in output.splitlines():
        match = _SAY_VOICE_LINE.match(line)
        if match:
            voices.append(match.group("name").strip())
    return voices


class SystemSpeechChannel:
    """Speech channel backed by espeak or macOS say."""

    name = "system"

    def __init__(self, config: Optional[SystemVoiceConfig] = None, system: Optional[str] = None):
        self.config = config or SystemVoiceConfig()
        self._platform = system or platform.system()
        self._voice: Optional[str] = None
        self._voice_resolved = False

    @property
    def engine(self) -> Optional[str]:
        if self._platform == "Darwin":
            return "say"
        if self._platform == "Linux":
            return "espeak"
        return None

    @property
    def available(self) -> bool:
        return self.engine is not None and shutil.which(self.engine) is not None

    async def _run(self, cmd: List[str], capture: bool = False) -> str:
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE if capture else asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AudioChannelError(f"Speech command not found: {cmd[0]}", channel=self.name) from e

        try:
            stdout, stderr = await process.communicate()
        except asyncio.CancelledError:
            # A timed-out dispatch must not leave the engine talking
            if process.returncode is None:
                try:
                    process.kill()
                except ProcessLookupError:
                    pass
                await process.wait()
            raise
        if process.returncode != 0:
            message = (stderr or b"").decode(errors="replace").strip()
            raise AudioChannelError(
                f"{cmd[0]} exited with status {process.returncode}",
                channel=self.name,
                stderr=message[:200],
            )
        return (stdout or b"").decode(errors="replace")

    async def resolve_voice(self) -> Optional[str]:
        """Pick the preferred installed voice once per channel."""
        if self._voice_resolved:
            return self._voice
        self._voice_resolved = True

        try:
            if self.engine == "say":
                voices = parse_say_voices(await self._run(["say", "-v", "?"], capture=True))
            elif self.engine == "espeak":
                voices = parse_espeak_voices(await self._run(["espeak", "--voices"], capture=True))
            else:
                voices = []
        except AudioChannelError as e:
            logger.debug(f"Could not list voices: {e}")
            voices = []

        self._voice = select_voice(voices, self.config.preferred_voices)
        if self._voice:
            logger.info(f"Using system voice: {self._voice}")
        return self._voice

    def build_command(self, text: str, voice: Optional[str] = None) -> List[str]:
        if self.engine == "say":
            cmd = ["say", "-r", str(int(SAY_DEFAULT_RATE * self.config.rate))]
            if voice:
                cmd += ["-v", voice]
            # say has no volume flag; the embedded command sets it
            return cmd + [f"[[volm {self.config.volume:.2f}]] {text}"]
        if self.engine == "espeak":
            cmd = [
                "espeak",
                "-s", str(int(ESPEAK_DEFAULT_RATE * self.config.rate)),
                "-p", str(min(99, int(ESPEAK_DEFAULT_PITCH * self.config.pitch))),
                "-a", str(int(100 * self.config.volume)),
            ]
            if voice:
                cmd += ["-v", voice]
            return cmd + [text]
        raise AudioChannelError(
            f"No on-device speech engine for platform {self._platform}", channel=self.name
        )

    async def speak(self, text: str) -> None:
        if self.engine is None:
            raise AudioChannelError(
                f"No on-device speech engine for platform {self._platform}", channel=self.name
            )
        voice = await self.resolve_voice()
        await self._run(self.build_command(text, voice))
