"""
HELMSMAN Feedback Dispatcher

Speaks the confirmation for an executed command. The primary channel is a
remote high-quality voice; if it fails for any reason the on-device voice
speaks instead. Exactly one channel resolves each dispatch.

Usage:
    dispatcher = FeedbackDispatcher(primary=ElevenLabsChannel(...),
                                    fallback=SystemSpeechChannel())
    outcome = await dispatcher.dispatch("left 20 degrees rudder, aye aye", muted=False)
"""

import asyncio
import logging
from typing import Optional

from helmsman.exceptions import AudioPlaybackFailedError
from helmsman.types import FeedbackOutcome, SpeechChannel

logger = logging.getLogger("helmsman.feedback")


class FeedbackDispatcher:
    """Primary-then-fallback speech dispatch with per-channel timeouts."""

    def __init__(
        self,
        primary: Optional[SpeechChannel],
        fallback: SpeechChannel,
        primary_timeout: Optional[float] = 15.0,
        fallback_timeout: Optional[float] = 30.0,
    ):
        """
        Args:
            primary: Preferred channel, None to always use the fallback
            fallback: On-device channel
            primary_timeout: Bound on request plus playback of the primary
            fallback_timeout: Bound on fallback playback
        """
        self.primary = primary
        self.fallback = fallback
        self.primary_timeout = primary_timeout
        self.fallback_timeout = fallback_timeout

    async def dispatch(self, text: str, muted: bool = False) -> FeedbackOutcome:
        """
        Speak ``text`` unless muted.

        Raises:
            AudioPlaybackFailedError: Both channels failed
        """
        if muted:
            logger.debug("Audio muted, skipping feedback")
            return FeedbackOutcome.MUTED

        if self.primary is not None:
            try:
                await asyncio.wait_for(self.primary.speak(text), timeout=self.primary_timeout)
                return FeedbackOutcome.PRIMARY
            except asyncio.TimeoutError:
                logger.warning(
                    f"{self.primary.name} timed out after {self.primary_timeout}s, "
                    f"falling back to {self.fallback.name}"
                )
            except Exception as e:
                logger.warning(f"{self.primary.name} failed ({e}), falling back to {self.fallback.name}")

        try:
            await asyncio.wait_for(self.fallback.speak(text), timeout=self.fallback_timeout)
        except asyncio.TimeoutError as e:
            logger.error(f"{self.fallback.name} timed out after {self.fallback_timeout}s")
            raise AudioPlaybackFailedError(
                "Audio playback failed: fallback speech timed out",
                {"channel": self.fallback.name},
            ) from e
        except Exception as e:
            logger.error(f"{self.fallback.name} failed: {e}")
            raise AudioPlaybackFailedError(
                f"Audio playback failed: {e}",
                {"channel": self.fallback.name},
            ) from e

        return FeedbackOutcome.FALLBACK
