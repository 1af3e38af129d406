"""
HELMSMAN Single-Flight Command Gate

At most one command is processed at a time. A transcript that arrives while
another command is in flight is dropped, not queued: the conning officer
repeats an order that was not acknowledged.

Usage:
    gate = SingleFlightGate()
    result = await gate.run(transcript, lambda: session.process(transcript))
    if result is None:
        ...  # dropped, a command was already in flight
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, TypeVar

logger = logging.getLogger("helmsman.command_gate")

T = TypeVar("T")


@dataclass(frozen=True)
class PendingCommand:
    """Token held while one command is in flight."""
    transcript: str
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_ms(self) -> float:
        return (time.monotonic() - self.started_at) * 1000


class SingleFlightGate:
    """
    Admits one command at a time.

    Acquisition is synchronous so two transcripts delivered on the same
    event loop can never both pass the check.
    """

    def __init__(self):
        self._pending: Optional[PendingCommand] = None
        self.accepted_count = 0
        self.dropped_count = 0

    @property
    def busy(self) -> bool:
        return self._pending is not None

    @property
    def pending(self) -> Optional[PendingCommand]:
        return self._pending

    def try_acquire(self, transcript: str) -> Optional[PendingCommand]:
        """Take the gate, or return None when a command is already in flight."""
        if self._pending is not None:
            self.dropped_count += 1
            logger.warning(
                f"Dropping transcript while '{self._pending.transcript}' is in flight: {transcript}"
            )
            return None
        self._pending = PendingCommand(transcript=transcript)
        self.accepted_count += 1
        return self._pending

    def release(self, token: PendingCommand) -> None:
        """Release the gate held by ``token``. Stale tokens are ignored."""
        if self._pending is token:
            logger.debug(f"Command finished in {token.elapsed_ms:.0f}ms: {token.transcript}")
            self._pending = None

    async def run(self, transcript: str, func: Callable[[], Awaitable[T]]) -> Optional[T]:
        """
        Run ``func`` under the gate.

        Returns:
            The result of ``func``, or None if the transcript was dropped
        """
        token = self.try_acquire(transcript)
        if token is None:
            return None
        try:
            return await func()
        finally:
            self.release(token)
