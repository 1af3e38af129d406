"""
HELMSMAN Ship State Machine

Holds the authoritative helm state and the bounded log of recent commands.
``merge`` is the only way a delta becomes a new state; it is pure so the
same function serves the session, the HTTP boundary and tests.
"""

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Deque, List, Optional

from helmsman.types import ShipState, StateDelta

logger = logging.getLogger("helmsman.ship_state")


__all__ = [
    "merge",
    "ShipStateMachine",
    "CommandLogEntry",
    "CommandLog",
    "COMMAND_LOG_SIZE",
]

COMMAND_LOG_SIZE = 5


def merge(state: ShipState, delta: StateDelta) -> ShipState:
    """
    Apply a delta to a state.

    Present fields replace, absent (None) fields are kept. Range checks run
    in ShipState construction, so an out-of-range delta raises ValueError
    and produces no state.
    """
    changes = {
        name: value
        for name, value in delta.to_dict().items()
        if value is not None
    }
    if not changes:
        return state
    return replace(state, **changes)


class ShipStateMachine:
    """Owner of the current ShipState."""

    def __init__(self, initial: Optional[ShipState] = None):
        self._state = initial or ShipState()

    @property
    def state(self) -> ShipState:
        return self._state

    def apply(self, delta: StateDelta) -> ShipState:
        """Merge a delta into the current state and return the new state."""
        new_state = merge(self._state, delta)
        if new_state != self._state:
            logger.info(
                f"State change: rudder={new_state.rudder} course={new_state.course} "
                f"speed={new_state.speed}"
            )
        self._state = new_state
        return new_state

    def reset(self) -> ShipState:
        self._state = ShipState()
        logger.info("Ship state reset")
        return self._state


@dataclass(frozen=True)
class CommandLogEntry:
    corrected_command: str
    confirmation: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)


class CommandLog:
    """Most-recent-first log of executed commands, bounded to a few entries."""

    def __init__(self, max_entries: int = COMMAND_LOG_SIZE):
        self._entries: Deque[CommandLogEntry] = deque(maxlen=max_entries)

    def record(self, corrected_command: str, confirmation: Optional[str] = None) -> CommandLogEntry:
        entry = CommandLogEntry(corrected_command=corrected_command, confirmation=confirmation)
        # appendleft on a bounded deque drops the oldest from the right
        self._entries.appendleft(entry)
        return entry

    def entries(self) -> List[CommandLogEntry]:
        return list(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(list(self._entries))
