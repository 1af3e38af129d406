"""
HELMSMAN Shared Type Definitions

Data structures shared across the helm command pipeline: the authoritative
ship state, the partial state delta produced per command, interpretation and
submission results, and the protocols the pipeline consumes.

Types are organized by category:
    - Basic numeric aliases and domain ranges
    - Ship state types
    - Pipeline result types
    - Protocol types (for duck typing)

Usage:
    from helmsman.types import ShipState, StateDelta
"""

import math
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional, Protocol, TypeAlias, runtime_checkable


# =============================================================================
# Basic Type Aliases
# =============================================================================

Degrees: TypeAlias = float
Percent: TypeAlias = int

RUDDER_LIMIT = 35
SPEED_MIN = -100
SPEED_MAX = 110
COURSE_MIN = 0.0
COURSE_MAX = 360.0  # exclusive


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_integral(value: Any) -> bool:
    # Arbitrarily large JSON integers must not go through float()
    if isinstance(value, bool):
        return False
    return isinstance(value, int) or (isinstance(value, float) and value.is_integer())


def rudder_in_range(value: Any) -> bool:
    """True for an integral rudder angle within +/-35 degrees."""
    return _is_integral(value) and -RUDDER_LIMIT <= value <= RUDDER_LIMIT


def speed_in_range(value: Any) -> bool:
    """True for an integral speed percent within -100..110."""
    return _is_integral(value) and SPEED_MIN <= value <= SPEED_MAX


def course_in_range(value: Any) -> bool:
    """True for a finite course in [0, 360)."""
    if not _is_number(value):
        return False
    if isinstance(value, float) and not math.isfinite(value):
        return False
    return COURSE_MIN <= value < COURSE_MAX


# =============================================================================
# Ship State Types
# =============================================================================

@dataclass(frozen=True)
class ShipState:
    """Authoritative helm state.

    Attributes:
        rudder: Rudder angle in degrees, negative is left (-35 to +35)
        course: Ordered course in degrees (0 to <360)
        speed: Engine order in percent, negative is astern (-100 to +110)
    """
    rudder: Percent = 0
    course: Degrees = 0.0
    speed: Percent = 0

    def __post_init__(self) -> None:
        if not rudder_in_range(self.rudder):
            raise ValueError(f"Rudder angle out of range: {self.rudder}")
        if not course_in_range(self.course):
            raise ValueError(f"Course out of range: {self.course}")
        if not speed_in_range(self.speed):
            raise ValueError(f"Speed out of range: {self.speed}")
        object.__setattr__(self, "rudder", int(self.rudder))
        object.__setattr__(self, "speed", int(self.speed))

    def to_dict(self) -> dict[str, Any]:
        return {"rudder": self.rudder, "course": self.course, "speed": self.speed}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ShipState":
        """Build a state from its wire form; missing fields default to zero."""
        return cls(
            rudder=data.get("rudder", 0),
            course=data.get("course", 0.0),
            speed=data.get("speed", 0),
        )


@dataclass(frozen=True)
class StateDelta:
    """Partial state update requested by one command.

    ``None`` means "no change requested". Zero is an explicit order
    (amidships, all stop, course north).
    """
    rudder: Optional[Percent] = None
    course: Optional[Degrees] = None
    speed: Optional[Percent] = None

    @property
    def is_empty(self) -> bool:
        return self.rudder is None and self.course is None and self.speed is None

    def to_dict(self) -> dict[str, Any]:
        return {"rudder": self.rudder, "course": self.course, "speed": self.speed}


# =============================================================================
# Pipeline Result Types
# =============================================================================

@dataclass(frozen=True)
class Interpretation:
    """Structured result of interpreting one normalized command."""
    delta: StateDelta
    confirmation: str


@dataclass
class CommandResponse:
    """Result crossing the command submission boundary.

    A response with ``error`` set had no effect on ship state.
    """
    original_command: str
    corrected_command: Optional[str] = None
    state_updates: StateDelta = field(default_factory=StateDelta)
    response: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict[str, Any]:
        """Wire form used by the HTTP boundary."""
        if self.error is not None:
            return {"error": self.error}
        return {
            "stateUpdates": self.state_updates.to_dict(),
            "response": self.response,
            "originalCommand": self.original_command,
            "correctedCommand": self.corrected_command,
        }


class FeedbackOutcome(Enum):
    """Which channel resolved an audio feedback dispatch."""
    MUTED = "muted"
    PRIMARY = "primary"
    FALLBACK = "fallback"


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """User-visible notification raised by the session."""
    title: str
    description: str
    severity: Severity = Severity.ERROR
    timestamp: datetime = field(default_factory=datetime.now)


@dataclass
class CommandOutcome:
    """What happened to one accepted transcript."""
    transcript: str
    corrected_command: Optional[str] = None
    delta: Optional[StateDelta] = None
    confirmation: Optional[str] = None
    state: Optional[ShipState] = None
    feedback: Optional[FeedbackOutcome] = None
    success: bool = True
    error: Optional[str] = None
    latency_ms: float = 0.0


# =============================================================================
# Protocol Types
# =============================================================================

@runtime_checkable
class TextTransformer(Protocol):
    """Text-transformation collaborator: instruction context + input -> output."""

    async def transform(self, context: str, text: str) -> str:
        ...


@runtime_checkable
class SpeechChannel(Protocol):
    """Speaks text and returns once playback has completed."""

    name: str

    async def speak(self, text: str) -> None:
        ...
