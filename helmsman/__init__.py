"""
HELMSMAN - Voice-Controlled Naval Helm

Spoken helm orders ("left 20 degrees rudder", "all ahead full") are
corrected, interpreted into a ship state change, applied, and acknowledged
aloud in naval phraseology.

Architecture:
    - Two-stage language pipeline: correction, then interpretation
    - Pure state merge, owned by a single helm session
    - Single-flight command gate: one order in flight at a time
    - Spoken feedback with an on-device fallback voice
"""

__version__ = "0.1.0"

VERSION_INFO = (0, 1, 0)

from helmsman.exceptions import HelmsmanError
from helmsman.types import ShipState, StateDelta

__all__ = [
    "__version__",
    "VERSION_INFO",
    "HelmsmanError",
    "ShipState",
    "StateDelta",
]
