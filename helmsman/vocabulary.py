"""
HELMSMAN Naval Vocabulary

Static naval helm vocabulary: rudder angle names, engine order tables,
compass points and the digit pronunciation used over voice circuits.
All tables are read-only mappings.
"""

import re
from types import MappingProxyType

__all__ = [
    "RUDDER_ANGLES",
    "RUDDER_ORDERS",
    "AHEAD_SPEEDS",
    "ASTERN_SPEEDS",
    "COMPASS_POINTS",
    "COMPASS_ABBREVIATIONS",
    "NAVAL_DIGITS",
    "DIGIT_WORDS",
    "COMPASS_POINT_SPACING",
    "speed_vocabulary",
]


RUDDER_ANGLES = MappingProxyType({
    "hard": 35,
    "full": 30,
    "standard": 15,
    "half": 10,
    "slight": 5,
})

# Named rudder orders that carry no angle of their own
RUDDER_ORDERS = MappingProxyType({
    "amidships": re.compile(r"\b(?:rudder\s+)?amidships\b", re.IGNORECASE),
    "meet her": re.compile(r"\bmeet\s+her\b", re.IGNORECASE),
    "shift": re.compile(r"\bshift\s+(?:your\s+)?rudder\b", re.IGNORECASE),
    "ease": re.compile(r"\b(?:ease|check)\s+(?:your\s+)?(?:swing|turn)\b", re.IGNORECASE),
})

# Highest order first
AHEAD_SPEEDS = MappingProxyType({
    "emergency flank": 110,
    "flank": 100,
    "full": 90,
    "standard": 75,
    "two thirds": 67,
    "half": 50,
    "one third": 33,
    "slow": 25,
    "dead slow": 10,
    "stop": 0,
})

ASTERN_SPEEDS = MappingProxyType({
    "emergency full": -100,
    "full": -75,
    "half": -50,
    "slow": -25,
    "stop": 0,
})

COMPASS_POINT_SPACING = 22.5

COMPASS_POINTS = MappingProxyType({
    "north": 0.0,
    "north northeast": 22.5,
    "northeast": 45.0,
    "east northeast": 67.5,
    "east": 90.0,
    "east southeast": 112.5,
    "southeast": 135.0,
    "south southeast": 157.5,
    "south": 180.0,
    "south southwest": 202.5,
    "southwest": 225.0,
    "west southwest": 247.5,
    "west": 270.0,
    "west northwest": 292.5,
    "northwest": 315.0,
    "north northwest": 337.5,
})

COMPASS_ABBREVIATIONS = (
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
)

NAVAL_DIGITS = MappingProxyType({
    0: "zero",
    1: "one",
    2: "two",
    3: "three",
    4: "four",
    5: "five",
    6: "six",
    7: "seven",
    8: "eight",
    9: "niner",
})

# Spoken digit -> value, accepting "nine" alongside "niner"
DIGIT_WORDS = MappingProxyType({
    **{word: digit for digit, word in NAVAL_DIGITS.items()},
    "nine": 9,
    "oh": 0,
})


def speed_vocabulary() -> dict[str, dict[str, int]]:
    """Engine order tables in the shape handed to the interpreter."""
    return {
        "AHEAD": dict(AHEAD_SPEEDS),
        "ASTERN": dict(ASTERN_SPEEDS),
    }
