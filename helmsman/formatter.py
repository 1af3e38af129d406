"""
HELMSMAN Naval Formatter
Formats ship values as naval phraseology for display and speech.

Converts numeric helm values into the wording used on the bridge:
engine order names, digit-by-digit course pronunciation and compass
directions. Every function here is pure and total.

Usage:
    from helmsman.formatter import format_course, speed_bucket_name

    format_course(90)            # "zero niner zero"
    speed_bucket_name(90)        # "full"
    engine_order(-50)            # "all astern half"
    cardinal_direction(100.0)    # "E"
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Optional

from helmsman.vocabulary import (
    AHEAD_SPEEDS,
    ASTERN_SPEEDS,
    COMPASS_ABBREVIATIONS,
    COMPASS_POINT_SPACING,
    COMPASS_POINTS,
    DIGIT_WORDS,
    NAVAL_DIGITS,
)

__all__ = [
    "normalize_degrees",
    "format_course",
    "cardinal_direction",
    "speed_bucket_name",
    "engine_order",
    "format_rudder",
    "format_state",
    "pronounce_course_references",
    "parse_naval_number",
]


_COURSE_REFERENCE = re.compile(r"\b(course\s+)(\d{3})\b", re.IGNORECASE)

_UNITS = {
    "zero": 0, "oh": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "niner": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
    "nineteen": 19,
}
_TENS = {
    "twenty": 20, "thirty": 30, "forty": 40, "fifty": 50,
    "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
}


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def normalize_degrees(degrees: float) -> float:
    """Wrap any angle into [0, 360)."""
    return degrees % 360.0


def format_course(degrees: float) -> str:
    """
    Pronounce a course digit by digit.

    Args:
        degrees: Course in degrees; wrapped into 0-359 and rounded

    Returns:
        Three space-joined digit words, e.g. "zero zero niner"
    """
    whole = _round_half_up(normalize_degrees(degrees)) % 360
    return " ".join(NAVAL_DIGITS[int(d)] for d in f"{whole:03d}")


def cardinal_direction(degrees: float, abbreviated: bool = True) -> str:
    """
    Nearest of the 16 compass points to a bearing.

    Args:
        degrees: Bearing in degrees (any value, wrapped modulo 360)
        abbreviated: Return "NNE" style instead of "north northeast"
    """
    index = _round_half_up(normalize_degrees(degrees) / COMPASS_POINT_SPACING) % 16
    if abbreviated:
        return COMPASS_ABBREVIATIONS[index]
    return list(COMPASS_POINTS)[index]


def speed_bucket_name(percent: float) -> str:
    """
    Name of the engine order bucket for a speed percent.

    Picks the highest threshold not above ``abs(percent)`` from the ahead
    table (percent >= 0) or the astern table (percent < 0).
    """
    table = AHEAD_SPEEDS if percent >= 0 else ASTERN_SPEEDS
    magnitude = abs(percent)
    best_name = "stop"
    best_threshold = -1
    for name, value in table.items():
        threshold = abs(value)
        if best_threshold < threshold <= magnitude:
            best_name, best_threshold = name, threshold
    return best_name


def engine_order(percent: float) -> str:
    """Engine telegraph wording, e.g. "all ahead two thirds" or "all stop"."""
    bucket = speed_bucket_name(percent)
    if bucket == "stop":
        return "all stop"
    direction = "ahead" if percent > 0 else "astern"
    return f"all {direction} {bucket}"


def format_rudder(rudder: int) -> str:
    """Rudder order wording, e.g. "left 20 degrees rudder"."""
    if rudder == 0:
        return "rudder amidships"
    side = "left" if rudder < 0 else "right"
    return f"{side} {abs(rudder)} degrees rudder"


def format_state(state) -> str:
    """One-line helm status for display."""
    return (
        f"{format_rudder(state.rudder)}, "
        f"course {format_course(state.course)} ({cardinal_direction(state.course)}), "
        f"{engine_order(state.speed)}"
    )


def pronounce_course_references(text: str) -> str:
    """Replace every "course NNN" digit triple with its naval pronunciation."""
    return _COURSE_REFERENCE.sub(
        lambda m: m.group(1) + format_course(int(m.group(2))),
        text,
    )


def parse_naval_number(words: str | Iterable[str]) -> Optional[int]:
    """
    Read a spoken number back into an integer.

    Accepts digit-by-digit naval readings ("zero niner zero" -> 90),
    plain digits ("090"), and ordinary spoken numbers up to the hundreds
    ("one hundred twenty five", "thirty five").

    Returns:
        The value, or None when the words are not a number
    """
    tokens = words.split() if isinstance(words, str) else list(words)
    tokens = [t.strip(",.").lower() for t in tokens if t.strip(",.")]
    tokens = [t for t in tokens if t != "and"]
    if not tokens:
        return None

    if len(tokens) == 1 and tokens[0].isdigit():
        return int(tokens[0])

    if len(tokens) > 1 and all(t in DIGIT_WORDS or (t.isdigit() and len(t) == 1) for t in tokens):
        return int("".join(str(DIGIT_WORDS[t]) if t in DIGIT_WORDS else t for t in tokens))

    current = 0
    for token in tokens:
        if token.isdigit():
            current += int(token)
        elif token in _UNITS:
            current += _UNITS[token]
        elif token in _TENS:
            current += _TENS[token]
        elif token == "hundred":
            current = max(current, 1) * 100
        else:
            return None
    return current
