"""
HELMSMAN Naval Grammar
Deterministic, offline implementation of both text transformations.

Parses helm orders with regular expressions over the naval vocabulary
instead of calling a language model. It serves as the local backend
(``llm.backend: grammar``) and as a reproducible transformer in tests.

Recognized orders:
    - Rudder: "left 20 degrees rudder", "right two zero", "hard left",
      "left standard rudder", "rudder amidships"
    - Named rudder orders: "meet her", "shift your rudder", "ease your swing",
      "steady"
    - Course: "steady on course 090", "come to course one eight zero",
      "steer northeast"
    - Speed: "all ahead full", "all astern one third", "all stop"

Usage:
    from helmsman.grammar import NavalGrammarTransformer, GrammarMode

    corrector = CommandCorrector(NavalGrammarTransformer(GrammarMode.CORRECT))
    interpreter = CommandInterpreter(NavalGrammarTransformer(GrammarMode.INTERPRET))
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from helmsman.corrector import LEADING_LETTER_FIXES, PHRASE_FIXES, TRANSCRIPTION_FIXES
from helmsman.formatter import format_course, format_rudder, parse_naval_number
from helmsman.vocabulary import (
    AHEAD_SPEEDS,
    ASTERN_SPEEDS,
    COMPASS_POINTS,
    RUDDER_ANGLES,
    RUDDER_ORDERS,
)

logger = logging.getLogger("helmsman.grammar")


__all__ = [
    "GrammarMode",
    "HelmOrders",
    "NavalGrammarTransformer",
    "normalize_transcript",
    "parse_orders",
    "correct_command",
    "interpret_command",
]


def _alternation(words) -> str:
    # Longest first so "niner" wins over "nine" and "dead slow" over "slow"
    return "|".join(re.escape(w) for w in sorted(words, key=len, reverse=True))


_NUMBER_WORDS = [
    "zero", "oh", "one", "two", "three", "four", "five", "six", "seven",
    "eight", "nine", "niner", "ten", "eleven", "twelve", "thirteen",
    "fourteen", "fifteen", "sixteen", "seventeen", "eighteen", "nineteen",
    "twenty", "thirty", "forty", "fifty", "sixty", "seventy", "eighty",
    "ninety", "hundred",
]
_NUM = rf"(?:\d+|(?:{_alternation(_NUMBER_WORDS)})\b)"
_NUM_SEQ = rf"{_NUM}(?:\s+(?:and\s+)?{_NUM})*"
_ANGLE = _alternation(RUDDER_ANGLES)
_COURSE_LEAD = r"(?:steady\s+on|course|steer|heading|come\s+(?:left\s+|right\s+)?to)"

_RUDDER_NUMERIC = re.compile(
    rf"\b(?P<side>left|right)\s+(?:rudder\s+)?(?P<num>{_NUM_SEQ})(?:\s*degrees?\b)?(?:\s+rudder\b)?"
)
_RUDDER_NUMERIC_FIRST = re.compile(
    rf"\b(?P<num>{_NUM_SEQ})\s*degrees?\s+(?P<side>left|right)\b(?:\s+rudder\b)?"
)
_RUDDER_SIDE_NAMED = re.compile(rf"\b(?P<side>left|right)\s+(?P<angle>{_ANGLE})\s+rudder\b")
_RUDDER_NAMED_SIDE = re.compile(rf"\b(?P<angle>{_ANGLE})\s+(?P<side>left|right)\b(?:\s+rudder\b)?")

_COURSE_NUMERIC = re.compile(rf"\b{_COURSE_LEAD}\s+(?:course\s+)?(?P<num>{_NUM_SEQ})")
_COURSE_COMPASS = re.compile(
    rf"\b{_COURSE_LEAD}\s+(?:course\s+)?(?:due\s+)?(?P<point>{_alternation(COMPASS_POINTS)})\b"
)

_ALL_STOP = re.compile(r"\b(?:all\s+stop|stop\s+(?:all\s+)?engines?)\b")
_SPEED_AHEAD = re.compile(rf"\b(?:all\s+)?ahead\s+(?P<name>{_alternation(AHEAD_SPEEDS)})\b")
_SPEED_ASTERN = re.compile(rf"\b(?:all\s+)?astern\s+(?P<name>{_alternation(ASTERN_SPEEDS)})\b")
_STEADY = re.compile(r"\bsteady\b")

_NAMED_ORDER_TEXT = {
    "meet her": "meet her",
    "shift": "shift your rudder",
    "ease": "ease your swing",
}


class GrammarMode(Enum):
    """Which transformation the grammar performs."""
    CORRECT = "correct"
    INTERPRET = "interpret"


@dataclass
class HelmOrders:
    """Orders recognized in one command."""
    rudder: Optional[int] = None
    named_order: Optional[str] = None
    steady: bool = False
    course: Optional[float] = None
    course_point: Optional[str] = None
    speed: Optional[int] = None
    speed_phrase: Optional[str] = None
    remainder: str = ""

    @property
    def is_empty(self) -> bool:
        return (
            self.rudder is None
            and self.named_order is None
            and not self.steady
            and self.course is None
            and self.speed is None
        )


# =============================================================================
# Parsing
# =============================================================================


def normalize_transcript(text: str) -> str:
    """
    Lowercase a transcript and undo common recognition errors.

    Applies the corrector's phrase and word substitutions, strips
    punctuation and the "helm" address.
    """
    result = f" {text.lower()} "
    for wrong, right in PHRASE_FIXES.items():
        result = result.replace(wrong, f" {right} ")
    result = re.sub(r"[^\w\s]", " ", result)

    words = result.split()
    if words and words[0] in LEADING_LETTER_FIXES:
        words[0] = "helm"
    words = [TRANSCRIPTION_FIXES.get(w, w) for w in words]
    words = [w for w in words if w not in ("helm", "helms", "helmsman")]
    return " ".join(words)


def _take(pattern: re.Pattern, text: str):
    """Search and blank out the match so later patterns do not reuse it."""
    match = pattern.search(text)
    if not match:
        return None, text
    return match, text[:match.start()] + " " + text[match.end():]


def parse_orders(text: str) -> HelmOrders:
    """Recognize rudder, course and speed orders in free text."""
    remaining = normalize_transcript(text)
    orders = HelmOrders()

    # Speed first: "all ahead full" must not read as a "full" rudder
    match, remaining = _take(_ALL_STOP, remaining)
    if match:
        orders.speed, orders.speed_phrase = 0, "all stop"
    else:
        for pattern, table, direction in (
            (_SPEED_AHEAD, AHEAD_SPEEDS, "ahead"),
            (_SPEED_ASTERN, ASTERN_SPEEDS, "astern"),
        ):
            match, remaining = _take(pattern, remaining)
            if match:
                name = match.group("name")
                orders.speed = table[name]
                orders.speed_phrase = "all stop" if name == "stop" else f"all {direction} {name}"
                break

    match, remaining = _take(_COURSE_NUMERIC, remaining)
    if match:
        orders.course = parse_naval_number(match.group("num"))
    else:
        match, remaining = _take(_COURSE_COMPASS, remaining)
        if match:
            orders.course_point = match.group("point")
            orders.course = COMPASS_POINTS[orders.course_point]

    for pattern in (_RUDDER_NUMERIC, _RUDDER_NUMERIC_FIRST):
        match, remaining = _take(pattern, remaining)
        if match:
            angle = parse_naval_number(match.group("num"))
            if angle is not None:
                orders.rudder = -angle if match.group("side") == "left" else angle
            break
    if orders.rudder is None:
        for pattern in (_RUDDER_SIDE_NAMED, _RUDDER_NAMED_SIDE):
            match, remaining = _take(pattern, remaining)
            if match:
                angle = RUDDER_ANGLES[match.group("angle")]
                orders.rudder = -angle if match.group("side") == "left" else angle
                break
    if orders.rudder is None:
        match, remaining = _take(RUDDER_ORDERS["amidships"], remaining)
        if match:
            orders.rudder = 0

    for key, text_form in _NAMED_ORDER_TEXT.items():
        match, remaining = _take(RUDDER_ORDERS[key], remaining)
        if match:
            orders.named_order = text_form
            break

    match, remaining = _take(_STEADY, remaining)
    orders.steady = match is not None

    orders.remainder = " ".join(remaining.split())
    return orders


# =============================================================================
# Rendering
# =============================================================================


def _course_clause(orders: HelmOrders, spoken: bool) -> str:
    course = orders.course
    # Three digits cannot carry 22.5; name the point so the order survives
    if orders.course_point and not float(course).is_integer():
        return f"steady on course {orders.course_point}"
    if spoken and 0 <= course < 360:
        return f"steady on course {format_course(course)}"
    return f"steady on course {int(course):03d}"


def _clauses(orders: HelmOrders, spoken_course: bool) -> List[str]:
    clauses = []
    if orders.rudder is not None:
        clauses.append(format_rudder(orders.rudder))
    if orders.named_order:
        clauses.append(orders.named_order)
    if orders.course is not None:
        clauses.append(_course_clause(orders, spoken_course))
    elif orders.steady:
        clauses.append("steady")
    if orders.speed_phrase:
        clauses.append(orders.speed_phrase)
    return clauses


def correct_command(transcript: str) -> str:
    """Canonical "Helm, ..." form of a raw transcript."""
    orders = parse_orders(transcript)
    clauses = _clauses(orders, spoken_course=True)
    if not clauses:
        return f"Helm, {orders.remainder}" if orders.remainder else "Helm"
    return "Helm, " + ", ".join(clauses)


def interpret_command(command: str) -> Dict[str, Any]:
    """Interpretation object for a normalized command."""
    orders = parse_orders(command)
    clauses = _clauses(orders, spoken_course=False)
    response = ", ".join(clauses) + ", aye aye" if clauses else "Say again your last order"
    return {
        "stateUpdates": {
            "rudder": orders.rudder,
            "course": orders.course,
            "speed": orders.speed,
        },
        "response": response,
    }


class NavalGrammarTransformer:
    """
    TextTransformer backed by the naval grammar.

    The instruction context is ignored; the mode decides whether the
    output is a corrected command line or an interpretation JSON object.
    """

    def __init__(self, mode: GrammarMode | str):
        self.mode = GrammarMode(mode) if isinstance(mode, str) else mode

    async def transform(self, context: str, text: str) -> str:
        if self.mode == GrammarMode.CORRECT:
            result = correct_command(text)
        else:
            result = json.dumps(interpret_command(text))
        logger.debug(f"Grammar {self.mode.value}: {text!r} -> {result!r}")
        return result
