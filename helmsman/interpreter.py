"""
HELMSMAN Command Interpreter
Second pipeline stage: normalized command -> state delta + spoken confirmation.

The interpreter hands the text transformer the current ship state, the
engine order vocabulary and the required answer shape, then validates
whatever comes back. Nothing the transformer returns reaches ship state
without passing validation here.

Expected answer:
    {"stateUpdates": {"rudder": int|null, "course": number|null, "speed": int|null},
     "response": "left 20 degrees rudder, aye aye"}

Usage:
    from helmsman.interpreter import CommandInterpreter

    interpreter = CommandInterpreter(transformer)
    result = await interpreter.interpret("Helm, all ahead full", ShipState())
    result.delta.speed      # 90
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Dict, Optional

from helmsman.exceptions import (
    InterpretationUnavailableError,
    InvalidInterpretationError,
    MissingCredentialError,
)
from helmsman.formatter import pronounce_course_references
from helmsman.types import (
    RUDDER_LIMIT,
    SPEED_MAX,
    SPEED_MIN,
    Interpretation,
    ShipState,
    StateDelta,
    TextTransformer,
    course_in_range,
    rudder_in_range,
    speed_in_range,
)
from helmsman.vocabulary import speed_vocabulary

logger = logging.getLogger("helmsman.interpreter")


__all__ = [
    "CommandInterpreter",
    "build_interpretation_context",
    "extract_json_object",
    "parse_interpretation",
]


_FIELD_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "rudder": rudder_in_range,
    "course": course_in_range,
    "speed": speed_in_range,
}

_FIELD_RANGES = {
    "rudder": f"integer -{RUDDER_LIMIT} to {RUDDER_LIMIT}",
    "course": "number 0 to less than 360",
    "speed": f"integer {SPEED_MIN} to {SPEED_MAX}",
}

_EXAMPLE = {
    "stateUpdates": {"rudder": -20, "course": None, "speed": None},
    "response": "left 20 degrees rudder, aye aye",
}


def build_interpretation_context(state: ShipState) -> str:
    """Instruction context for interpreting a command against ``state``."""
    return "\n".join([
        "You are a naval helmsman. Interpret the helm command and answer with "
        "the resulting state changes.",
        "",
        f"Current ship state: {json.dumps(state.to_dict())}",
        "",
        f"Speed orders (percent): {json.dumps(speed_vocabulary())}",
        "",
        "Value ranges:",
        f"- rudder: {_FIELD_RANGES['rudder']} (negative is left, positive is right)",
        f"- course: {_FIELD_RANGES['course']} degrees",
        f"- speed: {_FIELD_RANGES['speed']} percent (negative is astern)",
        "",
        "Use null for any value the command does not change.",
        "",
        "Answer with a single JSON object of the form:",
        '{"stateUpdates": {"rudder": <int|null>, "course": <number|null>, '
        '"speed": <int|null>}, "response": "<spoken confirmation>"}',
        "",
        "Example:",
        'Command: "Helm, left 20 degrees rudder"',
        f"Answer: {json.dumps(_EXAMPLE)}",
        "",
        "Return only the JSON object.",
    ])


def extract_json_object(raw: str) -> Optional[str]:
    """
    Find the first balanced ``{...}`` span in model output.

    Braces inside JSON strings (including escaped quotes) do not count.

    Returns:
        The span text, or None when no balanced object is present
    """
    start = raw.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(raw)):
        char = raw[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return raw[start:index + 1]
    return None


def parse_interpretation(raw: Optional[str], command: str = "") -> Interpretation:
    """
    Validate a transformer answer into an Interpretation.

    Raises:
        InvalidInterpretationError: The answer is malformed or out of range
    """
    def reject(message: str, field: Optional[str] = None, value: Any = None):
        return InvalidInterpretationError(
            message, command=command or None, field=field, value=value, raw_response=raw
        )

    span = extract_json_object(raw or "")
    if span is None:
        raise reject("No JSON object in interpretation response")

    try:
        data = json.loads(span)
    except json.JSONDecodeError as e:
        raise reject(f"Interpretation response is not valid JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise reject("Interpretation response is not an object")

    updates = data.get("stateUpdates")
    if not isinstance(updates, dict):
        raise reject("Missing stateUpdates object", field="stateUpdates")

    response = data.get("response")
    if not isinstance(response, str) or not response.strip():
        raise reject("Missing response text", field="response")

    values: Dict[str, Any] = {}
    for name, in_range in _FIELD_CHECKS.items():
        value = updates.get(name)
        if value is None:
            continue
        if not in_range(value):
            raise reject(
                f"Invalid {name} value, expected {_FIELD_RANGES[name]}",
                field=name,
                value=value,
            )
        values[name] = value

    delta = StateDelta(
        rudder=int(values["rudder"]) if "rudder" in values else None,
        course=values.get("course"),
        speed=int(values["speed"]) if "speed" in values else None,
    )
    confirmation = pronounce_course_references(response.strip())
    return Interpretation(delta=delta, confirmation=confirmation)


class CommandInterpreter:
    """Turns a normalized helm command into a validated Interpretation."""

    def __init__(
        self,
        transformer: TextTransformer,
        timeout_sec: Optional[float] = 30.0,
    ):
        self.transformer = transformer
        self.timeout_sec = timeout_sec

    async def interpret(self, command: str, state: ShipState) -> Interpretation:
        """
        Interpret one command against the current state.

        Args:
            command: Normalized command from the corrector
            state: Current ship state (read only)

        Raises:
            MissingCredentialError: Transformer has no credentials
            InterpretationUnavailableError: Transformer failed or timed out
            InvalidInterpretationError: Answer failed validation
        """
        context = build_interpretation_context(state)
        logger.info(f"Interpreting command: {command}")

        try:
            raw = await asyncio.wait_for(
                self.transformer.transform(context, command),
                timeout=self.timeout_sec,
            )
        except MissingCredentialError:
            raise
        except asyncio.TimeoutError as e:
            raise InterpretationUnavailableError(
                "Interpretation timed out", command=command, timeout_seconds=self.timeout_sec
            ) from e
        except Exception as e:
            raise InterpretationUnavailableError(
                f"Interpretation failed: {e}", command=command
            ) from e

        result = parse_interpretation(raw, command)
        logger.debug(f"Interpretation: {result.delta.to_dict()} / {result.confirmation!r}")
        return result
