"""
HELMSMAN Command Corrector
First pipeline stage: raw transcript -> normalized helm command.

Speech recognition garbles helm orders in predictable ways ("love 20" for
"left 20", "all I had full" for "all ahead full"). The corrector hands a
fixed rule set to the text transformer and accepts back one corrected line
in the canonical form:

    Helm, [<left|right> N degrees rudder][, steady on course <digits>][, all <ahead|astern> <order>]

The raw transcript is never used in place of a failed correction.

Usage:
    from helmsman.corrector import CommandCorrector

    corrector = CommandCorrector(transformer)
    command = await corrector.correct("help all I had 1/3")
    # "Helm, all ahead one third"
"""

from __future__ import annotations

import asyncio
import logging
import re
from types import MappingProxyType
from typing import Optional

from helmsman.exceptions import (
    CorrectionUnavailableError,
    InvalidCommandError,
    MissingCredentialError,
)
from helmsman.types import TextTransformer
from helmsman.vocabulary import NAVAL_DIGITS

logger = logging.getLogger("helmsman.corrector")


__all__ = [
    "CommandCorrector",
    "TRANSCRIPTION_FIXES",
    "PHRASE_FIXES",
    "LEADING_LETTER_FIXES",
    "CORRECTION_EXAMPLES",
    "build_correction_context",
    "clean_completion",
]


# =============================================================================
# Correction Rules
# =============================================================================

# Single words the recognizer commonly mishears
TRANSCRIPTION_FIXES = MappingProxyType({
    "home": "helm",
    "hell": "helm",
    "help": "helm",
    "held": "helm",
    "love": "left",
    "write": "right",
    "rite": "right",
    "study": "steady",
    "stud": "steady",
    "won": "one",
    "tree": "three",
    "ford": "four",
})

# Multi-word or symbolic fragments
PHRASE_FIXES = MappingProxyType({
    "i had": "ahead",
    "the head": "ahead",
    "1/3": "one third",
    "2/3": "two thirds",
    "°": "degrees",
})

# A lone leading letter is a clipped "helm"
LEADING_LETTER_FIXES = ("m", "h")

CORRECTION_EXAMPLES = (
    ("m rudder left 15° stud", "Helm, left 15 degrees rudder, steady"),
    ("helm write 20°", "Helm, right 20 degrees rudder"),
    ("help all I had 1/3", "Helm, all ahead one third"),
    ("steady on 090", "Helm, steady on course zero niner zero"),
)

_LABEL_PREFIX = re.compile(r"^(?:corrected(?:\s+command)?|output|command)\s*:\s*", re.IGNORECASE)


def build_correction_context() -> str:
    """Instruction context for the correction transformer."""
    fixes = [f'- "{wrong}" -> "{right}"' for wrong, right in TRANSCRIPTION_FIXES.items()]
    fixes += [f'- "{wrong}" -> "{right}"' for wrong, right in PHRASE_FIXES.items()]
    fixes.append(
        "- Single letters like "
        + ", ".join(f'"{letter}"' for letter in LEADING_LETTER_FIXES)
        + ' at the start -> "helm"'
    )
    digits = [f'- {digit} -> "{word}"' for digit, word in NAVAL_DIGITS.items()]
    examples = [f'- "{raw}" -> "{fixed}"' for raw, fixed in CORRECTION_EXAMPLES]

    return "\n".join([
        "You are a naval command correction system. Correct transcription errors "
        "and normalize naval helm commands to proper format.",
        "",
        "Common transcription errors to fix:",
        *fixes,
        "",
        "Number pronunciation for courses:",
        *digits,
        "",
        "Command format rules:",
        '1. Always start with "Helm".',
        '2. Rudder orders: "[left|right] N degrees rudder".',
        '3. Course orders: "steady on course" followed by the three course digits '
        "spoken with the pronunciation above.",
        '4. Speed orders: "all ahead <order>", "all astern <order>" or "all stop".',
        "5. Order clauses rudder, course, speed and join them with commas.",
        "",
        "Examples:",
        *examples,
        "",
        "Return only the corrected command text with no explanation.",
    ])


def clean_completion(raw: Optional[str]) -> str:
    """First usable line of a completion, without quotes or labels."""
    if not raw:
        return ""
    for line in raw.strip().splitlines():
        line = _LABEL_PREFIX.sub("", line.strip())
        line = line.strip().strip("`\"'").strip()
        if line:
            return line
    return ""


# =============================================================================
# Corrector
# =============================================================================


class CommandCorrector:
    """
    Normalizes raw transcripts through a text transformer.

    Owns the correction contract: the rule set, trimming of the answer and
    failure reporting.
    """

    def __init__(
        self,
        transformer: TextTransformer,
        timeout_sec: Optional[float] = 30.0,
    ):
        """
        Args:
            transformer: Text-transformation collaborator
            timeout_sec: Overall bound on one correction (None disables)
        """
        self.transformer = transformer
        self.timeout_sec = timeout_sec
        self.context = build_correction_context()

    async def correct(self, transcript: str) -> str:
        """
        Correct one transcript.

        Args:
            transcript: Raw recognized text (non-empty)

        Returns:
            Normalized helm command

        Raises:
            InvalidCommandError: Transcript is empty
            MissingCredentialError: Transformer has no credentials
            CorrectionUnavailableError: No usable correction was produced
        """
        text = " ".join((transcript or "").split())
        if not text:
            raise InvalidCommandError("Command is required")

        logger.info(f"Correcting transcript: {text}")

        try:
            raw = await asyncio.wait_for(
                self.transformer.transform(self.context, text),
                timeout=self.timeout_sec,
            )
        except MissingCredentialError:
            raise
        except asyncio.TimeoutError as e:
            raise CorrectionUnavailableError(
                "Correction timed out", command=text, timeout_seconds=self.timeout_sec
            ) from e
        except Exception as e:
            raise CorrectionUnavailableError(f"Correction failed: {e}", command=text) from e

        corrected = clean_completion(raw)
        if not corrected:
            raise CorrectionUnavailableError("No correction response generated", command=text)

        logger.info(f"Corrected command: {corrected}")
        return corrected
