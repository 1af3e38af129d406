"""
Unit tests for the HELMSMAN offline naval grammar.

Covers transcript normalization, order recognition and both rendering
modes of NavalGrammarTransformer.
"""

import json

import pytest

from helmsman.grammar import (
    GrammarMode,
    NavalGrammarTransformer,
    correct_command,
    interpret_command,
    normalize_transcript,
    parse_orders,
)


class TestNormalizeTranscript:
    """Tests for recognition-error cleanup."""

    def test_word_fixes(self):
        assert normalize_transcript("Hell love twenty") == "left twenty"
        assert normalize_transcript("write 10 degrees rudder study") == "right 10 degrees rudder steady"

    def test_phrase_fixes(self):
        assert normalize_transcript("all I had 1/3") == "all ahead one third"
        assert normalize_transcript("all the head 2/3") == "all ahead two thirds"

    def test_degree_sign(self):
        assert normalize_transcript("left 15°") == "left 15 degrees"

    def test_leading_letter_is_helm(self):
        assert normalize_transcript("m rudder left 15") == "rudder left 15"
        assert normalize_transcript("h all stop") == "all stop"


class TestParseOrders:
    """Tests for order recognition."""

    @pytest.mark.parametrize("angle", [5, 10, 15, 30, 35])
    @pytest.mark.parametrize("side,sign", [("left", -1), ("right", 1)])
    def test_numeric_rudder(self, angle, side, sign):
        orders = parse_orders(f"Helm, {side} {angle} degrees rudder")
        assert orders.rudder == sign * angle
        assert orders.course is None
        assert orders.speed is None

    def test_spoken_rudder_numbers(self):
        assert parse_orders("right two zero").rudder == 20
        assert parse_orders("left twenty degrees").rudder == -20
        assert parse_orders("20 degrees left rudder").rudder == -20

    def test_named_rudder(self):
        assert parse_orders("hard left").rudder == -35
        assert parse_orders("right standard rudder").rudder == 15
        assert parse_orders("left full rudder").rudder == -30
        assert parse_orders("rudder amidships").rudder == 0

    def test_speed_orders(self):
        assert parse_orders("all ahead full").speed == 90
        assert parse_orders("all ahead two thirds").speed == 67
        assert parse_orders("all astern half").speed == -50
        assert parse_orders("all ahead emergency flank").speed == 110
        assert parse_orders("all stop").speed == 0

    def test_speed_name_is_not_rudder(self):
        orders = parse_orders("all ahead full")
        assert orders.rudder is None

    def test_course_orders(self):
        assert parse_orders("steady on course 090").course == 90
        assert parse_orders("steady on 090").course == 90
        assert parse_orders("come right to course one eight zero").course == 180
        assert parse_orders("steer northeast").course == 45
        assert parse_orders("steer north northeast").course == 22.5
        assert parse_orders("come to west southwest").course == 247.5
        assert parse_orders("steady on course zero niner zero").course == 90

    def test_combined_orders(self):
        orders = parse_orders(
            "Helm, left 10 degrees rudder, steady on course 270, all ahead standard"
        )
        assert orders.rudder == -10
        assert orders.course == 270
        assert orders.speed == 75

    def test_named_orders(self):
        assert parse_orders("meet her").named_order == "meet her"
        assert parse_orders("shift your rudder").named_order == "shift your rudder"
        assert parse_orders("steady").steady is True

    def test_nothing_recognized(self):
        orders = parse_orders("good morning")
        assert orders.is_empty
        assert orders.remainder == "good morning"


class TestCorrectCommand:
    """Tests for CORRECT mode rendering."""

    @pytest.mark.parametrize("transcript,expected", [
        ("m rudder left 15° stud", "Helm, left 15 degrees rudder, steady"),
        ("helm write 20°", "Helm, right 20 degrees rudder"),
        ("help all I had 1/3", "Helm, all ahead one third"),
        ("steady on 090", "Helm, steady on course zero niner zero"),
        ("steer northeast", "Helm, steady on course zero four five"),
        ("steer north northeast", "Helm, steady on course north northeast"),
        ("hard left", "Helm, left 35 degrees rudder"),
        ("rudder amidships", "Helm, rudder amidships"),
        ("all stop", "Helm, all stop"),
    ])
    def test_examples(self, transcript, expected):
        assert correct_command(transcript) == expected

    def test_clause_order(self):
        result = correct_command("all ahead full left 10 degrees rudder")
        assert result == "Helm, left 10 degrees rudder, all ahead full"

    def test_unrecognized_text_kept(self):
        assert correct_command("good morning") == "Helm, good morning"


class TestInterpretCommand:
    """Tests for INTERPRET mode rendering."""

    def test_rudder(self):
        result = interpret_command("Helm, left 20 degrees rudder")
        assert result["stateUpdates"] == {"rudder": -20, "course": None, "speed": None}
        assert result["response"] == "left 20 degrees rudder, aye aye"

    def test_course_uses_digits(self):
        result = interpret_command("Helm, steady on course zero niner zero")
        assert result["stateUpdates"]["course"] == 90
        assert "course 090" in result["response"]

    def test_fractional_compass_course(self):
        result = interpret_command("Helm, steady on course north northeast")
        assert result["stateUpdates"]["course"] == 22.5
        assert result["response"] == "steady on course north northeast, aye aye"

    def test_no_orders(self):
        result = interpret_command("Helm, good morning")
        assert result["stateUpdates"] == {"rudder": None, "course": None, "speed": None}
        assert result["response"]


class TestNavalGrammarTransformer:
    """Tests for the TextTransformer adapter."""

    @pytest.mark.asyncio
    async def test_correct_mode(self):
        transformer = NavalGrammarTransformer(GrammarMode.CORRECT)
        assert await transformer.transform("ignored", "love 20 degrees") == "Helm, left 20 degrees rudder"

    @pytest.mark.asyncio
    async def test_interpret_mode_returns_json(self):
        transformer = NavalGrammarTransformer("interpret")
        raw = await transformer.transform("ignored", "Helm, all ahead full")
        data = json.loads(raw)
        assert data["stateUpdates"]["speed"] == 90
        assert data["response"] == "all ahead full, aye aye"
