"""
Unit tests for HELMSMAN naval vocabulary tables.
"""

import pytest

from helmsman.vocabulary import (
    AHEAD_SPEEDS,
    ASTERN_SPEEDS,
    COMPASS_ABBREVIATIONS,
    COMPASS_POINTS,
    DIGIT_WORDS,
    NAVAL_DIGITS,
    RUDDER_ANGLES,
    RUDDER_ORDERS,
    speed_vocabulary,
)


class TestRudderVocabulary:
    """Tests for rudder angle names."""

    def test_named_angles(self):
        assert RUDDER_ANGLES["hard"] == 35
        assert RUDDER_ANGLES["full"] == 30
        assert RUDDER_ANGLES["standard"] == 15
        assert RUDDER_ANGLES["half"] == 10
        assert RUDDER_ANGLES["slight"] == 5

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            RUDDER_ANGLES["hard"] = 40

    def test_named_orders_match_phrases(self):
        assert RUDDER_ORDERS["amidships"].search("Rudder amidships")
        assert RUDDER_ORDERS["meet her"].search("meet her")
        assert RUDDER_ORDERS["shift"].search("shift your rudder")
        assert RUDDER_ORDERS["ease"].search("check your swing")


class TestSpeedVocabulary:
    """Tests for engine order tables."""

    def test_ahead_speeds(self):
        assert AHEAD_SPEEDS["emergency flank"] == 110
        assert AHEAD_SPEEDS["flank"] == 100
        assert AHEAD_SPEEDS["full"] == 90
        assert AHEAD_SPEEDS["standard"] == 75
        assert AHEAD_SPEEDS["two thirds"] == 67
        assert AHEAD_SPEEDS["half"] == 50
        assert AHEAD_SPEEDS["one third"] == 33
        assert AHEAD_SPEEDS["slow"] == 25
        assert AHEAD_SPEEDS["dead slow"] == 10
        assert AHEAD_SPEEDS["stop"] == 0

    def test_astern_speeds(self):
        assert ASTERN_SPEEDS == {
            "emergency full": -100,
            "full": -75,
            "half": -50,
            "slow": -25,
            "stop": 0,
        }

    def test_speed_vocabulary_shape(self):
        vocab = speed_vocabulary()
        assert set(vocab) == {"AHEAD", "ASTERN"}
        assert vocab["AHEAD"]["full"] == 90
        # A copy, not the read-only table
        vocab["AHEAD"]["full"] = 1
        assert AHEAD_SPEEDS["full"] == 90


class TestCompassAndDigits:
    """Tests for compass points and digit pronunciation."""

    def test_sixteen_points_evenly_spaced(self):
        degrees = list(COMPASS_POINTS.values())
        assert len(degrees) == 16
        assert len(COMPASS_ABBREVIATIONS) == 16
        for i, value in enumerate(degrees):
            assert value == pytest.approx(i * 22.5)

    def test_niner(self):
        assert NAVAL_DIGITS[9] == "niner"
        assert [NAVAL_DIGITS[d] for d in range(9)] == [
            "zero", "one", "two", "three", "four", "five", "six", "seven", "eight",
        ]

    def test_digit_words_accept_variants(self):
        assert DIGIT_WORDS["niner"] == 9
        assert DIGIT_WORDS["nine"] == 9
        assert DIGIT_WORDS["oh"] == 0
