"""
Unit tests for HELMSMAN Helm Session.

Exercises the full pipeline (gate, correction, interpretation, merge,
log, feedback) with the offline grammar or scripted transformers.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from helmsman.exceptions import (
    AudioChannelError,
    CaptureUnavailableError,
    MissingCredentialError,
    SpeechRecognitionError,
)
from helmsman.feedback import FeedbackDispatcher
from helmsman.session import HelmSession, HelmState
from helmsman.types import FeedbackOutcome, Severity, ShipState, StateDelta
from tests.fixtures import MockSpeechChannel, interpretation_json


class TestGrammarScenarios:
    """End-to-end scenarios on the offline grammar."""

    @pytest.mark.asyncio
    async def test_left_twenty(self, grammar_session, primary_channel):
        outcome = await grammar_session.submit_transcript("left 20 degrees rudder")

        assert outcome.success
        assert outcome.delta == StateDelta(rudder=-20)
        assert "left 20" in outcome.confirmation
        assert grammar_session.state.ship == ShipState(rudder=-20)
        assert primary_channel.spoken == [outcome.confirmation]

    @pytest.mark.asyncio
    async def test_all_ahead_full(self, grammar_session):
        outcome = await grammar_session.submit_transcript("all ahead full")

        assert outcome.delta.speed == 90
        assert grammar_session.state.ship.speed == 90

    @pytest.mark.asyncio
    async def test_steady_on_course(self, grammar_session):
        outcome = await grammar_session.submit_transcript("steady on course 090")

        assert outcome.delta.course == 90
        assert "zero niner zero" in outcome.confirmation
        assert grammar_session.state.ship.course == 90

    @pytest.mark.asyncio
    async def test_fractional_compass_course(self, grammar_session):
        outcome = await grammar_session.submit_transcript("steer north northeast")

        assert outcome.success
        assert outcome.corrected_command == "Helm, steady on course north northeast"
        assert outcome.delta.course == 22.5
        assert grammar_session.state.ship.course == 22.5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("angle", [5, 10, 15, 30, 35])
    @pytest.mark.parametrize("side,sign", [("left", -1), ("right", 1)])
    async def test_rudder_orders_keep_course_and_speed(self, grammar_processor, dispatcher, angle, side, sign):
        state = HelmState()
        state.machine.apply(StateDelta(course=200.0, speed=50))
        session = HelmSession(grammar_processor, dispatcher, state=state)

        outcome = await session.submit_transcript(f"{side} {angle} degrees rudder")

        assert outcome.delta == StateDelta(rudder=sign * angle)
        assert session.state.ship == ShipState(rudder=sign * angle, course=200.0, speed=50)

    @pytest.mark.asyncio
    async def test_misheard_transcript(self, grammar_session):
        outcome = await grammar_session.submit_transcript("help all I had 1/3")

        assert outcome.corrected_command == "Helm, all ahead one third"
        assert grammar_session.state.ship.speed == 33

    @pytest.mark.asyncio
    async def test_log_records_commands(self, grammar_session):
        await grammar_session.submit_transcript("all stop")
        await grammar_session.submit_transcript("hard right")

        entries = grammar_session.state.log.entries()
        assert entries[0].corrected_command == "Helm, right 35 degrees rudder"
        assert entries[1].corrected_command == "Helm, all stop"
        assert grammar_session.state.last_command == "Helm, right 35 degrees rudder"

    @pytest.mark.asyncio
    async def test_empty_transcript_ignored(self, grammar_session):
        assert await grammar_session.submit_transcript("   ") is None
        assert grammar_session.gate.accepted_count == 0


class TestFailureHandling:
    """Tests for failures caught at the session boundary."""

    @pytest.mark.asyncio
    async def test_invalid_interpretation_changes_nothing(
        self, scripted_session, correction_transformer, interpretation_transformer, primary_channel
    ):
        notifications = []
        scripted_session.add_listener(notifications.append)
        correction_transformer.queue("Helm, right 90 degrees rudder")
        interpretation_transformer.queue(interpretation_json(rudder=90, response="right 90, aye aye"))

        outcome = await scripted_session.submit_transcript("right 90")

        assert not outcome.success
        assert scripted_session.state.ship == ShipState()
        assert len(scripted_session.state.log) == 0
        assert primary_channel.attempts == 0
        assert notifications[0].title == "Error processing command"
        assert notifications[0].severity == Severity.ERROR

    @pytest.mark.asyncio
    async def test_non_json_interpretation_changes_nothing(
        self, scripted_session, correction_transformer, interpretation_transformer
    ):
        correction_transformer.queue("Helm, all ahead full")
        interpretation_transformer.queue("All ahead full, aye aye!")

        outcome = await scripted_session.submit_transcript("all ahead full")

        assert not outcome.success
        assert scripted_session.state.ship == ShipState()
        assert len(scripted_session.state.log) == 0

    @pytest.mark.asyncio
    async def test_correction_failure_skips_interpretation(
        self, scripted_session, correction_transformer, interpretation_transformer
    ):
        correction_transformer.queue(ConnectionError("network down"))

        outcome = await scripted_session.submit_transcript("left 20")

        assert not outcome.success
        assert interpretation_transformer.call_count == 0
        assert scripted_session.state.ship == ShipState()

    @pytest.mark.asyncio
    async def test_missing_credential_notifies(self, scripted_session, correction_transformer):
        notifications = []
        scripted_session.add_listener(notifications.append)
        correction_transformer.queue(MissingCredentialError("GROQ_API_KEY not set"))

        outcome = await scripted_session.submit_transcript("left 20")

        assert not outcome.success
        assert notifications[0].title == "Configuration error"
        assert "GROQ_API_KEY" in notifications[0].description

    @pytest.mark.asyncio
    async def test_gate_released_after_failure(self, scripted_session, correction_transformer):
        correction_transformer.queue(ConnectionError("network down"))
        await scripted_session.submit_transcript("left 20")

        assert not scripted_session.gate.busy

    @pytest.mark.asyncio
    async def test_audio_failure_keeps_state(self, grammar_processor):
        dispatcher = FeedbackDispatcher(
            MockSpeechChannel("primary", error=AudioChannelError("HTTP 500")),
            MockSpeechChannel("fallback", error=AudioChannelError("espeak missing")),
        )
        session = HelmSession(grammar_processor, dispatcher)
        notifications = []
        session.add_listener(notifications.append)

        outcome = await session.submit_transcript("all ahead full")

        assert session.state.ship.speed == 90
        assert len(session.state.log) == 1
        assert outcome.feedback is None
        assert notifications[0].title == "Audio playback failed"
        assert notifications[0].severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_async_listener_awaited(self, scripted_session, correction_transformer):
        received = []

        async def listener(notification):
            received.append(notification.title)

        scripted_session.add_listener(listener)
        correction_transformer.queue(ConnectionError("network down"))
        await scripted_session.submit_transcript("left 20")

        assert received == ["Error processing command"]


class TestSingleFlight:
    """Tests for dropping transcripts while a command is in flight."""

    @pytest.mark.asyncio
    async def test_second_transcript_has_no_effect(
        self, scripted_session, correction_transformer, interpretation_transformer
    ):
        correction_transformer.delay = 0.05
        correction_transformer.queue("Helm, left 20 degrees rudder")
        correction_transformer.queue("Helm, all ahead full")
        interpretation_transformer.queue(interpretation_json(rudder=-20, response="left 20 degrees rudder, aye aye"))
        interpretation_transformer.queue(interpretation_json(speed=90, response="all ahead full, aye aye"))

        first, second = await asyncio.gather(
            scripted_session.submit_transcript("left 20"),
            scripted_session.submit_transcript("all ahead full"),
        )

        assert first.success
        assert second is None
        assert scripted_session.state.ship == ShipState(rudder=-20)
        assert correction_transformer.call_count == 1
        assert scripted_session.gate.dropped_count == 1

    @pytest.mark.asyncio
    async def test_next_transcript_accepted_after_completion(self, grammar_session):
        await grammar_session.submit_transcript("left 20 degrees rudder")
        outcome = await grammar_session.submit_transcript("all ahead full")

        assert outcome is not None
        assert grammar_session.state.ship == ShipState(rudder=-20, speed=90)


class TestMuteAndCapture:
    """Tests for mute and voice capture handling."""

    @pytest.mark.asyncio
    async def test_mute(self, grammar_session, primary_channel, fallback_channel):
        assert grammar_session.toggle_mute() is True

        outcome = await grammar_session.submit_transcript("all stop")

        assert outcome.feedback == FeedbackOutcome.MUTED
        assert primary_channel.attempts == 0
        assert fallback_channel.attempts == 0
        assert grammar_session.toggle_mute() is False

    @pytest.mark.asyncio
    async def test_capture_unavailable_disables_voice(self, grammar_session):
        notifications = []
        grammar_session.add_listener(notifications.append)
        capture = MagicMock()
        capture.start.side_effect = CaptureUnavailableError("sounddevice not installed")
        grammar_session.attach_capture(capture)

        assert await grammar_session.start_listening() is False
        assert grammar_session.voice_enabled is False
        assert notifications[0].title == "Speech recognition unavailable"

        # Typed commands still work
        outcome = await grammar_session.submit_transcript("all stop")
        assert outcome.success

    @pytest.mark.asyncio
    async def test_attach_capture_registers_callback(self, grammar_session):
        capture = MagicMock()
        grammar_session.attach_capture(capture)

        capture.register_callback.assert_called_once_with(grammar_session.submit_transcript)

    @pytest.mark.asyncio
    async def test_transcription_failure_keeps_voice(self, grammar_session):
        notifications = []
        grammar_session.add_listener(notifications.append)
        capture = MagicMock()
        capture.stop = AsyncMock(side_effect=SpeechRecognitionError("Transcription failed: model crashed"))
        grammar_session.attach_capture(capture)

        assert await grammar_session.stop_listening() is None
        assert grammar_session.voice_enabled is True
        assert notifications[0].title == "Speech recognition failed"
        assert notifications[0].severity == Severity.WARNING

    @pytest.mark.asyncio
    async def test_unexpected_capture_errors_are_notified(self, grammar_session):
        notifications = []
        grammar_session.add_listener(notifications.append)
        capture = MagicMock()
        capture.start.side_effect = RuntimeError("PortAudio error")
        capture.stop = AsyncMock(side_effect=RuntimeError("stream closed"))
        grammar_session.attach_capture(capture)

        assert await grammar_session.start_listening() is False
        assert await grammar_session.stop_listening() is None

        assert [n.title for n in notifications] == ["Speech recognition failed"] * 2
        assert "PortAudio" in notifications[0].description
        outcome = await grammar_session.submit_transcript("all stop")
        assert outcome.success
