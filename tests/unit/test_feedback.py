"""
Unit tests for the HELMSMAN feedback dispatcher.
"""

import pytest

from helmsman.exceptions import AudioChannelError, AudioPlaybackFailedError, MissingCredentialError
from helmsman.feedback import FeedbackDispatcher
from helmsman.types import FeedbackOutcome
from tests.fixtures import MockSpeechChannel


class TestFeedbackDispatcher:
    """Tests for primary/fallback dispatch."""

    @pytest.mark.asyncio
    async def test_muted_speaks_nothing(self, dispatcher, primary_channel, fallback_channel):
        outcome = await dispatcher.dispatch("all stop, aye aye", muted=True)

        assert outcome == FeedbackOutcome.MUTED
        assert primary_channel.attempts == 0
        assert fallback_channel.attempts == 0

    @pytest.mark.asyncio
    async def test_primary_success(self, dispatcher, primary_channel, fallback_channel):
        outcome = await dispatcher.dispatch("all stop, aye aye")

        assert outcome == FeedbackOutcome.PRIMARY
        assert primary_channel.spoken == ["all stop, aye aye"]
        assert fallback_channel.attempts == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        AudioChannelError("ElevenLabs API error: HTTP 401", channel="elevenlabs"),
        AudioChannelError("Empty audio payload", channel="elevenlabs"),
        MissingCredentialError("Missing ElevenLabs API key"),
        RuntimeError("PortAudio error"),
    ])
    async def test_primary_failure_falls_back(self, error):
        primary = MockSpeechChannel("primary", error=error)
        fallback = MockSpeechChannel("fallback")
        dispatcher = FeedbackDispatcher(primary, fallback)

        outcome = await dispatcher.dispatch("left 20 degrees rudder, aye aye")

        assert outcome == FeedbackOutcome.FALLBACK
        assert primary.spoken == []
        assert fallback.spoken == ["left 20 degrees rudder, aye aye"]

    @pytest.mark.asyncio
    async def test_primary_timeout_falls_back(self):
        primary = MockSpeechChannel("primary", hang=True)
        fallback = MockSpeechChannel("fallback")
        dispatcher = FeedbackDispatcher(primary, fallback, primary_timeout=0.05)

        outcome = await dispatcher.dispatch("all ahead full, aye aye")

        assert outcome == FeedbackOutcome.FALLBACK
        assert fallback.spoken == ["all ahead full, aye aye"]

    @pytest.mark.asyncio
    async def test_no_primary_uses_fallback(self):
        fallback = MockSpeechChannel("fallback")
        dispatcher = FeedbackDispatcher(None, fallback)

        assert await dispatcher.dispatch("all stop, aye aye") == FeedbackOutcome.FALLBACK
        assert fallback.spoken == ["all stop, aye aye"]

    @pytest.mark.asyncio
    async def test_both_fail(self):
        primary = MockSpeechChannel("primary", error=RuntimeError("no network"))
        fallback = MockSpeechChannel("fallback", error=AudioChannelError("espeak missing"))
        dispatcher = FeedbackDispatcher(primary, fallback)

        with pytest.raises(AudioPlaybackFailedError):
            await dispatcher.dispatch("all stop, aye aye")
        assert primary.attempts == 1
        assert fallback.attempts == 1

    @pytest.mark.asyncio
    async def test_fallback_timeout(self):
        primary = MockSpeechChannel("primary", error=RuntimeError("no network"))
        fallback = MockSpeechChannel("fallback", hang=True)
        dispatcher = FeedbackDispatcher(primary, fallback, fallback_timeout=0.05)

        with pytest.raises(AudioPlaybackFailedError) as exc_info:
            await dispatcher.dispatch("all stop, aye aye")
        assert "timed out" in str(exc_info.value)
