"""
Pytest Fixtures for HELMSMAN Testing.

Shared fixtures for the unit tests. Sessions are built from the offline
naval grammar or from scripted transformers, with recording speech
channels in place of real audio.
"""

import pytest

from helmsman.corrector import CommandCorrector
from helmsman.feedback import FeedbackDispatcher
from helmsman.grammar import GrammarMode, NavalGrammarTransformer
from helmsman.interpreter import CommandInterpreter
from helmsman.processor import CommandProcessor
from helmsman.session import HelmSession
from tests.fixtures import MockSpeechChannel, ScriptedTransformer


@pytest.fixture
def primary_channel() -> MockSpeechChannel:
    return MockSpeechChannel(name="primary")


@pytest.fixture
def fallback_channel() -> MockSpeechChannel:
    return MockSpeechChannel(name="fallback")


@pytest.fixture
def dispatcher(primary_channel, fallback_channel) -> FeedbackDispatcher:
    return FeedbackDispatcher(
        primary_channel, fallback_channel, primary_timeout=1.0, fallback_timeout=1.0
    )


@pytest.fixture
def grammar_processor() -> CommandProcessor:
    """Processor running entirely on the offline naval grammar."""
    return CommandProcessor(
        CommandCorrector(NavalGrammarTransformer(GrammarMode.CORRECT)),
        CommandInterpreter(NavalGrammarTransformer(GrammarMode.INTERPRET)),
    )


@pytest.fixture
def grammar_session(grammar_processor, dispatcher) -> HelmSession:
    return HelmSession(grammar_processor, dispatcher)


@pytest.fixture
def correction_transformer() -> ScriptedTransformer:
    return ScriptedTransformer()


@pytest.fixture
def interpretation_transformer() -> ScriptedTransformer:
    return ScriptedTransformer()


@pytest.fixture
def scripted_session(correction_transformer, interpretation_transformer, dispatcher) -> HelmSession:
    """Session whose transformers answer from per-test scripts."""
    processor = CommandProcessor(
        CommandCorrector(correction_transformer, timeout_sec=1.0),
        CommandInterpreter(interpretation_transformer, timeout_sec=1.0),
    )
    return HelmSession(processor, dispatcher)
