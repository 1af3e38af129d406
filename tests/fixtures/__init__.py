"""
HELMSMAN Test Fixtures Package.

Provides fakes for the pipeline's collaborators so unit tests run without
network access or audio hardware.

Available fixtures:
- ScriptedTransformer: Queued text-transformer answers and failures
- MockSpeechChannel: Recording, failing or hanging speech channel

Usage:
    from tests.fixtures import ScriptedTransformer, interpretation_json

    transformer = ScriptedTransformer([interpretation_json(rudder=-20)])
"""

from tests.fixtures.mock_llm import ScriptedTransformer, TransformCall, interpretation_json
from tests.fixtures.mock_tts import MockSpeechChannel

__all__ = [
    "ScriptedTransformer",
    "TransformCall",
    "interpretation_json",
    "MockSpeechChannel",
]
