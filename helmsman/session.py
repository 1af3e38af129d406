"""
HELMSMAN Helm Session
Orchestrates one conning session: transcript in, state change and spoken
confirmation out.

Pipeline per accepted transcript:
    1. Single-flight gate (a transcript arriving mid-command is dropped)
    2. Correction + interpretation via the command processor
    3. Merge of the delta into ship state, command log entry
    4. Spoken confirmation (primary voice, on-device fallback)

Every failure is caught here, logged and raised to listeners as a
Notification. The session itself never raises from ``submit_transcript``.

Usage:
    session = create_helm_session(load_config())
    session.add_listener(print_notification)
    outcome = await session.submit_transcript("helm love 20 degrees")
"""

import inspect
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Union

from helmsman.command_gate import SingleFlightGate
from helmsman.config import HelmsmanConfig
from helmsman.corrector import CommandCorrector
from helmsman.exceptions import (
    AudioPlaybackFailedError,
    CaptureUnavailableError,
    CommandError,
    HelmsmanError,
    MissingCredentialError,
    SpeechRecognitionError,
)
from helmsman.feedback import FeedbackDispatcher
from helmsman.grammar import GrammarMode, NavalGrammarTransformer
from helmsman.interpreter import CommandInterpreter
from helmsman.llm_client import create_llm_client
from helmsman.processor import CommandProcessor, RemoteCommandProcessor
from helmsman.ship_state import CommandLog, ShipStateMachine
from helmsman.types import CommandOutcome, Notification, Severity, ShipState

logger = logging.getLogger("helmsman.session")

NotificationListener = Callable[[Notification], Union[None, Awaitable[None]]]


@dataclass
class HelmState:
    """Everything the session owns and mutates."""
    machine: ShipStateMachine = field(default_factory=ShipStateMachine)
    muted: bool = False
    log: CommandLog = field(default_factory=CommandLog)
    last_command: Optional[str] = None
    last_response: Optional[str] = None

    @property
    def ship(self) -> ShipState:
        return self.machine.state


class HelmSession:
    """
    Voice helm session.

    Args:
        processor: Command submission boundary (local or remote)
        dispatcher: Spoken feedback dispatcher
        state: Owned session state (fresh zero state when None)
    """

    def __init__(
        self,
        processor: Union[CommandProcessor, RemoteCommandProcessor],
        dispatcher: FeedbackDispatcher,
        state: Optional[HelmState] = None,
    ):
        self.processor = processor
        self.dispatcher = dispatcher
        self.state = state or HelmState()
        self.gate = SingleFlightGate()
        self.voice_enabled = True

        self._listeners: List[NotificationListener] = []
        self._capture = None

    # =========================================================================
    # Notifications
    # =========================================================================

    def add_listener(self, listener: NotificationListener):
        """Register a notification listener."""
        self._listeners.append(listener)

    async def _notify(self, title: str, description: str, severity: Severity = Severity.ERROR):
        notification = Notification(title=title, description=description, severity=severity)
        for listener in self._listeners:
            try:
                result = listener(notification)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Notification listener error: {e}")

    # =========================================================================
    # Commands
    # =========================================================================

    def toggle_mute(self) -> bool:
        self.state.muted = not self.state.muted
        logger.info(f"Audio feedback {'muted' if self.state.muted else 'unmuted'}")
        return self.state.muted

    async def submit_transcript(self, transcript: str) -> Optional[CommandOutcome]:
        """
        Run one transcript through the pipeline.

        Returns:
            The outcome, or None when the transcript was empty or dropped
            because another command was in flight
        """
        text = (transcript or "").strip()
        if not text:
            logger.debug("Ignoring empty transcript")
            return None
        return await self.gate.run(text, lambda: self._execute(text))

    async def _execute(self, transcript: str) -> CommandOutcome:
        start = time.perf_counter()
        outcome = CommandOutcome(transcript=transcript)

        try:
            response = await self.processor.process(transcript, self.state.ship)
            # Range checks in ShipState reject a bad remote delta before any change
            new_state = self.state.machine.apply(response.state_updates)
        except MissingCredentialError as e:
            logger.error(f"Missing credential: {e}")
            await self._notify("Configuration error", e.message)
            return self._failed(outcome, e.message, start)
        except CommandError as e:
            logger.error(f"Command failed: {e}")
            await self._notify("Error processing command", e.message)
            return self._failed(outcome, e.message, start)
        except (HelmsmanError, ValueError) as e:
            logger.error(f"Command failed: {e}")
            await self._notify("Error processing command", str(e))
            return self._failed(outcome, str(e), start)
        except Exception as e:
            logger.exception(f"Unexpected error processing '{transcript}'")
            await self._notify("Error processing command", f"Unexpected error: {e}")
            return self._failed(outcome, str(e), start)

        outcome.corrected_command = response.corrected_command
        outcome.delta = response.state_updates
        outcome.confirmation = response.response
        outcome.state = new_state

        self.state.log.record(response.corrected_command or transcript, response.response)
        self.state.last_command = response.corrected_command
        self.state.last_response = response.response

        if response.response:
            try:
                outcome.feedback = await self.dispatcher.dispatch(
                    response.response, muted=self.state.muted
                )
            except AudioPlaybackFailedError as e:
                # State change already stands
                await self._notify("Audio playback failed", e.message, Severity.WARNING)
                outcome.error = e.message

        outcome.latency_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Command complete in {outcome.latency_ms:.0f}ms: {response.corrected_command}")
        return outcome

    def _failed(self, outcome: CommandOutcome, error: str, start: float) -> CommandOutcome:
        outcome.success = False
        outcome.error = error
        outcome.latency_ms = (time.perf_counter() - start) * 1000
        return outcome

    # =========================================================================
    # Voice capture
    # =========================================================================

    def attach_capture(self, capture) -> None:
        """Route transcripts from a PushToTalkCapture into the session."""
        self._capture = capture
        capture.register_callback(self.submit_transcript)

    async def start_listening(self) -> bool:
        """
        Start push-to-talk recording.

        Returns:
            False when voice input is unavailable for this session
        """
        if not self.voice_enabled or self._capture is None:
            return False
        try:
            self._capture.start()
            return True
        except CaptureUnavailableError as e:
            self.voice_enabled = False
            logger.error(f"Voice input disabled: {e}")
            await self._notify("Speech recognition unavailable", e.message)
            return False
        except SpeechRecognitionError as e:
            logger.warning(f"Recording failed: {e}")
            await self._notify("Speech recognition failed", e.message, Severity.WARNING)
            return False
        except Exception as e:
            logger.exception("Unexpected error starting capture")
            await self._notify("Speech recognition failed", f"Unexpected error: {e}", Severity.WARNING)
            return False

    async def stop_listening(self) -> Optional[str]:
        """Stop recording; the transcript is submitted through the callback."""
        if self._capture is None:
            return None
        try:
            return await self._capture.stop()
        except CaptureUnavailableError as e:
            self.voice_enabled = False
            logger.error(f"Voice input disabled: {e}")
            await self._notify("Speech recognition unavailable", e.message)
            return None
        except SpeechRecognitionError as e:
            logger.warning(f"Recording failed: {e}")
            await self._notify("Speech recognition failed", e.message, Severity.WARNING)
            return None
        except Exception as e:
            logger.exception("Unexpected error stopping capture")
            await self._notify("Speech recognition failed", f"Unexpected error: {e}", Severity.WARNING)
            return None

    async def close(self):
        for resource in (self.processor, self.dispatcher.primary):
            close = getattr(resource, "close", None)
            if close is not None:
                await close()


# =============================================================================
# Factories
# =============================================================================


def create_command_processor(config: HelmsmanConfig) -> Union[CommandProcessor, RemoteCommandProcessor]:
    """Build the local or remote command processor from configuration."""
    if config.session.remote_url:
        logger.info(f"Using remote command server: {config.session.remote_url}")
        return RemoteCommandProcessor(config.session.remote_url)

    llm = config.llm
    if llm.backend == "grammar":
        correction = NavalGrammarTransformer(GrammarMode.CORRECT)
        interpretation = NavalGrammarTransformer(GrammarMode.INTERPRET)
    else:
        correction = create_llm_client(llm, max_tokens=llm.correction_max_tokens)
        interpretation = create_llm_client(llm, max_tokens=llm.interpretation_max_tokens)

    return CommandProcessor(
        CommandCorrector(correction, timeout_sec=llm.correction_timeout_sec),
        CommandInterpreter(interpretation, timeout_sec=llm.interpretation_timeout_sec),
    )


def create_feedback_dispatcher(config: HelmsmanConfig) -> FeedbackDispatcher:
    """Build the primary/fallback speech dispatcher from configuration."""
    from voice.tts.elevenlabs_service import ElevenLabsChannel, VoiceSettings
    from voice.tts.system_service import SystemSpeechChannel, SystemVoiceConfig

    tts = config.tts
    primary = None
    if tts.primary == "elevenlabs":
        primary = ElevenLabsChannel(
            api_key=tts.elevenlabs_api_key,
            voice_id=tts.voice_id,
            model_id=tts.model_id,
            settings=VoiceSettings(
                stability=tts.stability,
                similarity_boost=tts.similarity_boost,
                style=tts.style,
                use_speaker_boost=tts.use_speaker_boost,
            ),
            sample_rate=tts.sample_rate,
        )
    fallback = SystemSpeechChannel(SystemVoiceConfig(
        rate=tts.rate,
        pitch=tts.pitch,
        volume=tts.volume,
        preferred_voices=list(tts.preferred_voices),
    ))
    return FeedbackDispatcher(
        primary,
        fallback,
        primary_timeout=tts.primary_timeout_sec,
        fallback_timeout=tts.fallback_timeout_sec,
    )


def create_helm_session(config: HelmsmanConfig) -> HelmSession:
    """Build a fully wired session from configuration."""
    state = HelmState(
        muted=config.session.muted or not config.tts.enabled,
        log=CommandLog(max_entries=config.session.log_size),
    )
    session = HelmSession(
        create_command_processor(config),
        create_feedback_dispatcher(config),
        state=state,
    )
    logger.info(f"Helm session created (backend: {config.llm.backend})")
    return session
