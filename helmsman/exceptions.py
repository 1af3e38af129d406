"""
HELMSMAN Custom Exceptions

Provides the domain-specific exception hierarchy for the HELMSMAN voice helm
control system. Every failure in the command pipeline maps onto one of these
classes so the session boundary can decide what reaches the conning officer
and whether ship state may change.

Exception Hierarchy:
    HelmsmanError (base)
    ├── ConfigurationError
    ├── MissingCredentialError
    ├── CaptureUnavailableError
    ├── SpeechRecognitionError
    ├── TransformationError
    │   └── TransformationTimeoutError
    ├── CommandError
    │   ├── InvalidCommandError
    │   ├── CorrectionUnavailableError
    │   ├── InterpretationUnavailableError
    │   ├── InvalidInterpretationError
    │   └── CommandRejectedError
    └── AudioError
        ├── AudioChannelError
        └── AudioPlaybackFailedError
"""

from typing import Any, Optional


class HelmsmanError(Exception):
    """Base exception for all HELMSMAN errors.

    Attributes:
        message: Human-readable error description
        details: Optional dict with additional error context
    """

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================

class ConfigurationError(HelmsmanError):
    """Error in configuration file or settings."""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_file: Optional[str] = None,
    ) -> None:
        details = {}
        if config_key:
            details["config_key"] = config_key
        if config_file:
            details["config_file"] = config_file
        super().__init__(message, details)
        self.config_key = config_key
        self.config_file = config_file


class MissingCredentialError(HelmsmanError):
    """A remote collaborator is not configured with credentials.

    Raised before any network call is attempted.
    """

    def __init__(
        self,
        message: str,
        service_name: Optional[str] = None,
        env_var: Optional[str] = None,
    ) -> None:
        details = {}
        if service_name:
            details["service"] = service_name
        if env_var:
            details["env_var"] = env_var
        super().__init__(message, details)
        self.service_name = service_name
        self.env_var = env_var


class CaptureUnavailableError(HelmsmanError):
    """Speech capture is not supported on this host.

    Fatal for the voice path of a session; typed commands keep working.
    """
    pass


class SpeechRecognitionError(HelmsmanError):
    """One recording could not be captured or transcribed.

    Affects that utterance only; voice input stays enabled.
    """
    pass


# =============================================================================
# Text Transformation Errors
# =============================================================================

class TransformationError(HelmsmanError):
    """The text-transformation collaborator failed to produce a completion."""

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs
        if backend:
            details["backend"] = backend
        super().__init__(message, details)
        self.backend = backend


class TransformationTimeoutError(TransformationError):
    """The text-transformation collaborator did not answer in time."""

    def __init__(
        self,
        message: str,
        backend: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        super().__init__(message, backend)
        if timeout_seconds is not None:
            self.details["timeout_seconds"] = timeout_seconds
        self.timeout_seconds = timeout_seconds


# =============================================================================
# Command Errors
# =============================================================================

class CommandError(HelmsmanError):
    """Base class for errors that abort a single helm command.

    A command that fails with any CommandError has no effect on ship state.
    """

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs
        if command:
            details["command"] = command
        super().__init__(message, details)
        self.command = command


class InvalidCommandError(CommandError):
    """Command text is empty or otherwise unusable before any processing."""
    pass


class CorrectionUnavailableError(CommandError):
    """The corrector could not obtain a usable corrected command.

    The raw transcript is never used as a substitute.
    """
    pass


class InterpretationUnavailableError(CommandError):
    """The interpretation collaborator failed or timed out."""
    pass


class InvalidInterpretationError(CommandError):
    """The interpretation response was malformed or out of range."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        field: Optional[str] = None,
        value: Any = None,
        raw_response: Optional[str] = None,
    ) -> None:
        super().__init__(message, command)
        if field:
            self.details["field"] = field
        if value is not None:
            self.details["value"] = value
        self.field = field
        self.value = value
        self.raw_response = raw_response


class CommandRejectedError(CommandError):
    """A remote command processor answered with an error or non-2xx status."""

    def __init__(
        self,
        message: str,
        command: Optional[str] = None,
        status: Optional[int] = None,
    ) -> None:
        super().__init__(message, command)
        if status is not None:
            self.details["status"] = status
        self.status = status


# =============================================================================
# Audio Errors
# =============================================================================

class AudioError(HelmsmanError):
    """Base class for audio feedback errors."""
    pass


class AudioChannelError(AudioError):
    """A single speech channel failed to speak the text."""

    def __init__(
        self,
        message: str,
        channel: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        details = kwargs
        if channel:
            details["channel"] = channel
        super().__init__(message, details)
        self.channel = channel


class AudioPlaybackFailedError(AudioError):
    """Both the primary and the fallback speech channels failed.

    Ship state already merged for the command is kept.
    """
    pass


# =============================================================================
# Convenience aliases
# =============================================================================

Error = HelmsmanError
MissingCredential = MissingCredentialError
CaptureUnavailable = CaptureUnavailableError
SpeechRecognitionFailed = SpeechRecognitionError
CorrectionUnavailable = CorrectionUnavailableError
InvalidInterpretation = InvalidInterpretationError
AudioPlaybackFailed = AudioPlaybackFailedError
