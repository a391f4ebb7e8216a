from __future__ import annotations

from typing import Optional


class InterviewCoachError(RuntimeError):
    pass


class ConfigurationError(InterviewCoachError):
    pass


class PermissionDeniedError(InterviewCoachError):
    def __init__(self, message: str = "Microphone access denied. Please allow microphone access.") -> None:
        super().__init__(message)


class DeviceUnavailableError(InterviewCoachError):
    def __init__(self, message: str = "No microphone found. Connect an input device and try again.") -> None:
        super().__init__(message)


class TranscriptionError(InterviewCoachError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class ModelError(InterviewCoachError):
    """
    Failure of the conversational model service.
    `status` is the provider's HTTP status when one was received.
    """

    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class RateLimitedError(ModelError):
    pass


class ModelTimeoutError(ModelError):
    pass


class MalformedResponseError(ModelError):
    pass


class StreamInterruptedError(ModelError):
    """Raised when a reply stream breaks after fragments were delivered."""

    def __init__(self, message: str, full_response: str, status: Optional[int] = None) -> None:
        super().__init__(message, status=status)
        self.full_response = full_response


class SynthesisError(InterviewCoachError):
    def __init__(self, message: str, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.status = status


class PlaybackError(InterviewCoachError):
    pass


class InvalidTransition(InterviewCoachError):
    def __init__(self, command: str, state: object) -> None:
        super().__init__(f"{command} is not accepted while {state}")
        self.command = command
        self.state = state
