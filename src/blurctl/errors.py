"""Error taxonomy surfaced by the blur control session."""

from __future__ import annotations


class BlurError(RuntimeError):
    """Base class for every error raised to session callers."""


class ValidationError(BlurError):
    """Raised when user input cannot be encoded; no command is sent."""


class InvalidIntensity(ValidationError):
    pass


class InvalidColor(ValidationError):
    pass


class ChannelError(BlurError):
    """Transport or native-side failure with an opaque message."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class SessionBusy(BlurError):
    """Raised when an operation is requested while another is outstanding."""


class AlreadyInitialized(BlurError):
    """Raised when initialize() is called on a session that is already ready."""


class NotInitialized(BlurError):
    """Raised when apply/clear is requested before the session is ready."""
