"""Exception hierarchy for sprite capture sessions and tools."""


class CaptureError(Exception):
    """Base exception for all sprite-capture errors."""


class ConfigurationError(CaptureError):
    """Raised when an export request is incomplete or out of range.

    Reported to the operator; the session state is left untouched.
    """


class SessionConflictError(ConfigurationError):
    """Raised when another active session already owns the (subject, animation) pair."""


class RenderFailure(CaptureError):
    """Raised when the renderer or the animation lookup produced no frame."""


class StorageFailure(CaptureError):
    """Raised when a frame or atlas file cannot be written, read or deleted."""


class InvariantViolation(CaptureError):
    """Raised when an internal ordering guarantee is broken (e.g. a frame outgrows its cell)."""


class ValidationError(CaptureError):
    """Raised when tool parameter validation fails."""
