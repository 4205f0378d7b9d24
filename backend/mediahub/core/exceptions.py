"""
Custom exceptions for MediaHub operations.

Every failure of a mutating operation is raised synchronously to its caller;
the caller's unit of work (``session_scope``) rolls back so no partial record
is ever persisted.
"""

from typing import Any, Optional


class MediaHubError(Exception):
    """Base exception for all MediaHub errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value!r}" for key, value in self.details.items())
        return f"{self.message} ({context})"


class ValidationError(MediaHubError):
    """Raised for malformed input, unknown enum values or a broken reference rule."""

    pass


class ConflictError(MediaHubError):
    """Raised when a write would violate a uniqueness constraint."""

    pass


class NotFoundError(MediaHubError):
    """Raised when a record looked up by id does not exist."""

    pass


class InvalidStateError(MediaHubError):
    """Raised on an illegal lifecycle or state transition."""

    pass


class CodecError(MediaHubError):
    """Base class for notification payload codec faults."""

    pass


class CompressionError(CodecError):
    """Raised when a message body cannot be compressed."""

    pass


class DecompressionError(CodecError):
    """Raised when stored bytes are not a valid compressed stream."""

    pass
