"""Exception classes for shapesync."""

from __future__ import annotations


class ShapeSyncError(Exception):
    """Base exception for all shapesync errors."""


class AuthenticationError(ShapeSyncError):
    """Raised when a bearer credential cannot be turned into a user id.

    Attributes:
        reason: Short machine-readable reason (missing, malformed, expired, ...).
    """

    def __init__(self, reason: str, message: str | None = None) -> None:
        """Initialize the exception.

        Args:
            reason: Short machine-readable reason.
            message: Optional human-readable message.
        """
        super().__init__(message or reason)
        self.reason = reason


class MessageValidationError(ShapeSyncError):
    """Raised when an inbound frame or its embedded payload is malformed.

    Attributes:
        code: Error code reported back to the sender.
        message: Human-readable description.
    """

    def __init__(self, code: str, message: str) -> None:
        """Initialize the exception.

        Args:
            code: Error code reported back to the sender.
            message: Human-readable description.
        """
        super().__init__(message)
        self.code = code
        self.message = message


class StorageError(ShapeSyncError):
    """Raised when a durable store operation fails."""

