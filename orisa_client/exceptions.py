"""
Exception hierarchy for the Orisa client session layer.

Nothing in this layer is fatal. Transport failures are retried by the channel,
malformed frames are dropped, and user-intent misuse is ignored. The classes
here exist so those absorbed failures are reported with structured context
instead of bare strings.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .logging_config import get_logger

logger = get_logger(__name__)

# Longest slice of a raw frame that is ever copied into an error or a log line
RAW_PREVIEW_LENGTH = 120


@dataclass
class ErrorContext:
    """
    Contextual information for error reporting.

    Attributes mirror what the client knows at the point of failure: who is
    logged in, which channel generation was live, and which message type (if
    any) was involved.
    """

    username: str | None = None
    generation: int | None = None
    message_type: str | None = None
    timestamp: datetime = field(default_factory=datetime.now)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert context to dictionary for logging."""
        return {
            "username": self.username,
            "generation": self.generation,
            "message_type": self.message_type,
            "timestamp": self.timestamp.isoformat(),
            "metadata": self.metadata,
        }


class OrisaClientError(Exception):
    """
    Base exception for all Orisa client errors.

    Carries an ErrorContext plus free-form details, and logs itself on
    construction at ``log_level``.
    """

    log_level = "error"

    def __init__(
        self,
        message: str,
        context: ErrorContext | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the error.

        Args:
            message: Technical error message
            context: Error context information
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()
        self.details = details or {}
        self.timestamp = datetime.now()

        self._log_error()

    def _log_error(self) -> None:
        """Log the error with structured context."""
        log = getattr(logger, self.log_level)
        log(
            "Orisa client error occurred",
            error_type=self.__class__.__name__,
            message=self.message,
            context=self.context.to_dict(),
            details=self.details,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for diagnostics."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "context": self.context.to_dict(),
            "details": self.details,
            "timestamp": self.timestamp.isoformat(),
        }


class MessageDecodeError(OrisaClientError):
    """
    A frame could not be decoded into a known message variant.

    Raised by the protocol decoders; the channel catches it, drops the frame
    and keeps the connection open.
    """

    log_level = "debug"

    def __init__(self, raw: str | bytes, reason: str, context: ErrorContext | None = None):
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        self.raw_preview = raw[:RAW_PREVIEW_LENGTH]
        self.reason = reason
        super().__init__(
            f"Could not decode frame: {reason}",
            context,
            details={"raw_preview": self.raw_preview, "reason": reason},
        )


class ConfigurationError(OrisaClientError):
    """Invalid client configuration."""

    def __init__(self, message: str, setting: str | None = None, **kwargs):
        super().__init__(message, **kwargs)
        self.setting = setting
        if setting:
            self.details["setting"] = setting
