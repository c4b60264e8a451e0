"""
Classification of resolution failures.

Every failed resolution is turned into a StreamError so the scheduler can
log and report it without raising.
"""

import asyncio
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any

from playfeed.constants import ERROR_HISTORY_LIMIT

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Classification of error types."""

    TIMEOUT = "timeout"  # Resolution exceeded its time budget
    NETWORK_ERROR = "network_error"  # Connection failures, DNS
    NOT_FOUND = "not_found"  # Missing file, HTTP 404/410
    PERMISSION_ERROR = "permission_error"  # Unreadable, 401/403, outside allowed paths
    RATE_LIMIT_ERROR = "rate_limit_error"  # HTTP 429, quota
    HTTP_500 = "http_500"  # Server errors
    HTTP_OTHER = "http_other"  # Other HTTP errors
    FORMAT_ERROR = "format_error"  # Not a playable file
    NO_RESOLVER = "no_resolver"  # No resolver accepts the candidate
    UNKNOWN = "unknown"  # Unclassified errors


class ErrorSeverity(str, Enum):
    """Error severity levels."""

    LOW = "low"  # Transient, candidate may work later
    MEDIUM = "medium"  # Candidate likely broken
    HIGH = "high"  # Source or configuration problem


@dataclass
class StreamError:
    """Represents a resolution error with context."""

    error_type: ErrorType
    severity: ErrorSeverity
    message: str
    original_exception: Exception | None = None
    context: dict[str, Any] | None = None
    timestamp: datetime | None = None

    def __post_init__(self):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow()
        if self.context is None:
            self.context = {}


# Ordered: the first rule with a matching term wins
MESSAGE_RULES: list[tuple[ErrorType, ErrorSeverity, tuple[str, ...]]] = [
    (ErrorType.NO_RESOLVER, ErrorSeverity.HIGH, ("no resolver",)),
    (ErrorType.NOT_FOUND, ErrorSeverity.MEDIUM, ("not found", "no such file", "404", "410")),
    (
        ErrorType.PERMISSION_ERROR,
        ErrorSeverity.HIGH,
        (
            "not readable",
            "not in allowed",
            "permission denied",
            "access denied",
            "401",
            "403",
            "unauthorized",
            "forbidden",
        ),
    ),
    (ErrorType.RATE_LIMIT_ERROR, ErrorSeverity.HIGH, ("rate limit", "too many requests", "429", "quota")),
    (ErrorType.HTTP_500, ErrorSeverity.LOW, ("500", "internal server error")),
    (ErrorType.HTTP_OTHER, ErrorSeverity.LOW, ("400", "502", "503", "504")),
    (ErrorType.NETWORK_ERROR, ErrorSeverity.LOW, ("timeout", "timed out", "connection", "network", "dns")),
    (ErrorType.FORMAT_ERROR, ErrorSeverity.MEDIUM, ("not a file", "unsupported", "format", "codec")),
]

STATUS_RULES: dict[int, tuple[ErrorType, ErrorSeverity]] = {
    401: (ErrorType.PERMISSION_ERROR, ErrorSeverity.HIGH),
    403: (ErrorType.PERMISSION_ERROR, ErrorSeverity.HIGH),
    404: (ErrorType.NOT_FOUND, ErrorSeverity.MEDIUM),
    410: (ErrorType.NOT_FOUND, ErrorSeverity.MEDIUM),
    429: (ErrorType.RATE_LIMIT_ERROR, ErrorSeverity.HIGH),
    500: (ErrorType.HTTP_500, ErrorSeverity.LOW),
}


class ErrorClassifier:
    """Classifies errors into error types and severity."""

    @staticmethod
    def classify(error: Exception, context: dict[str, Any] | None = None) -> StreamError:
        """
        Classify an exception into a StreamError.

        Timeouts are recognised by type, everything else by message. An
        `http_status_code` in the context takes precedence over the message.

        Args:
            error: The exception to classify.
            context: Additional context about the error.

        Returns:
            StreamError with classified type and severity.
        """
        context = context if context is not None else {}
        error_type, severity = ErrorClassifier._from_message(error)

        status = context.get("http_status_code")
        if status:
            if status in STATUS_RULES:
                error_type, severity = STATUS_RULES[status]
            elif 400 <= status < 600:
                error_type = ErrorType.HTTP_OTHER

        return StreamError(
            error_type=error_type,
            severity=severity,
            message=str(error) or error.__class__.__name__,
            original_exception=error,
            context=context,
        )

    @staticmethod
    def _from_message(error: Exception) -> tuple[ErrorType, ErrorSeverity]:
        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return ErrorType.TIMEOUT, ErrorSeverity.LOW

        text = str(error).lower()
        for error_type, severity, terms in MESSAGE_RULES:
            if any(term in text for term in terms):
                return error_type, severity
        return ErrorType.UNKNOWN, ErrorSeverity.MEDIUM


class ErrorHandler:
    """Records classified resolution errors for inspection."""

    def __init__(self, history_limit: int = ERROR_HISTORY_LIMIT):
        """
        Initialize error handler.

        Args:
            history_limit: Number of recent errors to keep.
        """
        self.history_limit = history_limit
        self.classifier = ErrorClassifier()
        self.error_history: list[StreamError] = []

    def handle_error(
        self,
        error: Exception,
        context: dict[str, Any] | None = None,
    ) -> StreamError:
        """
        Classify and record an error.

        Args:
            error: The exception to handle.
            context: Additional context about the error.

        Returns:
            The classified StreamError.
        """
        stream_error = self.classifier.classify(error, context)

        self.error_history.append(stream_error)
        if len(self.error_history) > self.history_limit:
            self.error_history = self.error_history[-self.history_limit:]

        logger.debug(
            f"Error classified: {stream_error.error_type.value} "
            f"(severity: {stream_error.severity.value}): {stream_error.message}"
        )

        return stream_error

    def get_recent_errors(
        self,
        error_type: ErrorType | None = None,
        limit: int = 10,
    ) -> list[StreamError]:
        """Get recent errors, optionally filtered by type."""
        errors = self.error_history[-limit:]
        if error_type:
            errors = [e for e in errors if e.error_type == error_type]
        return errors

    def get_error_counts(self) -> dict[str, int]:
        """Count recorded errors by type."""
        return dict(Counter(e.error_type.value for e in self.error_history))

    def clear(self) -> None:
        """Forget all recorded errors."""
        self.error_history.clear()
