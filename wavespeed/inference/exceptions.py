"""
Exceptions for prediction and upload operations.

Provides specialized exceptions for:
- Missing configuration (API key)
- Exhausted connection-level retries
- Non-200 HTTP / API responses
- Malformed service responses
- Failed, timed out and cancelled predictions
- Upload failures

Every exception carries an ``ErrorKind`` so retry decisions are made on
the error's type and status code, never on message text.
"""
from __future__ import annotations

from enum import Enum
from typing import Any, Optional

import httpx


class ErrorKind(str, Enum):
    """Classification of SDK errors."""
    UNKNOWN = "unknown"
    CONFIGURATION = "configuration"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    MALFORMED_RESPONSE = "malformed_response"
    PREDICTION_FAILED = "prediction_failed"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"
    UPLOAD = "upload"
    JOB_STATE = "job_state"


class WaveSpeedError(Exception):
    """
    Base exception for SDK operations.

    Raised when a prediction or upload fails for any reason.
    """

    kind: ErrorKind = ErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        details: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize SDK error.

        Args:
            message: Human-readable error message
            details: Additional error details
        """
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        result = {
            "error": self.kind.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class ConfigurationError(WaveSpeedError, ValueError):
    """
    Required configuration is missing.

    Raised before any network call when no API key is available.
    """

    kind = ErrorKind.CONFIGURATION


class ConnectionExhaustedError(WaveSpeedError):
    """
    Transport-level retries were exhausted.

    Raised by the connection retrier after every attempt failed below the
    HTTP status layer. The last transport error is chained as ``__cause__``.
    """

    kind = ErrorKind.CONNECTION

    def __init__(
        self,
        message: str = "Connection failed",
        attempts: int = 1,
        original_error: Optional[BaseException] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize connection error.

        Args:
            message: Human-readable error message
            attempts: Number of attempts made
            original_error: Last transport exception
            details: Additional error details
        """
        details = details or {}
        details["attempts"] = attempts
        if original_error is not None:
            details["original_error"] = str(original_error)
            details["original_error_type"] = type(original_error).__name__
        super().__init__(message, details=details)
        self.attempts = attempts
        self.original_error = original_error


class HttpStatusError(WaveSpeedError):
    """
    The service answered with a non-200 status.

    Covers both the HTTP status line and the ``code`` field of the
    response envelope.
    """

    kind = ErrorKind.HTTP_STATUS

    def __init__(
        self,
        message: str,
        status_code: int,
        body: str = "",
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details["status_code"] = status_code
        super().__init__(f"{message}: HTTP {status_code}: {body}", details=details)
        self.status_code = status_code
        self.body = body

    @property
    def is_retryable(self) -> bool:
        """Server errors and rate limiting are worth a fresh attempt."""
        return self.status_code >= 500 or self.status_code == 429


class MalformedResponseError(WaveSpeedError):
    """Response could not be decoded or lacks a required field."""

    kind = ErrorKind.MALFORMED_RESPONSE


class PredictionFailedError(WaveSpeedError):
    """
    The service reported the prediction as failed.

    A genuine model-level failure; never retried.
    """

    kind = ErrorKind.PREDICTION_FAILED

    def __init__(
        self,
        prediction_id: Optional[str],
        error: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """
        Initialize prediction failure.

        Args:
            prediction_id: Service-assigned prediction id ("unknown" if absent)
            error: Service-reported reason
            details: Additional error details
        """
        self.prediction_id = prediction_id or "unknown"
        self.error = error or "Unknown error"
        details = details or {}
        details["prediction_id"] = self.prediction_id
        super().__init__(
            f"Prediction failed (task_id: {self.prediction_id}): {self.error}",
            details=details,
        )


class PredictionTimeoutError(WaveSpeedError):
    """
    Prediction did not finish within the attempt's time budget.

    Raised while polling, before the next fetch is issued.
    """

    kind = ErrorKind.TIMEOUT

    def __init__(
        self,
        prediction_id: Optional[str],
        timeout_seconds: float,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        details["timeout_seconds"] = timeout_seconds
        details["prediction_id"] = prediction_id
        super().__init__(
            f"Prediction timed out after {timeout_seconds} seconds "
            f"(task_id: {prediction_id})",
            details=details,
        )
        self.prediction_id = prediction_id
        self.timeout_seconds = timeout_seconds


class PredictionCancelledError(WaveSpeedError):
    """The caller's cancellation signal was set."""

    kind = ErrorKind.CANCELLED

    def __init__(
        self,
        message: str = "Prediction cancelled",
        prediction_id: Optional[str] = None,
    ):
        super().__init__(message, details={"prediction_id": prediction_id})
        self.prediction_id = prediction_id


class UploadError(WaveSpeedError):
    """
    Upload failed.

    Uploads are retried at the connection level only; this error is final.
    """

    kind = ErrorKind.UPLOAD

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        super().__init__(message, details=details)
        self.status_code = status_code


class JobStateError(WaveSpeedError):
    """A job update would break its lifecycle invariants."""

    kind = ErrorKind.JOB_STATE


# Kinds that restart the whole task when attempts remain
_RETRYABLE_KINDS = frozenset({
    ErrorKind.CONNECTION,
    ErrorKind.TIMEOUT,
})


def is_retryable(error: BaseException) -> bool:
    """
    Decide whether a failed task attempt should be restarted.

    Retryable: exhausted connection retries, prediction timeouts,
    HTTP 5xx and HTTP 429. Everything else is surfaced immediately.

    Args:
        error: Exception raised by a task attempt

    Returns:
        True if the error is retryable
    """
    if isinstance(error, HttpStatusError):
        return error.is_retryable
    if isinstance(error, WaveSpeedError):
        return error.kind in _RETRYABLE_KINDS
    # Transport errors are normally wrapped by the retrier
    return isinstance(error, httpx.TransportError)
