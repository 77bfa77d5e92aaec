"""Exception classes for the conversion API client."""

from __future__ import annotations

from typing import Any


class ConvertError(Exception):
    """Base exception for all conversion client errors."""

    def __init__(
        self,
        message: str,
        *,
        code: str,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.status = status


class AuthenticationError(ConvertError):
    """Raised for 401 Unauthorized responses."""

    pass


class ForbiddenError(ConvertError):
    """Raised for 403 responses (expired session, someone else's job)."""

    pass


class NotFoundError(ConvertError):
    """Raised for 404 Not Found responses."""

    pass


class RateLimitError(ConvertError):
    """Raised for 429 responses.

    ``limits`` carries the usage payload of a quota denial; ``retry_after`` is
    set for per-key throttling.
    """

    def __init__(
        self,
        message: str,
        *,
        code: str,
        status: int | None = None,
        retry_after: int | None = None,
        limits: dict[str, Any] | None = None,
        reason: str | None = None,
    ) -> None:
        super().__init__(message, code=code, status=status)
        self.retry_after = retry_after
        self.limits = limits
        self.reason = reason


class ValidationError(ConvertError):
    """Raised for 400 Bad Request responses."""

    pass


class ServerError(ConvertError):
    """Raised for 5xx server errors."""

    pass


class NetworkError(ConvertError):
    """Raised for connection failures, timeouts, etc."""

    pass


class ConversionFailed(ConvertError):
    """The job was accepted but the server could not convert it."""

    def __init__(self, job_id: str, error_message: str | None) -> None:
        super().__init__(
            error_message or "Conversion failed",
            code="conversion_failed",
        )
        self.job_id = job_id
        self.error_message = error_message


class PollingTimeout(ConvertError):
    """The job did not finish within the polling budget.

    The server may still complete it later unless it was cancelled.
    """

    def __init__(self, job_id: str, attempts: int, last_status: str | None, *, cancelled: bool = False) -> None:
        super().__init__(
            f"Job {job_id} still {last_status} after {attempts} polls",
            code="polling_timeout",
        )
        self.job_id = job_id
        self.attempts = attempts
        self.last_status = last_status
        self.cancelled = cancelled
