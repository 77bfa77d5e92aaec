"""HTTP layer with retry logic for the conversion API client."""

from __future__ import annotations

import contextlib
import random
import sys
from typing import Any

from convert_client.errors import (
    AuthenticationError,
    ConvertError,
    ForbiddenError,
    NotFoundError,
    RateLimitError,
    ServerError,
    ValidationError,
)

VERSION = "1.0.0"

RETRY_CONFIG: dict[str, Any] = {
    "base_delay": 1.0,  # 1 second
    "max_delay": 30.0,  # 30 seconds cap
    "jitter_factor": 0.2,  # ±20% randomization
    # Quota denials (429) are final and never retried
    "retryable_statuses": [500, 502, 503, 504],
}


def calculate_delay(attempt: int) -> float:
    """Calculate delay for retry attempt with exponential backoff and jitter.

    Args:
        attempt: The retry attempt number (0-indexed).

    Returns:
        Delay in seconds with jitter applied.
    """
    base_delay: float = RETRY_CONFIG["base_delay"]
    max_delay: float = RETRY_CONFIG["max_delay"]
    jitter_factor: float = RETRY_CONFIG["jitter_factor"]

    # Exponential backoff: base_delay * 2^attempt
    delay: float = min(base_delay * (2**attempt), max_delay)

    # Apply jitter: ±jitter_factor
    jitter: float = delay * jitter_factor * (2 * random.random() - 1)
    return delay + jitter


def map_status_to_error(
    status: int,
    body: dict[str, Any],
    headers: dict[str, str],
) -> ConvertError:
    """Map an error response to the matching exception.

    Args:
        status: HTTP status code.
        body: Response body as dict (``{"success": false, "error", "message"}``).
        headers: Response headers.

    Returns:
        Appropriate ConvertError subclass instance.
    """
    message = body.get("message") or body.get("error") or "Unknown error"

    if status == 400:
        return ValidationError(message=message, code="validation_error", status=status)
    elif status == 401:
        return AuthenticationError(message=message, code="authentication_error", status=status)
    elif status == 403:
        return ForbiddenError(message=message, code="forbidden", status=status)
    elif status == 404:
        return NotFoundError(message=message, code="not_found", status=status)
    elif status == 429:
        retry_after: int | None = None
        retry_after_header = headers.get("retry-after")
        if retry_after_header is not None:
            with contextlib.suppress(ValueError):
                retry_after = int(retry_after_header)
        return RateLimitError(
            message=message,
            code="rate_limit_error",
            status=status,
            retry_after=retry_after,
            limits=body.get("limits"),
            reason=body.get("reason"),
        )
    elif status >= 500:
        return ServerError(message=message, code="server_error", status=status)
    else:
        return ConvertError(message=message, code="unknown_error", status=status)


def build_headers(api_key: str) -> dict[str, str]:
    """Build HTTP request headers.

    Args:
        api_key: API key or session token.

    Returns:
        Dict of headers to include in requests.
    """
    python_version = f"{sys.version_info.major}.{sys.version_info.minor}"
    user_agent = f"pdf-convert-client/{VERSION} python/{python_version}"

    return {
        "Authorization": f"Bearer {api_key}",
        "Accept": "application/json",
        "User-Agent": user_agent,
    }
