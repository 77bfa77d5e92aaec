"""Sync Client for the PDF conversion API."""

from __future__ import annotations

import json
import logging
import os
import time
from pathlib import Path
from types import TracebackType
from typing import Any

import httpx

from convert_client.errors import (
    ConversionFailed,
    ConvertError,
    NetworkError,
    PollingTimeout,
)
from convert_client.http import (
    RETRY_CONFIG,
    build_headers,
    calculate_delay,
    map_status_to_error,
)
from convert_client.types import Job, SubmittedJob, Usage

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 60


def _error_from_response(response: httpx.Response) -> ConvertError:
    try:
        body = response.json()
    except ValueError:
        body = {"error": response.text or "Unknown error"}
    if not isinstance(body, dict):
        body = {"error": str(body)}
    return map_status_to_error(response.status_code, body, dict(response.headers))


class Client:
    """Synchronous client for the PDF conversion API.

    Usage:
        with Client(api_key="sk-...") as client:
            submitted = client.convert("report.pdf", "pdf_to_word")
            job = client.wait_for_job(submitted.job_id)
            client.download(job.job_id, "report.docx")

    Args:
        api_key: API key (or session token). Falls back to CONVERT_API_KEY env var.
        base_url: Base URL for the API. Defaults to http://localhost:8000
        timeout: Request timeout in seconds. Defaults to 30.0.
        retries: Retry attempts for 5xx and connection errors on reads. Defaults to 3.
        poll_interval: Seconds between status polls. Defaults to 2.0.
        max_poll_attempts: Polls before giving up on a job. Defaults to 60.
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str = "http://localhost:8000",
        timeout: float = 30.0,
        retries: int = 3,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    ) -> None:
        """Initialize the client."""
        resolved_api_key = api_key or os.environ.get("CONVERT_API_KEY")
        if not resolved_api_key:
            msg = "API key required. Provide api_key or set CONVERT_API_KEY env var."
            raise ValueError(msg)

        self._api_key = resolved_api_key
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._retries = retries
        self._poll_interval = poll_interval
        self._max_poll_attempts = max_poll_attempts
        self._http_client = httpx.Client(
            timeout=timeout,
            headers=build_headers(self._api_key),
        )

    def __enter__(self) -> Client:
        """Enter context manager."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager."""
        self.close()

    def close(self) -> None:
        """Close the HTTP client."""
        self._http_client.close()

    def _request(self, method: str, path: str, *, retry: bool = True, **kwargs: Any) -> Any:
        """Make an HTTP request with retry logic and unwrap the envelope.

        Args:
            method: HTTP method (GET, POST, etc.)
            path: API path (e.g., "/api/jobs/job_...")
            retry: Retry on 5xx and connection errors. Off for calls that
                create or change server state.
            **kwargs: Passed through to httpx (params, json, files, data).

        Returns:
            The ``data`` member of a successful response.

        Raises:
            ConvertError: For API errors
            NetworkError: For connection/timeout errors
        """
        url = f"{self._base_url}{path}"
        last_error: ConvertError | None = None
        retries = self._retries if retry else 0

        for attempt in range(retries + 1):
            try:
                response = self._http_client.request(method, url, **kwargs)
            except (httpx.ConnectError, httpx.TimeoutException) as e:
                last_error = NetworkError(
                    message=f"Connection error: {e}",
                    code="network_error",
                )
                if attempt < retries:
                    delay = calculate_delay(attempt)
                    logger.debug(
                        "Retrying after connection error (attempt %d/%d)",
                        attempt + 1,
                        retries,
                    )
                    time.sleep(delay)
                    continue
                raise last_error from e

            if response.status_code >= 400:
                error = _error_from_response(response)
                if response.status_code in RETRY_CONFIG["retryable_statuses"] and attempt < retries:
                    last_error = error
                    delay = calculate_delay(attempt)
                    logger.debug(
                        "Retrying request after %.2fs (attempt %d/%d): %s",
                        delay,
                        attempt + 1,
                        retries,
                        str(error),
                    )
                    time.sleep(delay)
                    continue
                # Non-retryable error, raise immediately
                raise error

            return response.json().get("data")

        # Should only reach here if retries exhausted
        if last_error is not None:
            raise last_error
        raise RuntimeError("Unexpected state: no error but request did not succeed")

    def convert(
        self,
        path: str | Path,
        tool: str,
        *,
        options: dict[str, Any] | None = None,
    ) -> SubmittedJob:
        """Upload a file for conversion.

        Args:
            path: File to convert.
            tool: Tool type, e.g. "pdf_to_word".
            options: Tool options, e.g. {"format": "webp"}.

        Returns:
            SubmittedJob with the job id to poll.
        """
        source = Path(path)
        data = {"options": json.dumps(options)} if options else None
        response = self._request(
            "POST",
            "/api/convert",
            retry=False,
            params={"tool": tool},
            files={"file": (source.name, source.read_bytes(), "application/octet-stream")},
            data=data,
        )
        return SubmittedJob.from_dict(response)

    def get_job(self, job_id: str) -> Job:
        """Fetch the current status of a job."""
        return Job.from_dict(self._request("GET", f"/api/jobs/{job_id}"))

    def list_jobs(self, *, limit: int = 50) -> list[Job]:
        """List the caller's jobs, newest first."""
        response = self._request("GET", "/api/jobs", params={"limit": limit})
        return [Job.from_dict(item) for item in response]

    def cancel(self, job_id: str) -> Job:
        """Cancel a job that has not started processing."""
        return Job.from_dict(self._request("POST", f"/api/jobs/{job_id}/cancel", retry=False))

    def wait_for_job(
        self,
        job_id: str,
        *,
        poll_interval: float | None = None,
        max_attempts: int | None = None,
        cancel_on_timeout: bool = False,
    ) -> Job:
        """Poll until the job completes.

        Args:
            job_id: Job to wait for.
            poll_interval: Seconds between polls. Defaults to the client setting.
            max_attempts: Poll budget. Defaults to the client setting.
            cancel_on_timeout: Cancel the job on the server when the budget runs
                out, so a queued job cannot complete after the caller gave up.

        Returns:
            The completed Job.

        Raises:
            ConversionFailed: The server finished the job as failed.
            PollingTimeout: The job was still running after the last poll.
        """
        interval = self._poll_interval if poll_interval is None else poll_interval
        attempts = self._max_poll_attempts if max_attempts is None else max_attempts
        job: Job | None = None

        for attempt in range(attempts):
            job = self.get_job(job_id)
            if job.status == "completed":
                return job
            if job.status == "failed":
                raise ConversionFailed(job_id, job.error_message)
            if attempt < attempts - 1:
                time.sleep(interval)

        last_status = job.status if job else None
        cancelled = False
        if cancel_on_timeout:
            try:
                self.cancel(job_id)
                cancelled = True
            except ConvertError as e:
                # Already processing; the server will still finish it
                logger.debug("Could not cancel job %s: %s", job_id, e)
        raise PollingTimeout(job_id, attempts, last_status, cancelled=cancelled)

    def download(self, job_id: str, destination: str | Path) -> Path:
        """Stream a completed job's output to ``destination``.

        Returns:
            The path written.
        """
        target = Path(destination)
        url = f"{self._base_url}/api/download/{job_id}"
        try:
            with self._http_client.stream("GET", url) as response:
                if response.status_code >= 400:
                    response.read()
                    raise _error_from_response(response)
                with open(target, "wb") as out:
                    for chunk in response.iter_bytes():
                        out.write(chunk)
        except (httpx.ConnectError, httpx.TimeoutException) as e:
            raise NetworkError(message=f"Connection error: {e}", code="network_error") from e
        return target

    def usage(self) -> Usage:
        """Current usage counters and limits."""
        return Usage.from_dict(self._request("GET", "/api/usage"))
