"""Tests for the sync conversion Client."""

from __future__ import annotations

import os

import httpx
import pytest
from pytest_httpx import HTTPXMock

from convert_client import Client
from convert_client.errors import (
    AuthenticationError,
    ConversionFailed,
    ForbiddenError,
    NetworkError,
    NotFoundError,
    PollingTimeout,
    RateLimitError,
    ServerError,
    ValidationError,
)
from convert_client.types import Job, SubmittedJob, Usage

BASE = "http://localhost:8000"
KEY = "sk-" + "a" * 32


def job_payload(status: str, **extra) -> dict:
    data = {
        "jobId": "job_abc",
        "toolType": "pdf_to_word",
        "status": status,
        "inputFilename": "report.pdf",
        "outputFilename": None,
        "errorMessage": None,
        "downloadUrl": None,
    }
    data.update(extra)
    return {"success": True, "data": data}


@pytest.fixture
def no_sleep(mocker):
    return mocker.patch("convert_client.client.time.sleep")


class TestClientInitialization:
    def test_client_requires_api_key(self, monkeypatch: pytest.MonkeyPatch):
        """Client should raise ValueError if no API key is provided."""
        monkeypatch.delenv("CONVERT_API_KEY", raising=False)
        with pytest.raises(ValueError, match="API key required"):
            Client()

    def test_client_uses_env_var(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setenv("CONVERT_API_KEY", "env_test_key")
        client = Client()
        assert client._api_key == "env_test_key"
        client.close()

    def test_client_strips_trailing_slash(self):
        client = Client(api_key=KEY, base_url="https://convert.example.com/")
        assert client._base_url == "https://convert.example.com"
        client.close()

    def test_client_context_manager(self):
        with Client(api_key=KEY) as client:
            assert not client._http_client.is_closed
        assert client._http_client.is_closed


class TestConvert:
    def test_convert_uploads_file(self, httpx_mock: HTTPXMock, tmp_path):
        source = tmp_path / "report.pdf"
        source.write_bytes(b"%PDF-1.7")
        httpx_mock.add_response(
            url=f"{BASE}/api/convert?tool=pdf_to_word",
            method="POST",
            status_code=202,
            json={"success": True, "data": {
                "jobId": "job_abc", "status": "pending", "estimatedTime": 30,
                "toolName": "PDF to Word", "inputFile": "report.pdf",
            }},
        )

        with Client(api_key=KEY) as client:
            submitted = client.convert(source, "pdf_to_word", options={"quality": "high"})

        assert submitted == SubmittedJob("job_abc", "pending", 30, "PDF to Word", "report.pdf")
        request = httpx_mock.get_request()
        assert request.headers["Authorization"] == f"Bearer {KEY}"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.read()
        assert b'filename="report.pdf"' in body
        assert b'{"quality": "high"}' in body

    def test_quota_denial_is_not_retried(self, httpx_mock: HTTPXMock, tmp_path, no_sleep):
        source = tmp_path / "report.pdf"
        source.write_bytes(b"%PDF")
        httpx_mock.add_response(
            url=f"{BASE}/api/convert?tool=pdf_to_word",
            method="POST",
            status_code=429,
            json={
                "success": False,
                "error": "Rate limit exceeded",
                "message": "Daily conversion limit reached",
                "reason": "daily_limit_exceeded",
                "plan": "free",
                "limits": {"dailyUsage": 10, "dailyLimit": 10, "monthlyUsage": 10, "monthlyLimit": 100},
            },
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(RateLimitError) as exc_info:
                client.convert(source, "pdf_to_word")

        error = exc_info.value
        assert error.limits["dailyUsage"] == error.limits["dailyLimit"]
        assert error.reason == "daily_limit_exceeded"
        assert str(error) == "Daily conversion limit reached"
        assert len(httpx_mock.get_requests()) == 1
        no_sleep.assert_not_called()

    def test_server_error_on_submission_is_not_retried(self, httpx_mock: HTTPXMock, tmp_path, no_sleep):
        source = tmp_path / "report.pdf"
        source.write_bytes(b"%PDF")
        httpx_mock.add_response(
            url=f"{BASE}/api/convert?tool=pdf_to_word",
            method="POST",
            status_code=500,
            json={"success": False, "error": "Internal server error"},
        )

        with Client(api_key=KEY, retries=3) as client:
            with pytest.raises(ServerError):
                client.convert(source, "pdf_to_word")

        assert len(httpx_mock.get_requests()) == 1
        no_sleep.assert_not_called()

    def test_connection_error_on_submission_is_not_retried(self, httpx_mock: HTTPXMock, tmp_path, no_sleep):
        source = tmp_path / "report.pdf"
        source.write_bytes(b"%PDF")
        httpx_mock.add_exception(httpx.ReadTimeout("timed out"))

        with Client(api_key=KEY, retries=3) as client:
            with pytest.raises(NetworkError):
                client.convert(source, "pdf_to_word")

        assert len(httpx_mock.get_requests()) == 1


class TestRequests:
    def test_get_job(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=job_payload("processing"))

        with Client(api_key=KEY) as client:
            job = client.get_job("job_abc")

        assert isinstance(job, Job)
        assert job.status == "processing"
        assert job.is_terminal is False

    def test_list_jobs(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(
            url=f"{BASE}/api/jobs?limit=5",
            json={"success": True, "data": [job_payload("completed")["data"]]},
        )

        with Client(api_key=KEY) as client:
            jobs = client.list_jobs(limit=5)

        assert [job.job_id for job in jobs] == ["job_abc"]

    def test_usage(self, httpx_mock: HTTPXMock):
        httpx_mock.add_response(url=f"{BASE}/api/usage", json={"success": True, "data": {
            "plan": "free", "dailyUsage": 3, "dailyLimit": 10, "monthlyUsage": 3,
            "monthlyLimit": 100, "remainingDaily": 7, "remainingMonthly": 97,
        }})

        with Client(api_key=KEY) as client:
            usage = client.usage()

        assert usage == Usage("free", 3, 10, 3, 100, 7, 97)

    @pytest.mark.parametrize("status,error_class", [
        (401, AuthenticationError),
        (403, ForbiddenError),
        (404, NotFoundError),
    ])
    def test_error_statuses(self, httpx_mock: HTTPXMock, status, error_class):
        httpx_mock.add_response(
            url=f"{BASE}/api/jobs/job_abc",
            status_code=status,
            json={"success": False, "error": "nope"},
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(error_class) as exc_info:
                client.get_job("job_abc")

        assert exc_info.value.status == status

    def test_server_error_is_retried(self, httpx_mock: HTTPXMock, no_sleep):
        httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", status_code=503, json={"success": False, "error": "busy"})
        httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=job_payload("pending"))

        with Client(api_key=KEY, retries=2) as client:
            job = client.get_job("job_abc")

        assert job.status == "pending"
        assert no_sleep.call_count == 1

    def test_server_error_after_retries(self, httpx_mock: HTTPXMock, no_sleep):
        for _ in range(2):
            httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", status_code=500, json={"success": False, "error": "boom"})

        with Client(api_key=KEY, retries=1) as client:
            with pytest.raises(ServerError):
                client.get_job("job_abc")

    def test_connection_error(self, httpx_mock: HTTPXMock, no_sleep):
        for _ in range(2):
            httpx_mock.add_exception(httpx.ConnectError("connection refused"))

        with Client(api_key=KEY, retries=1) as client:
            with pytest.raises(NetworkError):
                client.get_job("job_abc")


class TestWaitForJob:
    def test_returns_completed_job(self, httpx_mock: HTTPXMock, no_sleep):
        for payload in (
            job_payload("pending"),
            job_payload("processing"),
            job_payload("completed", outputFilename="report_converted_1.docx", downloadUrl="/api/download/job_abc"),
        ):
            httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=payload)

        with Client(api_key=KEY) as client:
            job = client.wait_for_job("job_abc")

        assert job.status == "completed"
        assert job.download_url == "/api/download/job_abc"
        assert no_sleep.call_count == 2
        no_sleep.assert_called_with(2.0)

    def test_failed_job_raises_conversion_failed(self, httpx_mock: HTTPXMock, no_sleep):
        httpx_mock.add_response(
            url=f"{BASE}/api/jobs/job_abc",
            json=job_payload("failed", errorMessage="Corrupt input document"),
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(ConversionFailed) as exc_info:
                client.wait_for_job("job_abc")

        assert exc_info.value.error_message == "Corrupt input document"

    def test_polling_budget_exhausted(self, httpx_mock: HTTPXMock, no_sleep):
        for _ in range(3):
            httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=job_payload("pending"))

        with Client(api_key=KEY, max_poll_attempts=3) as client:
            with pytest.raises(PollingTimeout) as exc_info:
                client.wait_for_job("job_abc")

        assert exc_info.value.attempts == 3
        assert exc_info.value.last_status == "pending"
        assert exc_info.value.cancelled is False
        assert not isinstance(exc_info.value, ConversionFailed)

    def test_cancel_on_timeout(self, httpx_mock: HTTPXMock, no_sleep):
        for _ in range(2):
            httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=job_payload("pending"))
        httpx_mock.add_response(
            url=f"{BASE}/api/jobs/job_abc/cancel",
            method="POST",
            json=job_payload("failed", errorMessage="Cancelled by client"),
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(PollingTimeout) as exc_info:
                client.wait_for_job("job_abc", max_attempts=2, cancel_on_timeout=True)

        assert exc_info.value.cancelled is True

    def test_cancel_refused_once_processing(self, httpx_mock: HTTPXMock, no_sleep):
        httpx_mock.add_response(url=f"{BASE}/api/jobs/job_abc", json=job_payload("processing"))
        httpx_mock.add_response(
            url=f"{BASE}/api/jobs/job_abc/cancel",
            method="POST",
            status_code=409,
            json={"success": False, "error": "Job cannot be cancelled", "status": "processing"},
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(PollingTimeout) as exc_info:
                client.wait_for_job("job_abc", max_attempts=1, cancel_on_timeout=True)

        assert exc_info.value.cancelled is False
        assert exc_info.value.last_status == "processing"


class TestDownload:
    def test_download_writes_file(self, httpx_mock: HTTPXMock, tmp_path):
        httpx_mock.add_response(url=f"{BASE}/api/download/job_abc", content=b"converted bytes")

        with Client(api_key=KEY) as client:
            written = client.download("job_abc", tmp_path / "out.docx")

        assert written.read_bytes() == b"converted bytes"

    def test_download_not_ready(self, httpx_mock: HTTPXMock, tmp_path):
        httpx_mock.add_response(
            url=f"{BASE}/api/download/job_abc",
            status_code=400,
            json={"success": False, "error": "Not ready", "message": "Job is pending"},
        )

        with Client(api_key=KEY) as client:
            with pytest.raises(ValidationError) as exc_info:
                client.download("job_abc", tmp_path / "out.docx")

        assert exc_info.value.status == 400
        assert not os.path.exists(tmp_path / "out.docx")
