"""Response types for the conversion API client."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

TERMINAL_STATUSES = ("completed", "failed")


@dataclass(frozen=True)
class SubmittedJob:
    """Response from the convert endpoint."""

    job_id: str
    status: str
    estimated_time: int
    tool_name: str
    input_file: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SubmittedJob:
        return cls(
            job_id=data["jobId"],
            status=data["status"],
            estimated_time=data["estimatedTime"],
            tool_name=data["toolName"],
            input_file=data["inputFile"],
        )


@dataclass(frozen=True)
class Job:
    """Status view of a conversion job."""

    job_id: str
    tool_type: str
    status: str
    input_filename: str
    output_filename: str | None = None
    input_file_size: int | None = None
    output_file_size: int | None = None
    processing_time: int | None = None
    error_message: str | None = None
    download_url: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Job:
        return cls(
            job_id=data["jobId"],
            tool_type=data["toolType"],
            status=data["status"],
            input_filename=data["inputFilename"],
            output_filename=data.get("outputFilename"),
            input_file_size=data.get("inputFileSize"),
            output_file_size=data.get("outputFileSize"),
            processing_time=data.get("processingTime"),
            error_message=data.get("errorMessage"),
            download_url=data.get("downloadUrl"),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class Usage:
    """Usage counters and plan limits."""

    plan: str
    daily_usage: int
    daily_limit: int
    monthly_usage: int
    monthly_limit: int
    remaining_daily: int
    remaining_monthly: int

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Usage:
        return cls(
            plan=data["plan"],
            daily_usage=data["dailyUsage"],
            daily_limit=data["dailyLimit"],
            monthly_usage=data["monthlyUsage"],
            monthly_limit=data["monthlyLimit"],
            remaining_daily=data["remainingDaily"],
            remaining_monthly=data["remainingMonthly"],
        )
