"""Conversion job registry.

Jobs move strictly forward::

    pending -> processing -> completed
                          -> failed

A pending job may also go straight to failed through `cancel`. Every
transition is a compare-and-set on the stored status, so a job observed in a
terminal state never changes again.
"""
import logging
from datetime import datetime
from pathlib import PurePath
from typing import Callable, Optional

from convert_server.catalog import ToolConfig, get_tool
from convert_server.crypto import generate_id
from convert_server.models import ConversionJob
from convert_server.store import Store

logger = logging.getLogger(__name__)

PENDING = "pending"
PROCESSING = "processing"
COMPLETED = "completed"
FAILED = "failed"

CANCELLED_MESSAGE = "Cancelled by client"


class JobNotFound(LookupError):
    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} does not exist")
        self.job_id = job_id


class InvalidTransition(Exception):
    def __init__(self, job_id: str, current: Optional[str], target: str):
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class SubmissionRejected(ValueError):
    """A submission that fails catalog validation; no job is ever created for it."""

    def __init__(self, error: str, message: str):
        super().__init__(message)
        self.error = error
        self.message = message


def file_extension(filename: str) -> str:
    return PurePath(filename).suffix.lower().lstrip(".")


def validate_submission(tool_type: Optional[str], filename: Optional[str], file_size: int) -> ToolConfig:
    """Check tool type, extension and size against the catalog."""
    if not tool_type:
        raise SubmissionRejected(
            "Tool parameter required",
            "Specify a tool type with ?tool=<tool_type> or the toolType form field",
        )
    tool = get_tool(tool_type)
    if tool is None:
        raise SubmissionRejected(
            "Invalid tool type",
            f'Tool "{tool_type}" is not supported. Check /api/tools for available tools.',
        )
    if not filename:
        raise SubmissionRejected("File required", "Please upload a file to convert")

    extension = file_extension(filename)
    if not tool.accepts(extension):
        raise SubmissionRejected(
            "Invalid file type",
            f'File type "{extension}" is not supported for {tool.name}. '
            f"Supported types: {', '.join(tool.input_formats)}",
        )
    if file_size <= 0:
        raise SubmissionRejected("Empty file", "The uploaded file is empty")
    if file_size > tool.max_file_size_bytes:
        size_mb = file_size / (1024 * 1024)
        raise SubmissionRejected(
            "File too large",
            f"File size ({size_mb:.2f}MB) exceeds the limit of {tool.max_file_size}MB for {tool.name}",
        )
    return tool


class JobRegistry:
    def __init__(self, store: Store, clock: Callable[[], datetime] = datetime.utcnow):
        self._store = store
        self._clock = clock

    def create(
        self,
        owner_id: Optional[str],
        tool_type: str,
        input_filename: str,
        input_file_size: int,
        *,
        api_key_id: Optional[str] = None,
        options: Optional[dict] = None,
        input_ref: Optional[str] = None,
    ) -> ConversionJob:
        validate_submission(tool_type, input_filename, input_file_size)
        now = self._clock()
        job = ConversionJob(
            id=generate_id("job"),
            user_id=owner_id,
            api_key_id=api_key_id,
            tool_type=tool_type,
            status=PENDING,
            input_filename=input_filename,
            input_file_size=input_file_size,
            options=options or {},
            input_ref=input_ref,
            created_at=now,
            updated_at=now,
        )
        self._store.create_job(job)
        logger.info("Created job %s (%s) for owner %s", job.id, tool_type, owner_id or "anonymous")
        return job

    def get(self, job_id: str) -> ConversionJob:
        job = self._store.get_job(job_id)
        if job is None:
            raise JobNotFound(job_id)
        return job

    def list_by_owner(self, owner_id: str, limit: Optional[int] = None) -> list[ConversionJob]:
        """Owner's jobs, newest first."""
        return self._store.list_jobs(owner_id, limit)

    def _transition(self, job_id: str, expected: tuple[str, ...], target: str, **fields) -> ConversionJob:
        job = self._store.update_job_if_status(
            job_id, expected, status=target, updated_at=self._clock(), **fields
        )
        if job is None:
            current = self._store.get_job(job_id)
            if current is None:
                raise JobNotFound(job_id)
            raise InvalidTransition(job_id, current.status, target)
        logger.info("Job %s -> %s", job_id, target)
        return job

    def transition_to_processing(self, job_id: str) -> ConversionJob:
        return self._transition(job_id, (PENDING,), PROCESSING)

    def transition_to_completed(
        self,
        job_id: str,
        output_filename: str,
        processing_time_ms: int,
        *,
        output_file_size: Optional[int] = None,
        output_ref: Optional[str] = None,
    ) -> ConversionJob:
        if not output_filename:
            raise ValueError("A completed job needs an output filename")
        return self._transition(
            job_id,
            (PROCESSING,),
            COMPLETED,
            output_filename=output_filename,
            output_file_size=output_file_size,
            output_ref=output_ref,
            processing_time=processing_time_ms,
            error_message=None,
        )

    def transition_to_failed(
        self, job_id: str, error_message: str, processing_time_ms: Optional[int] = None
    ) -> ConversionJob:
        return self._transition(
            job_id,
            (PROCESSING,),
            FAILED,
            error_message=error_message or "Unknown processing error",
            processing_time=processing_time_ms,
            output_filename=None,
        )

    def cancel(self, job_id: str) -> ConversionJob:
        """Fail a job that has not started processing yet."""
        return self._transition(
            job_id, (PENDING,), FAILED, error_message=CANCELLED_MESSAGE, processing_time=0
        )

    def recover_interrupted(self, message: str = "Processing was interrupted by a server restart") -> int:
        """Fail jobs a previous process left unfinished."""
        count = 0
        for job in self._store.list_jobs_in_status((PENDING, PROCESSING)):
            if self._store.update_job_if_status(
                job.id, (PENDING, PROCESSING),
                status=FAILED, error_message=message, updated_at=self._clock(),
            ):
                count += 1
        if count:
            logger.warning("Failed %d interrupted jobs on startup", count)
        return count
