"""Submission, status polling, cancellation and download of conversion jobs."""
import json
import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import FileResponse

from convert_server.artifacts import UploadTooLarge
from convert_server.auth import Identity, conversion_identity, optional_identity, quota_exceeded, require_identity
from convert_server.errors import Conflict, Forbidden, NotFound, Unauthorized, ValidationFailed, envelope
from convert_server.jobs import COMPLETED, InvalidTransition, JobNotFound, SubmissionRejected, validate_submission
from convert_server.metrics import JOBS_SUBMITTED
from convert_server.models import ConversionJob
from convert_server.schemas import JobAccepted, JobView
from convert_server.services import Services, get_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["convert"])


def _upload_size(upload: UploadFile) -> int:
    upload.file.seek(0, 2)
    size = upload.file.tell()
    upload.file.seek(0)
    return size


def _parse_options(raw: Optional[str]) -> dict:
    if not raw:
        return {}
    try:
        options = json.loads(raw)
    except ValueError:
        raise ValidationFailed("Invalid options", "options must be a JSON object")
    if not isinstance(options, dict):
        raise ValidationFailed("Invalid options", "options must be a JSON object")
    return options


def _load_job(job_id: str, services: Services) -> ConversionJob:
    try:
        return services.registry.get(job_id)
    except JobNotFound:
        raise NotFound("Job not found", f"No conversion job with id {job_id}")


def _authorize(job: ConversionJob, identity: Optional[Identity]) -> None:
    """Owned jobs are visible to their owner only; ownerless jobs to anyone."""
    if job.user_id is None:
        return
    if identity is None:
        raise Unauthorized("Credential required", "Authorization header is required")
    if identity.user_id != job.user_id:
        raise Forbidden("Access denied", "You do not have access to this job")


@router.post("/convert", status_code=202)
def submit_conversion(
    tool: Optional[str] = Query(None),
    tool_type: Optional[str] = Form(None, alias="toolType"),
    options: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
    identity: Optional[Identity] = Depends(conversion_identity),
    services: Services = Depends(get_services),
):
    """Accept an upload and queue it for conversion."""
    requested = tool or tool_type
    conversion_options = _parse_options(options)
    if file is None or not file.filename:
        raise ValidationFailed("File required", "Please upload a file to convert")

    size = _upload_size(file)
    max_upload = services.settings.max_upload_mb * 1024 * 1024
    try:
        tool_config = validate_submission(requested, file.filename, size)
        if size > max_upload:
            raise SubmissionRejected(
                "File too large", f"Uploads are limited to {services.settings.max_upload_mb}MB"
            )
    except SubmissionRejected as exc:
        raise ValidationFailed(exc.error, exc.message)

    owner_id = identity.user_id if identity else None
    if owner_id:
        admission = services.ledger.reserve(owner_id)
        if not admission.allowed:
            raise quota_exceeded(admission)

    stored = None
    try:
        stored = services.artifacts.save_upload(
            file.file, file.filename, min(tool_config.max_file_size_bytes, max_upload)
        )
        job = services.registry.create(
            owner_id,
            tool_config.type.value,
            file.filename,
            stored.size,
            api_key_id=identity.api_key.id if identity and identity.api_key else None,
            options=conversion_options,
            input_ref=stored.ref,
        )
    except UploadTooLarge:
        if owner_id:
            services.ledger.release(owner_id)
        raise ValidationFailed("File too large", f"File exceeds the limit of {tool_config.max_file_size}MB")
    except Exception:
        if owner_id:
            services.ledger.release(owner_id)
        if stored is not None:
            services.artifacts.delete(stored.ref)
        raise

    JOBS_SUBMITTED.labels(tool=job.tool_type).inc()
    services.dispatcher.dispatch(job, stored.ref, tool_config)

    return envelope(JobAccepted(
        job_id=job.id,
        status=job.status,
        estimated_time=tool_config.processing_time_estimate,
        tool_name=tool_config.name,
        input_file=job.input_filename,
    ).dump())


@router.get("/jobs")
def list_jobs(
    limit: int = Query(50, ge=1, le=100),
    identity: Identity = Depends(require_identity),
    services: Services = Depends(get_services),
):
    jobs = services.registry.list_by_owner(identity.user_id, limit)
    return envelope([JobView.of(job).dump() for job in jobs])


@router.get("/jobs/{job_id}")
def get_job_status(
    job_id: str,
    identity: Optional[Identity] = Depends(optional_identity),
    services: Services = Depends(get_services),
):
    job = _load_job(job_id, services)
    _authorize(job, identity)
    return envelope(JobView.of(job).dump())


@router.post("/jobs/{job_id}/cancel")
def cancel_job(
    job_id: str,
    identity: Optional[Identity] = Depends(optional_identity),
    services: Services = Depends(get_services),
):
    """Cancel a job that is still waiting for a worker."""
    job = _load_job(job_id, services)
    _authorize(job, identity)
    try:
        job = services.registry.cancel(job_id)
    except InvalidTransition as exc:
        raise Conflict(
            "Job cannot be cancelled",
            f"Only pending jobs can be cancelled; this job is {exc.current}",
            status=exc.current,
        )
    return envelope(JobView.of(job).dump())


@router.get("/download/{job_id}")
def download(
    job_id: str,
    identity: Optional[Identity] = Depends(optional_identity),
    services: Services = Depends(get_services),
):
    job = _load_job(job_id, services)
    _authorize(job, identity)
    if job.status != COMPLETED:
        raise ValidationFailed(
            "Not ready",
            f"Job is {job.status}; the file can be downloaded once it is completed",
            status=job.status,
        )
    if not services.artifacts.exists(job.output_ref):
        logger.warning("Output for job %s is missing from storage", job.id)
        raise NotFound("File not found", "The converted file is no longer available")

    return FileResponse(
        services.artifacts.path(job.output_ref),
        filename=job.output_filename,
        media_type="application/octet-stream",
    )
