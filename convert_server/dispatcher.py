"""Runs conversion jobs off the request path.

`dispatch` hands a pending job to a bounded thread pool and returns at once.
The worker owns the rest of the job's life: it moves the job to processing,
runs the engine and records the outcome. Engine failures never reach the
submitter; they end up in the job's ``error_message``.
"""
import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from convert_server.artifacts import ArtifactStore, output_filename
from convert_server.catalog import ToolConfig
from convert_server.engine import ConversionEngine, ConversionError
from convert_server.jobs import InvalidTransition, JobRegistry, file_extension
from convert_server.metrics import JOBS_FINISHED, PROCESSING_SECONDS
from convert_server.models import ConversionJob

logger = logging.getLogger(__name__)

GENERIC_FAILURE = "Conversion failed"


class ConversionDispatcher:
    def __init__(
        self,
        registry: JobRegistry,
        artifacts: ArtifactStore,
        engine: ConversionEngine,
        max_workers: int = 4,
    ):
        self._registry = registry
        self._artifacts = artifacts
        self._engine = engine
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="convert")

    def dispatch(self, job: ConversionJob, input_ref: str, tool: ToolConfig) -> Future:
        """Queue a job; the returned future resolves to the job's final record."""
        logger.debug("Queueing job %s (%s)", job.id, tool.type.value)
        # Processing time is measured from dispatch, queue wait included
        started = time.monotonic()
        return self._executor.submit(self._run, job.id, input_ref, tool, started)

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=not wait)

    def _run(self, job_id: str, input_ref: str, tool: ToolConfig, started: float) -> Optional[ConversionJob]:
        try:
            try:
                job = self._registry.transition_to_processing(job_id)
            except InvalidTransition as exc:
                # Cancelled while queued
                logger.info("Skipping job %s: already %s", job_id, exc.current)
                return None
            return self._convert(job, input_ref, tool, started)
        finally:
            self._artifacts.delete(input_ref)

    def _convert(self, job: ConversionJob, input_ref: str, tool: ToolConfig, started: float) -> ConversionJob:
        output_ref = None
        try:
            name = output_filename(
                job.input_filename,
                tool.output_extension(file_extension(job.input_filename), job.options),
            )
            output_ref = self._artifacts.output_ref(name)
            self._engine.convert(
                tool,
                self._artifacts.path(input_ref),
                self._artifacts.path(output_ref),
                job.options,
            )
            elapsed = time.monotonic() - started
            finished = self._registry.transition_to_completed(
                job.id,
                name,
                int(elapsed * 1000),
                output_file_size=self._artifacts.size(output_ref),
                output_ref=output_ref,
            )
        except ConversionError as exc:
            elapsed = time.monotonic() - started
            logger.warning("Job %s failed: %s", job.id, exc)
            finished = self._fail(job, output_ref, str(exc) or GENERIC_FAILURE, elapsed)
        except Exception:
            # Only ConversionError messages reach the client
            elapsed = time.monotonic() - started
            logger.exception("Job %s failed unexpectedly", job.id)
            finished = self._fail(job, output_ref, GENERIC_FAILURE, elapsed)

        JOBS_FINISHED.labels(status=finished.status).inc()
        PROCESSING_SECONDS.observe(elapsed)
        logger.info("Job %s %s in %.2fs", job.id, finished.status, elapsed)
        return finished

    def _fail(self, job: ConversionJob, output_ref: Optional[str], message: str, elapsed: float) -> ConversionJob:
        self._artifacts.delete(output_ref)
        return self._registry.transition_to_failed(job.id, message, int(elapsed * 1000))
