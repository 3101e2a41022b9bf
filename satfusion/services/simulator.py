# satfusion/services/simulator.py
import logging
import time
from collections import namedtuple
from datetime import datetime
from typing import Callable, Iterator

from satfusion.errors import SimulationCancelled, StorageUnavailable
from satfusion.models.job import JobStatus
from satfusion.services import progress_emitter as events
from satfusion.services.strategies import strategy_for

logger = logging.getLogger(__name__)

# what the emitter needs to route an event; survives a rolled-back session
JobRef = namedtuple("JobRef", "id owner_id dataset_id kind parameters")


def progress_steps(step_size: int) -> Iterator[int]:
    """0, step, 2*step, ... always ending on exactly 100."""
    if step_size < 1 or step_size > 100:
        raise ValueError("step_size must be between 1 and 100")
    value = 0
    while value < 100:
        yield value
        value += step_size
    yield 100


class AnalysisSimulator:
    """
    Drives one job from pending to a terminal state.

    Exactly one run owns a job, so its writes and events are ordered. Every
    write is conditional on the status the run expects; a miss means the job
    was cancelled or deleted underneath us and the run stops quietly.
    """

    def __init__(
        self,
        store,
        emitter,
        strategy_factory: Callable = strategy_for,
        step_size: int = 10,
        step_delay: float = 0.5,
        series_length: int = 256,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.store = store
        self.emitter = emitter
        self.strategy_factory = strategy_factory
        self.step_size = step_size
        self.step_delay = step_delay
        self.series_length = series_length
        self.sleep = sleep

    @classmethod
    def from_config(cls, config, store, emitter, **kwargs):
        return cls(
            store,
            emitter,
            step_size=config.get("ANALYSIS_STEP_SIZE", 10),
            step_delay=config.get("ANALYSIS_STEP_DELAY", 0.5),
            series_length=config.get("ANALYSIS_SERIES_LENGTH", 256),
            **kwargs,
        )

    def _write(self, job_id: str, expected, **fields):
        job = self.store.update(job_id, only_if_status=expected, **fields)
        if job is None:
            raise SimulationCancelled(job_id)
        return job

    def run(self, job_id: str) -> str:
        """Run the job to completion. Returns the final status."""
        log_extra = {"analysis_id": job_id}
        try:
            job = self.store.get(job_id)
        except StorageUnavailable:
            # nothing to route a failed event with; the job stays where it was
            logger.exception("could not load analysis job", extra=log_extra)
            return JobStatus.FAILED.value
        if job is None:
            logger.warning("analysis job not found, nothing to run", extra=log_extra)
            return "missing"
        ref = JobRef(job.id, job.owner_id, job.dataset_id, job.kind, dict(job.parameters or {}))

        processing = (JobStatus.PROCESSING.value,)
        try:
            self._write(
                job_id,
                (JobStatus.PENDING.value,),
                status=JobStatus.PROCESSING.value,
                started_at=datetime.utcnow(),
            )
            logger.info("analysis processing (kind=%s)", ref.kind, extra=log_extra)

            for progress in progress_steps(self.step_size):
                self.sleep(self.step_delay)
                self._write(job_id, processing, progress=progress)
                self.emitter.publish_job_event(
                    ref, events.ANALYSIS_PROGRESS, {"analysis_id": job_id, "progress": progress}
                )

            strategy = self.strategy_factory(ref.kind, series_length=self.series_length)
            results = strategy.generate(ref)

            self._write(
                job_id,
                processing,
                status=JobStatus.COMPLETED.value,
                progress=100,
                results=results,
                completed_at=datetime.utcnow(),
            )
            self.emitter.publish_job_event(
                ref,
                events.ANALYSIS_COMPLETED,
                {"analysis_id": job_id, "status": JobStatus.COMPLETED.value, "results": results},
            )
            logger.info("analysis completed", extra=log_extra)
            return JobStatus.COMPLETED.value

        except SimulationCancelled:
            logger.info("analysis run stopped: job cancelled or deleted", extra=log_extra)
            return JobStatus.CANCELLED.value

        except Exception as e:
            logger.exception("analysis failed", extra=log_extra)
            return self._fail(ref, str(e) or e.__class__.__name__)

    def _fail(self, ref: JobRef, message: str) -> str:
        log_extra = {"analysis_id": ref.id}
        try:
            failed = self.store.update(
                ref.id,
                only_if_status=(JobStatus.PENDING.value, JobStatus.PROCESSING.value),
                status=JobStatus.FAILED.value,
                error=message,
            )
            if failed is None:
                logger.info("failure not recorded: job already cancelled or deleted", extra=log_extra)
                return JobStatus.CANCELLED.value
        except StorageUnavailable:
            logger.exception("could not record analysis failure", extra=log_extra)

        self.emitter.publish_job_event(ref, events.ANALYSIS_FAILED, {"analysis_id": ref.id, "error": message})
        return JobStatus.FAILED.value
