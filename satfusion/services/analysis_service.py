# satfusion/services/analysis_service.py
import logging
from typing import Any, Dict, List

from satfusion.errors import InvalidTransition, NotFound, StorageUnavailable, ValidationError
from satfusion.models.job import ACTIVE_STATUSES, AnalysisJob, AnalysisKind, JobStatus
from satfusion.services import progress_emitter as events

logger = logging.getLogger(__name__)

KINDS = tuple(k.value for k in AnalysisKind)


class AnalysisService:
    """
    Owner-scoped job control: create, list, get, delete, cancel.

    Jobs owned by someone else are reported exactly like missing ones, so a
    caller can't probe for other users' job ids.
    """

    def __init__(self, store, emitter, dispatcher, datasets=None, list_limit: int = 50,
                 require_dataset: bool = True):
        self.store = store
        self.emitter = emitter
        self.dispatcher = dispatcher
        self.datasets = datasets
        self.list_limit = list_limit
        self.require_dataset = require_dataset

    # --- helpers ---

    def _owned(self, owner_id: str, job_id: str) -> AnalysisJob:
        job = self.store.get(job_id)
        if job is None or job.owner_id != owner_id:
            raise NotFound("Analysis not found")
        return job

    def _validate(self, owner_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        if not isinstance(data, dict):
            raise ValidationError("body must be a JSON object")
        dataset_id = data.get("dataset_id") or data.get("datasetId")
        kind = data.get("kind") or data.get("type")
        parameters = data.get("parameters")

        if not dataset_id or not isinstance(dataset_id, (str, int)):
            raise ValidationError("Missing 'dataset_id'")
        if not kind:
            raise ValidationError("Missing 'kind'")
        if kind not in KINDS:
            raise ValidationError(f"'kind' must be one of {', '.join(KINDS)}")
        if parameters is None:
            parameters = {}
        if not isinstance(parameters, dict):
            raise ValidationError("'parameters' must be an object")

        dataset_id = str(dataset_id)
        if self.require_dataset and self.datasets is not None:
            if self.datasets.lookup(dataset_id, owner_id) is None:
                raise ValidationError(f"Dataset '{dataset_id}' not found")

        return {"dataset_id": dataset_id, "kind": kind, "parameters": parameters}

    # --- operations ---

    def create(self, owner_id: str, data: Dict[str, Any]) -> AnalysisJob:
        fields = self._validate(owner_id, data)
        job = self.store.create(owner_id=owner_id, **fields)
        log_extra = {"analysis_id": job.id, "owner_id": owner_id}
        logger.info("analysis created (kind=%s)", job.kind, extra=log_extra)

        self.emitter.publish_job_event(
            job, events.ANALYSIS_CREATED, {"analysis_id": job.id, "status": job.status}
        )

        try:
            task_id = self.dispatcher.start(job.id)
        except Exception as e:
            logger.exception("could not dispatch analysis", extra=log_extra)
            self.store.update(
                job.id,
                only_if_status=(JobStatus.PENDING.value,),
                status=JobStatus.FAILED.value,
                error=f"dispatch failed: {e}",
            )
            raise

        # the run may already have moved past pending; only the handle is written here
        try:
            updated = self.store.update(job.id, task_id=task_id)
        except StorageUnavailable:
            # already queued; the run completes without its handle on record
            logger.exception("could not record task id %s", task_id, extra=log_extra)
            return job
        return updated or job

    def list(self, owner_id: str) -> List[AnalysisJob]:
        return self.store.list_by_owner(owner_id, limit=self.list_limit)

    def list_by_dataset(self, owner_id: str, dataset_id: str) -> List[AnalysisJob]:
        return self.store.list_by_dataset_and_owner(str(dataset_id), owner_id)

    def get(self, owner_id: str, job_id: str) -> AnalysisJob:
        return self._owned(owner_id, job_id)

    def _cancel_active(self, job: AnalysisJob) -> bool:
        """pending/processing -> cancelled; False if the run finished first."""
        cancelled = self.store.update(
            job.id, only_if_status=ACTIVE_STATUSES, status=JobStatus.CANCELLED.value
        )
        if cancelled is None:
            return False
        try:
            self.dispatcher.cancel(job.task_id)
        except Exception:
            # the status check between steps still stops the run
            logger.exception("could not revoke run %s", job.task_id, extra={"analysis_id": job.id})
        self.emitter.publish_job_event(
            job, events.ANALYSIS_CANCELLED, {"analysis_id": job.id, "status": JobStatus.CANCELLED.value}
        )
        logger.info("analysis cancelled", extra={"analysis_id": job.id, "owner_id": job.owner_id})
        return True

    def cancel(self, owner_id: str, job_id: str) -> AnalysisJob:
        job = self._owned(owner_id, job_id)
        if not job.is_terminal and self._cancel_active(job):
            return self.store.get(job_id) or job
        current = self.store.get(job_id)
        raise InvalidTransition(f"Analysis is already {current.status if current else 'deleted'}")

    def delete(self, owner_id: str, job_id: str) -> None:
        job = self._owned(owner_id, job_id)
        if not job.is_terminal:
            self._cancel_active(job)
        if not self.store.delete(job_id):
            raise NotFound("Analysis not found")
        logger.info("analysis deleted", extra={"analysis_id": job_id, "owner_id": owner_id})
