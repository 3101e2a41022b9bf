# satfusion/services/job_store.py
import logging
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError

from satfusion.errors import StorageUnavailable
from satfusion.models import db
from satfusion.models.job import AnalysisJob, JobStatus

logger = logging.getLogger(__name__)

# Columns the pipeline is allowed to change after creation
_MUTABLE_FIELDS = {"status", "progress", "results", "error", "task_id", "started_at", "completed_at"}


class JobStore:
    """
    Persistence for AnalysisJob records.

    Lookups that miss return None/False; only storage-layer failures raise
    (StorageUnavailable). Ownership checks are the caller's job.
    """

    def __init__(self, session=None):
        self._session = session

    @property
    def session(self):
        return self._session if self._session is not None else db.session

    def _fail(self, op: str, exc: Exception):
        self.session.rollback()
        logger.exception("job store %s failed", op)
        raise StorageUnavailable(f"job store unavailable ({op})") from exc

    def create(self, owner_id: str, dataset_id: str, kind: str, parameters: Optional[dict] = None) -> AnalysisJob:
        job = AnalysisJob(
            owner_id=owner_id,
            dataset_id=dataset_id,
            kind=kind,
            parameters=parameters or {},
            status=JobStatus.PENDING.value,
            progress=0,
            created_at=datetime.utcnow(),
        )
        try:
            self.session.add(job)
            self.session.commit()
        except SQLAlchemyError as e:
            self._fail("create", e)
        return job

    def get(self, job_id: str) -> Optional[AnalysisJob]:
        try:
            return self.session.get(AnalysisJob, job_id)
        except SQLAlchemyError as e:
            self._fail("get", e)

    def list_by_owner(self, owner_id: str, limit: int = 50) -> List[AnalysisJob]:
        try:
            return (
                self.session.query(AnalysisJob).filter_by(owner_id=owner_id)
                .order_by(AnalysisJob.created_at.desc())
                .limit(limit)
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("list_by_owner", e)

    def list_by_dataset_and_owner(self, dataset_id: str, owner_id: str) -> List[AnalysisJob]:
        try:
            return (
                self.session.query(AnalysisJob).filter_by(owner_id=owner_id, dataset_id=dataset_id)
                .order_by(AnalysisJob.created_at.desc())
                .all()
            )
        except SQLAlchemyError as e:
            self._fail("list_by_dataset_and_owner", e)

    def update(self, job_id: str, only_if_status: Optional[Iterable[str]] = None, **fields) -> Optional[AnalysisJob]:
        """
        Merge `fields` into the record with a single UPDATE statement.

        With `only_if_status` the row is written only while its status is one
        of those values. Returns the refreshed job, or None if no row matched.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"fields not updatable: {sorted(unknown)}")

        values = dict(fields)
        values["updated_at"] = datetime.utcnow()
        stmt = update(AnalysisJob).where(AnalysisJob.id == job_id)
        if only_if_status is not None:
            stmt = stmt.where(AnalysisJob.status.in_([str(getattr(s, "value", s)) for s in only_if_status]))
        stmt = stmt.values(**values).execution_options(synchronize_session=False)

        try:
            result = self.session.execute(stmt)
            self.session.commit()
            if result.rowcount == 0:
                return None
            job = self.session.get(AnalysisJob, job_id)
            if job is not None:
                self.session.refresh(job)
            return job
        except SQLAlchemyError as e:
            self._fail("update", e)

    def delete(self, job_id: str) -> bool:
        try:
            deleted = self.session.query(AnalysisJob).filter_by(id=job_id).delete(synchronize_session=False)
            self.session.commit()
            # drop a stale identity-map copy, if any
            self.session.expire_all()
            return deleted > 0
        except SQLAlchemyError as e:
            self._fail("delete", e)
