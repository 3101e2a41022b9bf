import enum
import uuid
from datetime import datetime

from satfusion.models import db
from satfusion.models.types import JSONBCompat, iso


class AnalysisKind(str, enum.Enum):
    SPECTRAL_INDICES = "spectral-indices"
    CHANGE_DETECTION = "change-detection"
    ANOMALY_DETECTION = "anomaly-detection"
    CLASSIFICATION = "classification"


class JobStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


ACTIVE_STATUSES = (JobStatus.PENDING.value, JobStatus.PROCESSING.value)
TERMINAL_STATUSES = (JobStatus.COMPLETED.value, JobStatus.FAILED.value, JobStatus.CANCELLED.value)


def new_id() -> str:
    return uuid.uuid4().hex


class AnalysisJob(db.Model):
    __tablename__ = "analysis_jobs"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    dataset_id = db.Column(db.String(64), nullable=False)
    owner_id = db.Column(db.String(64), nullable=False)
    kind = db.Column(db.String(32), nullable=False)
    parameters = db.Column(JSONBCompat(), nullable=True)

    status = db.Column(db.String(20), nullable=False, default=JobStatus.PENDING.value, index=True)
    progress = db.Column(db.Integer, nullable=False, default=0)
    results = db.Column(JSONBCompat(), nullable=True)
    error = db.Column(db.Text, nullable=True)
    task_id = db.Column(db.String(64), index=True, nullable=True)  # handle of the dispatched run

    started_at = db.Column(db.DateTime, nullable=True)
    completed_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_analysis_jobs_owner_created", "owner_id", "created_at"),
        db.Index("ix_analysis_jobs_owner_dataset_created", "owner_id", "dataset_id", "created_at"),
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "dataset_id": self.dataset_id,
            "owner_id": self.owner_id,
            "kind": self.kind,
            "parameters": self.parameters or {},
            "status": self.status,
            "progress": self.progress,
            "results": self.results,
            "error": self.error,
            "task_id": self.task_id,
            "started_at": iso(self.started_at),
            "completed_at": iso(self.completed_at),
            "created_at": iso(self.created_at),
        }

    def __repr__(self) -> str:
        return f"<AnalysisJob(id={self.id}, kind={self.kind}, status={self.status}, owner_id={self.owner_id})>"
