# satfusion/services/progress_emitter.py
import logging
from typing import Any, Dict

logger = logging.getLogger(__name__)

ANALYSIS_CREATED = "analysis_created"
ANALYSIS_PROGRESS = "analysis_progress"
ANALYSIS_COMPLETED = "analysis_completed"
ANALYSIS_FAILED = "analysis_failed"
ANALYSIS_CANCELLED = "analysis_cancelled"

CHANNEL_KINDS = ("user", "dataset", "job")


def channel_for(kind: str, ident) -> str:
    """'user', 42 -> 'user:42'"""
    if kind not in CHANNEL_KINDS:
        raise ValueError(f"unknown channel kind: {kind}")
    return f"{kind}:{ident}"


class ProgressEmitter:
    """
    Best-effort fan-out of job lifecycle events to Socket.IO rooms.

    Whatever is connected to a room when an event is published gets it; there
    is no backlog. Emit errors are logged and swallowed so a broken push
    channel never takes a simulator run down with it.
    """

    def __init__(self, socketio):
        self.socketio = socketio

    def publish(self, channel: str, event: str, payload: Dict[str, Any]) -> bool:
        try:
            self.socketio.emit(event, payload, to=channel)
            return True
        except Exception:
            logger.exception("emit %s to %s failed", event, channel, extra={"event": event})
            return False

    def publish_job_event(self, job, event: str, payload: Dict[str, Any]) -> bool:
        # user channel is the contract; job/dataset rooms are for narrower listeners
        ok = self.publish(channel_for("user", job.owner_id), event, payload)
        self.publish(channel_for("job", job.id), event, payload)
        self.publish(channel_for("dataset", job.dataset_id), event, payload)
        return ok
