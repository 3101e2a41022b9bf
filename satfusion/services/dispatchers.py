# satfusion/services/dispatchers.py
"""
Dispatchers start a simulator run out of band and hand back a handle.

The handle is stored on the job (`task_id`) so delete/cancel can find the run
again. Both implementations also rely on the simulator's own cooperative
check: a cancelled job stops at its next step whatever happens to the handle.
"""
import logging
import uuid

logger = logging.getLogger(__name__)


class CeleryDispatcher:
    """Queues `analysis.simulate` on the Celery broker."""

    def start(self, job_id: str) -> str:
        # import diferido para evitar circular import
        from satfusion.tasks.analysis_tasks import simulate_analysis

        async_res = simulate_analysis.delay(job_id)
        logger.info("analysis queued as celery task %s", async_res.id, extra={"analysis_id": job_id})
        return async_res.id

    def cancel(self, task_id: str) -> None:
        if not task_id:
            return
        from satfusion.tasks.analysis_tasks import simulate_analysis

        # not started yet -> never runs; already running -> stops at the next step
        simulate_analysis.app.control.revoke(task_id)
        logger.info("celery task %s revoked", task_id)


class BackgroundDispatcher:
    """
    Runs the simulator in a Socket.IO background task of the web process.

    Meant for development without a broker; runs die with the process.
    """

    def __init__(self, app, socketio, simulator_factory):
        self.app = app
        self.socketio = socketio
        self.simulator_factory = simulator_factory

    def _run(self, job_id: str):
        with self.app.app_context():
            self.simulator_factory().run(job_id)

    def start(self, job_id: str) -> str:
        handle = uuid.uuid4().hex
        self.socketio.start_background_task(self._run, job_id)
        logger.info("analysis started in background task %s", handle, extra={"analysis_id": job_id})
        return handle

    def cancel(self, task_id: str) -> None:
        # threads can't be interrupted; the status check between steps does the work
        return None


def make_dispatcher(app, socketio, simulator_factory):
    kind = (app.config.get("ANALYSIS_DISPATCHER") or "celery").strip().lower()
    if kind == "celery":
        return CeleryDispatcher()
    if kind == "background":
        return BackgroundDispatcher(app, socketio, simulator_factory)
    raise ValueError(f"unknown ANALYSIS_DISPATCHER '{kind}'")
