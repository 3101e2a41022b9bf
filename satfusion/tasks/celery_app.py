# satfusion/tasks/celery_app.py
import os
import logging
from celery import Celery

logger = logging.getLogger(__name__)

def make_celery() -> Celery:
    """
    Base Celery instance with the default configuration.
    create_app() later points it at the Flask config (init_celery).
    """
    celery_app = Celery("satfusion")

    broker_url = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
    result_backend = os.getenv("CELERY_RESULT_BACKEND", broker_url)

    celery_app.conf.update(
        broker_url=broker_url,
        result_backend=result_backend,
        task_ignore_result=False,
        task_serializer="json",
        accept_content=["json"],
        result_serializer="json",
        timezone=os.getenv("TZ", "UTC"),
        enable_utc=True,
        # one run per job: no late acks, so a started run is never redelivered
        task_acks_late=False,
        worker_prefetch_multiplier=1,
    )
    return celery_app

celery = make_celery()

def check_broker(celery_app: Celery = celery) -> bool:
    """Diagnóstico de conexión: logs whether the broker answers."""
    broker_url = celery_app.conf.broker_url
    try:
        conn = celery_app.connection()
        conn.ensure_connection(max_retries=1)
        logger.info(f"✅ Celery connected to broker: {broker_url}")
        return True
    except Exception as e:
        logger.error(f"❌ Could not connect to Celery broker ({broker_url}): {e}")
        return False

def init_celery(flask_app) -> Celery:
    """Binds Celery to the Flask app so every task runs inside its app context."""
    broker = flask_app.config.get("CELERY_BROKER_URL")
    backend = flask_app.config.get("CELERY_RESULT_BACKEND") or broker

    if broker:
        celery.conf.broker_url = broker
    if backend:
        celery.conf.result_backend = backend

    TaskBase = celery.Task

    class ContextTask(TaskBase):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return TaskBase.__call__(self, *args, **kwargs)

    celery.Task = ContextTask
    celery.set_default()

    # registra las tasks en esta app
    from satfusion.tasks import analysis_tasks  # noqa: F401

    flask_app.extensions["celery"] = celery
    return celery
