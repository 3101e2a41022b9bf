# satfusion/worker.py
# celery -A satfusion.worker.celery worker -l info
import os

from satfusion import create_app
from satfusion.tasks.celery_app import check_broker, init_celery

flask_app = create_app(os.getenv("FLASK_ENV", "production"))
celery = flask_app.extensions.get("celery") or init_celery(flask_app)
check_broker(celery)
