# satfusion/config.py
import os


def _as_bool(v) -> bool:
    return str(v).lower() in ("1", "true", "yes", "on")


class BaseConfig:
    CELERY_BROKER_URL = os.environ.get("CELERY_BROKER_URL", "redis://redis:6379/0")
    CELERY_RESULT_BACKEND = os.environ.get("CELERY_RESULT_BACKEND", "redis://redis:6379/0")

    # --- DB ---
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", "postgresql+psycopg2://app_user:app_pass@db:5432/app_db"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JSON_SORT_KEYS = False

    # --- Socket.IO ---
    # Celery workers publish through this queue so web clients get their events.
    SOCKETIO_MESSAGE_QUEUE = os.environ.get("SOCKETIO_MESSAGE_QUEUE", "redis://redis:6379/1")
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "threading")
    SOCKETIO_REQUIRE_AUTH = _as_bool(os.environ.get("SOCKETIO_REQUIRE_AUTH", "false"))

    # --- Identity (tokens issued by the external identity provider) ---
    JWT_SECRET = os.environ.get("JWT_SECRET", "change-me")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE") or None

    # --- Analysis pipeline ---
    ANALYSIS_DISPATCHER = os.environ.get("ANALYSIS_DISPATCHER", "celery")  # celery|background
    ANALYSIS_STEP_SIZE = int(os.environ.get("ANALYSIS_STEP_SIZE", "10"))
    ANALYSIS_STEP_DELAY = float(os.environ.get("ANALYSIS_STEP_DELAY", "0.5"))
    ANALYSIS_SERIES_LENGTH = int(os.environ.get("ANALYSIS_SERIES_LENGTH", "256"))
    ANALYSIS_LIST_LIMIT = int(os.environ.get("ANALYSIS_LIST_LIMIT", "50"))
    ANALYSIS_REQUIRE_DATASET = _as_bool(os.environ.get("ANALYSIS_REQUIRE_DATASET", "true"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    ENV = "development"


class ProductionConfig(BaseConfig):
    DEBUG = False
    ENV = "production"


class TestingConfig(BaseConfig):
    TESTING = True
    ENV = "testing"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SOCKETIO_MESSAGE_QUEUE = None
    SOCKETIO_REQUIRE_AUTH = False
    JWT_SECRET = "test-secret-for-hs256-signing-0123456789"
    JWT_AUDIENCE = None
    ANALYSIS_STEP_DELAY = 0.0
    ANALYSIS_SERIES_LENGTH = 64
