import logging
import os

from flask import Flask, jsonify
from flasgger import Swagger
from prometheus_flask_exporter import PrometheusMetrics
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from .logging_setup import setup_logging
from .config import DevelopmentConfig, ProductionConfig, TestingConfig
from .errors import ServiceError

logger = logging.getLogger(__name__)


def _cors_origins():
    # - CORS_ORIGINS no seteada o '*'  -> permite todos los orígenes
    # - CORS_ORIGINS="https://app.example.com,https://admin.example.com" -> sólo esos
    cors_origin = os.getenv("CORS_ORIGINS", "*").strip()
    if cors_origin == "*" or cors_origin == "":
        return "*"
    return [o.strip() for o in cors_origin.split(",") if o.strip()]


def _register_error_handlers(app):
    @app.errorhandler(ServiceError)
    def service_error(e: ServiceError):
        if e.status_code >= 500:
            logger.error("request failed: %s", e.message)
        return jsonify({"ok": False, "error": e.message}), e.status_code

    @app.errorhandler(Exception)
    def unexpected_error(e: Exception):
        if isinstance(e, HTTPException):
            return jsonify({"ok": False, "error": e.description}), e.code
        logger.exception("unhandled error")
        return jsonify({"ok": False, "error": "internal error"}), 500


def _init_services(app, socketio):
    """Wire store, emitter, dispatcher and services; handlers reach them via app.extensions."""
    from .services.analysis_service import AnalysisService
    from .services.dataset_service import DatasetService
    from .services.dispatchers import make_dispatcher
    from .services.job_store import JobStore
    from .services.progress_emitter import ProgressEmitter
    from .services.simulator import AnalysisSimulator

    store = JobStore()
    emitter = ProgressEmitter(socketio)
    datasets = DatasetService(list_limit=app.config["ANALYSIS_LIST_LIMIT"])

    def simulator_factory():
        return AnalysisSimulator.from_config(app.config, store, emitter)

    dispatcher = make_dispatcher(app, socketio, simulator_factory)

    app.extensions["satfusion.emitter"] = emitter
    app.extensions["satfusion.simulator_factory"] = simulator_factory
    app.extensions["satfusion.datasets"] = datasets
    app.extensions["satfusion.analysis"] = AnalysisService(
        store,
        emitter,
        dispatcher,
        datasets=datasets,
        list_limit=app.config["ANALYSIS_LIST_LIMIT"],
        require_dataset=app.config["ANALYSIS_REQUIRE_DATASET"],
    )


def create_app(config_name: str = "development"):
    app = Flask(__name__)

    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }
    app.config.from_object(config_map.get(config_name.lower(), DevelopmentConfig))

    setup_logging(app)

    cors_common_kwargs = dict(
        supports_credentials=False,
        methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS", "HEAD"],
        allow_headers=[
            "Content-Type",
            "Authorization",
            "X-Requested-With",
            "Accept",
            "Origin",
            "User-Agent",
            "Cache-Control",
            "Pragma",
        ],
    )
    origins = _cors_origins()
    CORS(app, resources={r"/*": {"origins": origins}}, **cors_common_kwargs)
    app.config.setdefault("SOCKETIO_CORS_ORIGINS", origins)

    # 👇 Importar models aquí (ya con app creada y PYTHONPATH listo)
    from .models import init_app as init_models
    init_models(app)

    from .sockets import init_socketio
    socketio = init_socketio(app)

    _init_services(app, socketio)
    if str(app.config["ANALYSIS_DISPATCHER"]).strip().lower() == "celery":
        from .tasks.celery_app import init_celery
        init_celery(app)
    _register_error_handlers(app)

    # Swagger
    swagger_template = {
        "swagger": "2.0",
        "info": {
            "title": "SatFusion Analysis API",
            "description": "Analysis jobs over satellite datasets, with live progress over Socket.IO.",
            "version": "1.0.0",
        },
        "basePath": "/",
        "schemes": ["https"],
    }
    swagger_config = {
        "headers": [],
        "specs": [
            {
                "endpoint": "apispec_1",
                "route": "/apispec_1.json",
                "rule_filter": lambda rule: True,
                "model_filter": lambda tag: True,
            }
        ],
        "static_url_path": "/flasgger_static",
        "swagger_ui": True,
        "specs_route": "/apidocs/",
    }
    Swagger(app, template=swagger_template, config=swagger_config)

    # Blueprints
    from .routes import analysis_routes, dataset_routes, health
    app.register_blueprint(health.bp)
    app.register_blueprint(analysis_routes.bp, url_prefix="/api/analysis")
    app.register_blueprint(dataset_routes.bp, url_prefix="/api/datasets")

    # Métricas
    metrics = PrometheusMetrics(app, path="/metrics")
    metrics.info("app_info", "SatFusion analysis service", version="1.0.0")

    return app
