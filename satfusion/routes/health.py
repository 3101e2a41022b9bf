import logging
from datetime import datetime

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from satfusion.models import db

logger = logging.getLogger(__name__)

bp = Blueprint("health", __name__)


@bp.get("/")
def index():
    """
    Root
    ---
    tags:
      - Health
    responses:
      200:
        description: OK
    """
    return jsonify({
        "message": "SatFusion analysis API",
        "endpoints": {
            "analysis": "/api/analysis",
            "datasets": "/api/datasets",
            "health": "/api/health",
            "docs": "/apidocs/",
        },
    }), 200


@bp.get("/healthz")
def healthz():
    """
    Healthcheck
    ---
    tags:
      - Health
    responses:
      200:
        description: OK
    """
    return jsonify({"ok": True}), 200


@bp.get("/api/health")
def health():
    """
    Healthcheck incl. database
    ---
    tags:
      - Health
    responses:
      200:
        description: Database reachable
      503:
        description: Database unreachable
    """
    now = datetime.utcnow().replace(microsecond=0).isoformat() + "Z"
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("database check failed: %s", e)
        return jsonify({"ok": False, "status": "error", "database": "unreachable", "timestamp": now}), 503
    return jsonify({"ok": True, "status": "healthy", "database": db.engine.dialect.name, "timestamp": now}), 200
