# satfusion/routes/analysis_routes.py
from flask import Blueprint, current_app, g, jsonify, request

from satfusion.auth import require_user

bp = Blueprint("analysis", __name__)  # el prefijo se aplica al registrar en satfusion/__init__.py


def _service():
    return current_app.extensions["satfusion.analysis"]


@bp.post("")
@require_user
def create_analysis():
    """
    Analysis: create a job
    ---
    tags:
      - Analysis
    consumes:
      - application/json
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
        description: "Bearer <token>"
      - in: body
        name: body
        required: true
        schema:
          type: object
          required:
            - dataset_id
            - kind
          properties:
            dataset_id:
              type: string
              description: Dataset the analysis runs against.
            kind:
              type: string
              enum: [spectral-indices, change-detection, anomaly-detection, classification]
              example: spectral-indices
            parameters:
              type: object
              description: Free-form settings for the job.
          example:
            dataset_id: "5f1c0e8a9b2d4c6e8f0a1b2c3d4e5f60"
            kind: "spectral-indices"
            parameters: {"threshold": 0.2}
    responses:
      202:
        description: Accepted (job created, run scheduled)
      400:
        description: Missing or invalid fields
      401:
        description: No valid caller identity
    """
    data = request.get_json(silent=True) or {}
    job = _service().create(g.user_id, data)
    return jsonify({"ok": True, "analysis": job.to_dict()}), 202


@bp.get("")
@require_user
def list_analyses():
    """
    Analysis: list the caller's last 50 jobs, newest first
    ---
    tags:
      - Analysis
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
    responses:
      200:
        description: OK
      401:
        description: No valid caller identity
    """
    jobs = _service().list(g.user_id)
    return jsonify({"ok": True, "items": [j.to_dict() for j in jobs]}), 200


@bp.get("/dataset/<dataset_id>")
@require_user
def list_by_dataset(dataset_id: str):
    """
    Analysis: list the caller's jobs for a dataset, newest first
    ---
    tags:
      - Analysis
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
      - in: path
        name: dataset_id
        required: true
        type: string
    responses:
      200:
        description: OK
      401:
        description: No valid caller identity
    """
    jobs = _service().list_by_dataset(g.user_id, dataset_id)
    return jsonify({"ok": True, "items": [j.to_dict() for j in jobs]}), 200


@bp.get("/<job_id>")
@require_user
def get_analysis(job_id: str):
    """
    Analysis: get one job
    ---
    tags:
      - Analysis
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
      - in: path
        name: job_id
        required: true
        type: string
    responses:
      200:
        description: OK
      404:
        description: Not found (or owned by someone else)
    """
    job = _service().get(g.user_id, job_id)
    return jsonify({"ok": True, "analysis": job.to_dict()}), 200


@bp.post("/<job_id>/cancel")
@require_user
def cancel_analysis(job_id: str):
    """
    Analysis: cancel a pending/processing job (the record is kept)
    ---
    tags:
      - Analysis
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
      - in: path
        name: job_id
        required: true
        type: string
    responses:
      200:
        description: Cancelled
      404:
        description: Not found
      409:
        description: Job already in a terminal state
    """
    job = _service().cancel(g.user_id, job_id)
    return jsonify({"ok": True, "analysis": job.to_dict()}), 200


@bp.delete("/<job_id>")
@require_user
def delete_analysis(job_id: str):
    """
    Analysis: delete a job (an in-flight run is cancelled first)
    ---
    tags:
      - Analysis
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
      - in: path
        name: job_id
        required: true
        type: string
    responses:
      200:
        description: Deleted
      404:
        description: Not found
    """
    _service().delete(g.user_id, job_id)
    return jsonify({"ok": True, "message": "Analysis deleted"}), 200
