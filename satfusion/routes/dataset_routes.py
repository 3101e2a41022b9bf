# satfusion/routes/dataset_routes.py
from flask import Blueprint, current_app, g, jsonify, request

from satfusion.auth import require_user

bp = Blueprint("datasets", __name__)


def _service():
    return current_app.extensions["satfusion.datasets"]


@bp.post("")
@require_user
def create_dataset():
    """
    Datasets: create
    ---
    tags:
      - Datasets
    consumes:
      - application/json
    parameters:
      - in: header
        name: Authorization
        required: true
        type: string
      - in: body
        name: body
        required: true
        schema:
          type: object
          required: [name, satellite, region, acquisition_date, resolution]
          properties:
            name: {type: string, example: "Delhi NCR - spring"}
            satellite: {type: string, enum: [Sentinel-2, Landsat-8, Landsat-9, ISRO-Cartosat]}
            region: {type: object, description: GeoJSON Polygon}
            acquisition_date: {type: string, format: date-time}
            cloud_cover: {type: number, minimum: 0, maximum: 100}
            resolution: {type: string, enum: [10m, 15m, 30m, 60m]}
            bands: {type: object}
            metadata: {type: object}
    responses:
      201:
        description: Created
      400:
        description: Missing or invalid fields
    """
    data = request.get_json(silent=True) or {}
    ds = _service().create(g.user_id, data)
    return jsonify({"ok": True, "dataset": ds.to_dict()}), 201


@bp.get("")
@require_user
def list_datasets():
    """
    Datasets: list the caller's last 50, newest first
    ---
    tags:
      - Datasets
    responses:
      200:
        description: OK
    """
    items = _service().list(g.user_id)
    return jsonify({"ok": True, "items": [d.to_dict() for d in items]}), 200


@bp.get("/search")
@require_user
def search_datasets():
    """
    Datasets: search the caller's datasets
    ---
    tags:
      - Datasets
    parameters:
      - {in: query, name: satellite, type: string, required: false}
      - {in: query, name: min_cloud_cover, type: number, required: false}
      - {in: query, name: max_cloud_cover, type: number, required: false}
      - {in: query, name: start_date, type: string, required: false}
      - {in: query, name: end_date, type: string, required: false}
    responses:
      200:
        description: OK
      400:
        description: Bad filter value
    """
    args = request.args
    items = _service().search(
        g.user_id,
        satellite=args.get("satellite"),
        min_cloud_cover=args.get("min_cloud_cover", args.get("minCloudCover")),
        max_cloud_cover=args.get("max_cloud_cover", args.get("maxCloudCover")),
        start_date=args.get("start_date", args.get("startDate")),
        end_date=args.get("end_date", args.get("endDate")),
    )
    return jsonify({"ok": True, "items": [d.to_dict() for d in items]}), 200


@bp.get("/<dataset_id>")
@require_user
def get_dataset(dataset_id: str):
    """
    Datasets: get one
    ---
    tags:
      - Datasets
    parameters:
      - {in: path, name: dataset_id, type: string, required: true}
    responses:
      200:
        description: OK
      404:
        description: Not found
    """
    ds = _service().get(dataset_id, g.user_id)
    return jsonify({"ok": True, "dataset": ds.to_dict()}), 200


@bp.put("/<dataset_id>")
@require_user
def update_dataset(dataset_id: str):
    """
    Datasets: update
    ---
    tags:
      - Datasets
    parameters:
      - {in: path, name: dataset_id, type: string, required: true}
      - in: body
        name: body
        required: true
        schema:
          type: object
    responses:
      200:
        description: OK
      400:
        description: Invalid fields
      404:
        description: Not found
    """
    data = request.get_json(silent=True) or {}
    ds = _service().update(dataset_id, g.user_id, data)
    return jsonify({"ok": True, "dataset": ds.to_dict()}), 200


@bp.delete("/<dataset_id>")
@require_user
def delete_dataset(dataset_id: str):
    """
    Datasets: delete
    ---
    tags:
      - Datasets
    parameters:
      - {in: path, name: dataset_id, type: string, required: true}
    responses:
      200:
        description: Deleted
      404:
        description: Not found
    """
    _service().delete(dataset_id, g.user_id)
    return jsonify({"ok": True, "message": "Dataset deleted"}), 200
