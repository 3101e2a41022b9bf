# satfusion/services/dataset_service.py
import logging
import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from satfusion.errors import NotFound, StorageUnavailable, ValidationError
from satfusion.models import db
from satfusion.models.dataset import Dataset, DATASET_STATUSES, RESOLUTIONS, SATELLITES

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_URL = "https://images.unsplash.com/photo-1446776653964-20c1d3a81b06?w=800&h=600&fit=crop"
_UPDATABLE = ("name", "satellite", "region", "acquisition_date", "cloud_cover", "resolution",
              "bands", "metadata", "status")


# ---------------------------
# Normalization helpers
# ---------------------------

def _parse_date(value, field: str) -> datetime:
    if isinstance(value, datetime):
        return value
    try:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError as e:
        raise ValidationError(f"'{field}' must be an ISO-8601 date") from e
    # stored as naive UTC
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _check_region(region) -> Dict[str, Any]:
    if not isinstance(region, dict):
        raise ValidationError("'region' must be a GeoJSON Polygon object")
    rtype = region.get("type", "Polygon")
    coords = region.get("coordinates")
    if rtype != "Polygon" or not isinstance(coords, list) or not coords:
        raise ValidationError("'region' must be a GeoJSON Polygon with coordinates")
    return {"type": "Polygon", "coordinates": coords}


def _clean_fields(data: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate a create/update body into model column values."""
    if not isinstance(data, dict):
        raise ValidationError("body must be a JSON object")
    out: Dict[str, Any] = {}

    if "name" in data or not partial:
        name = data.get("name")
        if name is not None and not isinstance(name, str):
            raise ValidationError("'name' must be a string")
        name = (name or "").strip()
        if not name:
            raise ValidationError("Missing 'name'")
        out["name"] = name

    if "satellite" in data or not partial:
        if data.get("satellite") not in SATELLITES:
            raise ValidationError(f"'satellite' must be one of {', '.join(SATELLITES)}")
        out["satellite"] = data["satellite"]

    if "region" in data or not partial:
        out["region"] = _check_region(data.get("region"))

    date_value = data.get("acquisition_date", data.get("acquisitionDate"))
    if date_value is not None:
        out["acquisition_date"] = _parse_date(date_value, "acquisition_date")
    elif not partial:
        raise ValidationError("Missing 'acquisition_date'")

    if "resolution" in data or not partial:
        if data.get("resolution") not in RESOLUTIONS:
            raise ValidationError(f"'resolution' must be one of {', '.join(RESOLUTIONS)}")
        out["resolution"] = data["resolution"]

    cloud = data.get("cloud_cover", data.get("cloudCover"))
    if cloud is not None:
        try:
            cloud = float(cloud)
        except (TypeError, ValueError):
            raise ValidationError("'cloud_cover' must be a number")
        if not 0 <= cloud <= 100:
            raise ValidationError("'cloud_cover' must be between 0 and 100")
        out["cloud_cover"] = cloud

    for key, column in (("bands", "bands"), ("metadata", "meta")):
        if key in data:
            if data[key] is not None and not isinstance(data[key], dict):
                raise ValidationError(f"'{key}' must be an object")
            out[column] = data[key]

    if "status" in data:
        if data["status"] not in DATASET_STATUSES:
            raise ValidationError(f"'status' must be one of {', '.join(DATASET_STATUSES)}")
        out["status"] = data["status"]

    return out


class DatasetService:
    """
    Owner-scoped CRUD over datasets, and the `lookup` the analysis pipeline
    calls before accepting a job.
    """

    def __init__(self, list_limit: int = 50):
        self.list_limit = list_limit

    def _commit(self, op: str):
        try:
            db.session.commit()
        except SQLAlchemyError as e:
            db.session.rollback()
            logger.exception("dataset %s failed", op)
            raise StorageUnavailable(f"dataset store unavailable ({op})") from e

    def lookup(self, dataset_id: str, owner_id: str) -> Optional[Dataset]:
        try:
            ds = db.session.get(Dataset, dataset_id)
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable("dataset store unavailable (lookup)") from e
        if ds is None or ds.owner_id != owner_id:
            return None
        return ds

    def get(self, dataset_id: str, owner_id: str) -> Dataset:
        ds = self.lookup(dataset_id, owner_id)
        if ds is None:
            raise NotFound("Dataset not found")
        return ds

    def create(self, owner_id: str, data: Dict[str, Any]) -> Dataset:
        fields = _clean_fields(data)
        ds = Dataset(
            owner_id=owner_id,
            image_url=DEFAULT_IMAGE_URL,
            file_size=random.randint(100, 599),
            created_at=datetime.utcnow(),
            **fields,
        )
        db.session.add(ds)
        self._commit("create")
        logger.info("dataset created", extra={"dataset_id": ds.id, "owner_id": owner_id})
        return ds

    def list(self, owner_id: str) -> List[Dataset]:
        try:
            return (
                Dataset.query.filter_by(owner_id=owner_id)
                .order_by(Dataset.created_at.desc())
                .limit(self.list_limit)
                .all()
            )
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable("dataset store unavailable (list)") from e

    def search(self, owner_id: str, satellite=None, min_cloud_cover=None, max_cloud_cover=None,
               start_date=None, end_date=None) -> List[Dataset]:
        q = Dataset.query.filter(Dataset.owner_id == owner_id)
        if satellite:
            q = q.filter(Dataset.satellite == satellite)
        try:
            if min_cloud_cover is not None:
                q = q.filter(Dataset.cloud_cover >= float(min_cloud_cover))
            if max_cloud_cover is not None:
                q = q.filter(Dataset.cloud_cover <= float(max_cloud_cover))
        except ValueError:
            raise ValidationError("cloud cover bounds must be numbers")
        if start_date:
            q = q.filter(Dataset.acquisition_date >= _parse_date(start_date, "start_date"))
        if end_date:
            q = q.filter(Dataset.acquisition_date <= _parse_date(end_date, "end_date"))
        try:
            return q.order_by(Dataset.created_at.desc()).all()
        except SQLAlchemyError as e:
            db.session.rollback()
            raise StorageUnavailable("dataset store unavailable (search)") from e

    def update(self, dataset_id: str, owner_id: str, data: Dict[str, Any]) -> Dataset:
        ds = self.get(dataset_id, owner_id)
        if not isinstance(data, dict):
            raise ValidationError("body must be a JSON object")
        fields = _clean_fields({k: v for k, v in data.items() if k in _UPDATABLE or k in ("acquisitionDate", "cloudCover")},
                               partial=True)
        for key, value in fields.items():
            setattr(ds, key, value)
        ds.updated_at = datetime.utcnow()
        self._commit("update")
        return ds

    def delete(self, dataset_id: str, owner_id: str) -> None:
        ds = self.get(dataset_id, owner_id)
        db.session.delete(ds)
        self._commit("delete")
        logger.info("dataset deleted", extra={"dataset_id": dataset_id, "owner_id": owner_id})
