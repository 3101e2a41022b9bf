from datetime import datetime

from satfusion.models import db
from satfusion.models.job import new_id
from satfusion.models.types import JSONBCompat, iso

SATELLITES = ("Sentinel-2", "Landsat-8", "Landsat-9", "ISRO-Cartosat")
RESOLUTIONS = ("10m", "15m", "30m", "60m")
DATASET_STATUSES = ("processing", "completed", "failed")


class Dataset(db.Model):
    __tablename__ = "datasets"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    satellite = db.Column(db.String(32), nullable=False)
    region = db.Column(JSONBCompat(), nullable=False)          # GeoJSON Polygon
    acquisition_date = db.Column(db.DateTime, nullable=False)
    cloud_cover = db.Column(db.Float, nullable=False, default=0.0)
    resolution = db.Column(db.String(8), nullable=False)
    bands = db.Column(JSONBCompat(), nullable=True)
    meta = db.Column("metadata", JSONBCompat(), nullable=True)  # `metadata` is reserved by SQLAlchemy
    image_url = db.Column(db.String(500), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="completed")
    file_size = db.Column(db.Integer, nullable=True)            # MB

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        db.Index("ix_datasets_owner_created", "owner_id", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "name": self.name,
            "satellite": self.satellite,
            "region": self.region,
            "acquisition_date": iso(self.acquisition_date),
            "cloud_cover": self.cloud_cover,
            "resolution": self.resolution,
            "bands": self.bands or {},
            "metadata": self.meta or {},
            "image_url": self.image_url,
            "status": self.status,
            "file_size": self.file_size,
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
