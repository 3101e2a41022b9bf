# satfusion/models/types.py
from sqlalchemy.types import TypeDecorator
from sqlalchemy import JSON

class JSONBCompat(TypeDecorator):
    """
    JSONB on PostgreSQL, plain JSON on SQLite and the rest.
    Lets the same models run against sqlite:// in tests and postgresql:// in production.
    """
    impl = JSON
    cache_ok = True

    def __init__(self, **jsonb_kwargs):
        super().__init__()
        self._jsonb_kwargs = jsonb_kwargs

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            from sqlalchemy.dialects.postgresql import JSONB
            return dialect.type_descriptor(JSONB(**self._jsonb_kwargs))
        return dialect.type_descriptor(JSON())


def iso(dt):
    """Naive UTC datetime -> '2024-01-01T00:00:00Z' (None passes through)."""
    return dt.replace(microsecond=0).isoformat() + "Z" if dt else None
