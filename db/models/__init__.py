"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.field_mapping import FieldMapping
from db.models.metric_value import MetricValue
from db.models.raw_event import RawEvent
from db.models.source_connection import SourceConnection
from db.models.source_run import SourceRun

__all__ = [
    "FieldMapping",
    "MetricValue",
    "RawEvent",
    "SourceConnection",
    "SourceRun",
]
