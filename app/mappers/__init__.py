"""
app/mappers package marker.
"""

from app.mappers.metric_normalizer import (
    MappingPreview,
    MetricNormalizer,
    normalize_metric_value,
)

__all__ = [
    "MappingPreview",
    "MetricNormalizer",
    "normalize_metric_value",
]
