"""
app/schemas package marker.
"""

from app.schemas.ingestion import IngestionRunResponse
from app.schemas.mapping_definition import MappingDefinition
from app.schemas.mappings import (
    MappingPreviewRequest,
    MappingPreviewResponse,
    MappingSaveRequest,
    MappingSaveResponse,
    NormalizedMetricValueResponse,
    SourceFieldsResponse,
)

__all__ = [
    "IngestionRunResponse",
    "MappingDefinition",
    "MappingPreviewRequest",
    "MappingPreviewResponse",
    "MappingSaveRequest",
    "MappingSaveResponse",
    "NormalizedMetricValueResponse",
    "SourceFieldsResponse",
]
