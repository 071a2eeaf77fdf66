"""
app/services package marker.
"""

from app.services.ingestion_run_service import (
    IngestionRunService,
    get_ingestion_run_service,
)
from app.services.mapping_service import (
    MappingNotConfiguredError,
    MappingService,
    get_mapping_service,
)

__all__ = [
    "IngestionRunService",
    "get_ingestion_run_service",
    "MappingNotConfiguredError",
    "MappingService",
    "get_mapping_service",
]
