"""
app/repositories package marker.
"""

from app.repositories.base import (
    IngestionRepository,
    MappingRepository,
    RepositoryUnavailableError,
    StoreResult,
)

__all__ = [
    "IngestionRepository",
    "MappingRepository",
    "RepositoryUnavailableError",
    "StoreResult",
]
