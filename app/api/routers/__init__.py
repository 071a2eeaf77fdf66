"""
app/api/routers package marker.
"""

from app.api.routers.ingestion import router as ingestion_router
from app.api.routers.mappings import router as mappings_router

__all__ = [
    "ingestion_router",
    "mappings_router",
]
