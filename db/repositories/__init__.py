"""
Repository layer exports.
"""

from db.repositories.ingestion_repository import SQLAlchemyIngestionRepository

__all__ = [
    "SQLAlchemyIngestionRepository",
]
