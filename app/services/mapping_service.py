"""
app/services/mapping_service.py

Administration of per-connection mapping definitions: save, dry-run preview
against recent raw events, and discovery of the source field names.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from app.config import get_ingestion_settings
from app.mappers.metric_normalizer import MappingPreview, MetricNormalizer
from app.repositories.base import MappingRepository
from app.schemas.mapping_definition import MappingDefinition
from app.validators.mapping_validator import MappingDefinitionValidator

logger = logging.getLogger(__name__)


class MappingNotConfiguredError(LookupError):
    """
    Raised when a connection has no stored mapping definition.
    """


@dataclass(frozen=True)
class MappingPreviewResult:
    mapping: MappingDefinition
    preview: MappingPreview
    sampled: int


class MappingService:
    def __init__(
        self,
        *,
        preview_limit: int = 20,
        validator: MappingDefinitionValidator | None = None,
        normalizer: MetricNormalizer | None = None,
    ) -> None:
        self._preview_limit = max(1, preview_limit)
        self._validator = validator or MappingDefinitionValidator()
        self._normalizer = normalizer or MetricNormalizer()

    def save_mapping(
        self,
        *,
        repository: MappingRepository,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        raw_mapping: Any,
    ) -> MappingDefinition:
        """
        Validate and store the connection's mapping, replacing any previous one.

        Raises MappingDefinitionError with one detail per problem found.
        """

        mapping = self._validator.validate(raw_mapping)
        repository.save_mapping_definition(org_id, connection_id, mapping.to_document())
        logger.info(
            "Mapping saved org_id=%s connection_id=%s metric_key=%s",
            org_id,
            connection_id,
            mapping.metric_key,
        )
        return mapping

    def preview_mapping(
        self,
        *,
        repository: MappingRepository,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        limit: int | None = None,
    ) -> MappingPreviewResult:
        raw = repository.get_mapping_definition(org_id, connection_id)
        if raw is None:
            raise MappingNotConfiguredError("No mapping configured")
        mapping = self._validator.validate(raw)

        payloads = repository.list_recent_raw_payloads(
            org_id,
            connection_id,
            limit=limit or self._preview_limit,
        )
        return MappingPreviewResult(
            mapping=mapping,
            preview=self._normalizer.preview(mapping, payloads),
            sampled=len(payloads),
        )

    def list_source_fields(
        self,
        *,
        repository: MappingRepository,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> list[str]:
        """
        Sorted ``data`` keys of the most recent raw event, or [] if none.
        """

        payloads = repository.list_recent_raw_payloads(org_id, connection_id, limit=1)
        if not payloads or not isinstance(payloads[0], Mapping):
            return []
        data = payloads[0].get("data")
        if not isinstance(data, Mapping):
            return []
        return sorted(str(key) for key in data.keys())


@lru_cache(maxsize=1)
def get_mapping_service() -> MappingService:
    return MappingService(preview_limit=get_ingestion_settings().preview_limit)
