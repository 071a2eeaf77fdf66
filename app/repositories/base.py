"""
app/repositories/base.py

Storage contract required by the ingestion pipeline.
"""

from __future__ import annotations

import uuid
from typing import Any, Protocol

from app.domain.ingestion import IngestionRun, NormalizedMetricValue, RawEventInput


class StoreResult:
    """
    Outcome of a single-row insert.
    """

    OK = "ok"
    DUPLICATE = "duplicate"
    ERROR = "error"


class RepositoryUnavailableError(RuntimeError):
    """
    Raised by a repository when storage is unreachable for the whole run,
    as opposed to a failure local to one row.
    """


class IngestionRepository(Protocol):
    def insert_raw_event(self, event: RawEventInput) -> str:
        """
        Insert one raw event; return a ``StoreResult`` value.
        ``DUPLICATE`` when (org_id, dedupe_hash) already exists.
        """
        ...

    def insert_metric_value(self, org_id: uuid.UUID, value: NormalizedMetricValue) -> str:
        ...

    def get_mapping_definition(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> dict[str, Any] | None:
        """
        Return the stored ``metric_values`` mapping document, if any.
        """
        ...

    def create_run(self, run: IngestionRun) -> None:
        ...

    def update_run(self, run: IngestionRun) -> None:
        ...


class MappingRepository(Protocol):
    def get_mapping_definition(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> dict[str, Any] | None:
        ...

    def save_mapping_definition(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        document: dict[str, Any],
    ) -> None:
        ...

    def list_recent_raw_payloads(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        *,
        limit: int,
    ) -> list[dict[str, Any]]:
        """
        Most recently received payloads first.
        """
        ...
