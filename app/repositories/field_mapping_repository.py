"""
app/repositories/field_mapping_repository.py

Persistence helpers for per-connection mapping definitions.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.orm import Session

from app.schemas.mapping_definition import METRIC_VALUES_TARGET
from db.models.field_mapping import FieldMapping

_UPSERT_CONSTRAINT = "uq_field_mappings_org_connection_target"


class FieldMappingRepository:
    """
    Repository for the one mapping document per (org, connection, target).
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(
        self,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        target: str = METRIC_VALUES_TARGET,
    ) -> FieldMapping | None:
        stmt = select(FieldMapping).where(
            FieldMapping.org_id == org_id,
            FieldMapping.source_connection_id == connection_id,
            FieldMapping.target == target,
        )
        return self._session.execute(stmt).scalars().first()

    def upsert(
        self,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        mapping: dict[str, Any],
        target: str = METRIC_VALUES_TARGET,
    ) -> FieldMapping:
        """
        Insert or replace the mapping keyed by (org_id, connection_id, target).
        """

        stmt = (
            insert(FieldMapping)
            .values(
                id=uuid.uuid4(),
                org_id=org_id,
                source_connection_id=connection_id,
                target=target,
                mapping=mapping,
            )
            .on_conflict_do_update(
                constraint=_UPSERT_CONSTRAINT,
                set_={"mapping": mapping, "updated_at": func.now()},
            )
            .returning(FieldMapping)
        )
        return self._session.scalars(stmt).one()
