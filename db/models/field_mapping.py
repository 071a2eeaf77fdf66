"""
db/models/field_mapping.py

Persisted mapping definition per (organization, connection, target).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class FieldMapping(Base, TimestampMixin):
    __tablename__ = "field_mappings"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    source_connection_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    target: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default="metric_values",
    )
    mapping: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        comment="Version 1 mapping definition document",
    )

    __table_args__ = (
        UniqueConstraint(
            "org_id",
            "source_connection_id",
            "target",
            name="uq_field_mappings_org_connection_target",
        ),
    )
