"""
db/models/source_connection.py

Configured external data source (CSV upload channel or webhook endpoint).
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class SourceConnectionType:
    CSV = "csv"
    WEBHOOK = "webhook"


class SourceConnectionStatus:
    ACTIVE = "active"
    DISABLED = "disabled"


class SourceConnection(Base, TimestampMixin):
    __tablename__ = "source_connections"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    type: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        comment="csv, webhook",
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=SourceConnectionStatus.ACTIVE,
    )
    config: Mapped[dict[str, Any]] = mapped_column(
        JSONB,
        nullable=False,
        default=dict,
        comment="webhook_token_hash / webhook_token_prefix for webhook connections",
    )

    __table_args__ = (
        Index("ix_source_connections_org_id", "org_id"),
        Index("ix_source_connections_org_type", "org_id", "type"),
    )
