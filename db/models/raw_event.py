"""
db/models/raw_event.py

Raw ingested unit (CSV row or webhook delivery) stored before normalization.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, UniqueConstraint, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base

DEDUPE_CONSTRAINT = "uq_raw_events_org_dedupe_hash"


class RawEvent(Base):
    __tablename__ = "raw_events"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    org_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False)
    source_connection_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        nullable=True,
    )
    event_type: Mapped[str] = mapped_column(
        String(120),
        nullable=False,
        comment="csv_row, or the webhook event_type tag",
    )
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    dedupe_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    received_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        UniqueConstraint("org_id", "dedupe_hash", name=DEDUPE_CONSTRAINT),
        Index("ix_raw_events_org_connection_received", "org_id", "source_connection_id", "received_at"),
    )
