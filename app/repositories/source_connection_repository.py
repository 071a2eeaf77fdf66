"""
app/repositories/source_connection_repository.py

Read-only lookups of configured source connections.
"""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from db.models.source_connection import (
    SourceConnection,
    SourceConnectionStatus,
    SourceConnectionType,
)


class SourceConnectionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_for_org(self, *, org_id: uuid.UUID, connection_id: uuid.UUID) -> SourceConnection | None:
        stmt = select(SourceConnection).where(
            SourceConnection.org_id == org_id,
            SourceConnection.id == connection_id,
        )
        return self._session.execute(stmt).scalars().first()

    def get_active_webhook_by_token_hash(self, token_hash: str) -> SourceConnection | None:
        """
        Resolve an active webhook connection from the SHA-256 hash of its bearer token.
        """

        stmt = select(SourceConnection).where(
            SourceConnection.type == SourceConnectionType.WEBHOOK,
            SourceConnection.status == SourceConnectionStatus.ACTIVE,
            SourceConnection.config["webhook_token_hash"].astext == token_hash,
        )
        return self._session.execute(stmt).scalars().first()
