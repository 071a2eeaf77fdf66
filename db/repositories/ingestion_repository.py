"""
SQLAlchemy implementation of the ingestion storage contract.

Every write commits on its own so that one failed row never poisons the
session for the rows after it. A dropped or unreachable connection is
reported as ``RepositoryUnavailableError`` so the run fails instead of
counting every remaining row invalid.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from typing import Any

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import DBAPIError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.domain.ingestion import IngestionRun, NormalizedMetricValue, RawEventInput
from app.repositories.base import RepositoryUnavailableError, StoreResult
from app.repositories.field_mapping_repository import FieldMappingRepository
from db.models.metric_value import MetricValue
from db.models.raw_event import DEDUPE_CONSTRAINT, RawEvent
from db.models.source_run import SourceRun

logger = logging.getLogger(__name__)


class SQLAlchemyIngestionRepository:
    def __init__(self, session: Session) -> None:
        self._session = session
        self._mappings = FieldMappingRepository(session)

    # ------------------------------------------------------------------
    # Raw events / metric values
    # ------------------------------------------------------------------

    def insert_raw_event(self, event: RawEventInput) -> str:
        stmt = (
            insert(RawEvent)
            .values(
                id=uuid.uuid4(),
                org_id=event.org_id,
                source_connection_id=event.source_connection_id,
                event_type=event.event_type,
                payload=event.payload,
                dedupe_hash=event.dedupe_hash,
            )
            .on_conflict_do_nothing(constraint=DEDUPE_CONSTRAINT)
            .returning(RawEvent.id)
        )
        try:
            inserted_id = self._session.scalars(stmt).first()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._rollback_or_raise(exc)
            logger.warning("Raw event insert failed org_id=%s error=%s", event.org_id, exc)
            return StoreResult.ERROR

        return StoreResult.OK if inserted_id is not None else StoreResult.DUPLICATE

    def insert_metric_value(self, org_id: uuid.UUID, value: NormalizedMetricValue) -> str:
        record = MetricValue(
            org_id=org_id,
            metric_key=value.metric_key,
            occurred_on=value.occurred_on,
            value_num=value.value_num,
            value_text=value.value_text,
            source=value.source,
        )
        try:
            self._session.add(record)
            self._session.commit()
        except SQLAlchemyError as exc:
            self._rollback_or_raise(exc)
            logger.warning(
                "Metric value insert failed org_id=%s metric_key=%s error=%s",
                org_id,
                value.metric_key,
                exc,
            )
            return StoreResult.ERROR
        return StoreResult.OK

    def list_recent_raw_payloads(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        *,
        limit: int,
    ) -> list[dict[str, Any]]:
        stmt = (
            select(RawEvent.payload)
            .where(RawEvent.org_id == org_id, RawEvent.source_connection_id == connection_id)
            .order_by(RawEvent.received_at.desc())
            .limit(max(1, limit))
        )
        return list(self._session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Mapping definitions
    # ------------------------------------------------------------------

    def get_mapping_definition(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> dict[str, Any] | None:
        try:
            row = self._mappings.get(org_id=org_id, connection_id=connection_id)
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RepositoryUnavailableError("Unable to load mapping definition.") from exc
        return dict(row.mapping) if row is not None else None

    def save_mapping_definition(
        self,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        document: dict[str, Any],
    ) -> None:
        try:
            self._mappings.upsert(org_id=org_id, connection_id=connection_id, mapping=document)
            self._session.commit()
        except SQLAlchemyError:
            self._session.rollback()
            raise

    # ------------------------------------------------------------------
    # Runs
    # ------------------------------------------------------------------

    def create_run(self, run: IngestionRun) -> None:
        record = SourceRun(
            id=run.id,
            org_id=run.org_id,
            source_connection_id=run.source_connection_id,
            status=run.status,
            rows_in=run.rows_in,
            rows_valid=run.rows_valid,
            rows_invalid=run.rows_invalid,
            started_at=run.started_at,
            finished_at=run.finished_at,
            error=run.error,
        )
        self._write_run(lambda: self._session.add(record))

    def update_run(self, run: IngestionRun) -> None:
        def apply() -> None:
            record = self._session.get(SourceRun, run.id)
            if record is None:
                raise RepositoryUnavailableError(f"Ingestion run not found: {run.id}")
            record.status = run.status
            record.rows_in = run.rows_in
            record.rows_valid = run.rows_valid
            record.rows_invalid = run.rows_invalid
            record.finished_at = run.finished_at
            record.error = run.error

        self._write_run(apply)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _write_run(self, apply: Callable[[], None]) -> None:
        try:
            apply()
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise RepositoryUnavailableError("Unable to persist ingestion run.") from exc

    def _rollback_or_raise(self, exc: SQLAlchemyError) -> None:
        self._session.rollback()
        if isinstance(exc, DBAPIError) and exc.connection_invalidated:
            raise RepositoryUnavailableError("Database connection lost during ingestion.") from exc
