"""
app/services/ingestion_run_service.py

Drives one ingestion operation (a CSV upload or a webhook delivery) end to end.

Failure handling is split in two:

    - Structural problems (no header, no data rows, undecodable bytes, a
      webhook body without a ``data`` object) fail the whole run before any
      row is processed.
    - Row problems (duplicate, unmapped, rejected by the mapping, storage
      error) only increment ``rows_invalid``; the loop always continues.

The run record is created ``running`` before any work and written exactly
once more with its terminal state. A repository that reports itself
unavailable fails the run rather than letting every row count invalid.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Mapping, Sequence
from functools import lru_cache
from typing import Any

from app.config import get_ingestion_settings
from app.domain.ingestion import (
    IngestionRun,
    IngestionRunSummary,
    RawEventInput,
    RowOutcome,
    RowResult,
    RunCounters,
)
from app.hashing.dedupe_hash import compute_dedupe_hash
from app.mappers.metric_normalizer import MetricNormalizer
from app.parsers.csv_parser import parse_csv_text
from app.repositories.base import IngestionRepository, RepositoryUnavailableError, StoreResult
from app.schemas.mapping_definition import MappingDefinition
from app.validators.mapping_validator import MappingDefinitionError, MappingDefinitionValidator

logger = logging.getLogger(__name__)

CSV_SHAPE_ERROR = "CSV must include header row and at least one data row"
CSV_ENCODING_ERROR = "CSV must be UTF-8 encoded"
WEBHOOK_BODY_ERROR = "Webhook body must be a JSON object"
WEBHOOK_DATA_ERROR = "Webhook body must include a 'data' object"


class IngestionStructureError(ValueError):
    """
    Raised internally when input shape prevents processing any rows.
    """


class IngestionRunService:
    """
    Coordinates parsing, hashing, normalization and run bookkeeping.
    """

    def __init__(
        self,
        *,
        csv_event_type: str = "csv_row",
        default_webhook_event_type: str = "metric",
        log_row_errors: bool = True,
        normalizer: MetricNormalizer | None = None,
        mapping_validator: MappingDefinitionValidator | None = None,
    ) -> None:
        self._csv_event_type = csv_event_type
        self._default_webhook_event_type = default_webhook_event_type
        self._log_row_errors = log_row_errors
        self._normalizer = normalizer or MetricNormalizer()
        self._mapping_validator = mapping_validator or MappingDefinitionValidator()

    def ingest_csv(
        self,
        *,
        repository: IngestionRepository,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        content: str | bytes,
    ) -> IngestionRunSummary:
        """
        Ingest one CSV document; row 0 is the header, every other row is data.
        """

        run = self._start_run(repository, org_id=org_id, connection_id=connection_id)
        counters = RunCounters()

        try:
            rows = parse_csv_text(self._decode(content))
            if len(rows) < 2:
                raise IngestionStructureError(CSV_SHAPE_ERROR)

            headers = [header.strip() for header in rows[0]]
            mapping = self._load_mapping(repository, org_id=org_id, connection_id=connection_id)

            for row_index, cells in enumerate(rows[1:], start=1):
                if len(cells) == 1 and cells[0] == "":
                    continue
                payload = {"data": _pair_cells(headers, cells), "row_index": row_index}
                self._run_record(
                    repository,
                    counters,
                    org_id=org_id,
                    connection_id=connection_id,
                    event_type=self._csv_event_type,
                    payload=payload,
                    mapping=mapping,
                    row_index=row_index,
                )
        except IngestionStructureError as exc:
            return self._finish(repository, run.fail(str(exc)), counters=None)
        except RepositoryUnavailableError as exc:
            logger.exception("Ingestion run aborted run_id=%s: repository unavailable", run.id)
            return self._finish(
                repository,
                run.fail(str(exc) or "Storage unavailable", counters),
                counters,
                storage_unavailable=True,
            )

        return self._finish(repository, run.complete(counters), counters)

    def ingest_webhook(
        self,
        *,
        repository: IngestionRepository,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        body: Any,
    ) -> IngestionRunSummary:
        """
        Ingest one webhook delivery as a single-record run.

        The stored payload is ``{event_type, occurred_on, data}``; a delivery
        identical to an earlier one counts invalid as a duplicate.
        """

        run = self._start_run(repository, org_id=org_id, connection_id=connection_id)
        counters = RunCounters()

        try:
            event_type, payload = self._webhook_payload(body)
            mapping = self._load_mapping(repository, org_id=org_id, connection_id=connection_id)
            self._run_record(
                repository,
                counters,
                org_id=org_id,
                connection_id=connection_id,
                event_type=event_type,
                payload=payload,
                mapping=mapping,
                row_index=None,
            )
        except IngestionStructureError as exc:
            return self._finish(repository, run.fail(str(exc)), counters=None)
        except RepositoryUnavailableError as exc:
            logger.exception("Webhook ingestion aborted run_id=%s: repository unavailable", run.id)
            return self._finish(
                repository,
                run.fail(str(exc) or "Storage unavailable", counters),
                counters,
                storage_unavailable=True,
            )

        return self._finish(repository, run.complete(counters), counters)

    # ------------------------------------------------------------------
    # Per-record pipeline
    # ------------------------------------------------------------------

    def _run_record(
        self,
        repository: IngestionRepository,
        counters: RunCounters,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        event_type: str,
        payload: dict[str, Any],
        mapping: MappingDefinition | None,
        row_index: int | None,
    ) -> None:
        try:
            result = self._process_record(
                repository,
                org_id=org_id,
                connection_id=connection_id,
                event_type=event_type,
                payload=payload,
                mapping=mapping,
                row_index=row_index,
            )
        except RepositoryUnavailableError:
            counters.record(RowResult(row_index, RowOutcome.STORAGE_ERROR, "repository unavailable"))
            raise
        self._record(counters, result)

    def _process_record(
        self,
        repository: IngestionRepository,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
        event_type: str,
        payload: dict[str, Any],
        mapping: MappingDefinition | None,
        row_index: int | None,
    ) -> RowResult:
        dedupe_hash = compute_dedupe_hash(
            org_id=org_id,
            connection_id=connection_id,
            event_type=event_type,
            payload=payload,
        )
        stored = repository.insert_raw_event(
            RawEventInput(
                org_id=org_id,
                source_connection_id=connection_id,
                event_type=event_type,
                payload=payload,
                dedupe_hash=dedupe_hash,
            )
        )
        if stored == StoreResult.DUPLICATE:
            return RowResult(row_index, RowOutcome.DUPLICATE, f"dedupe_hash={dedupe_hash}")
        if stored != StoreResult.OK:
            return RowResult(row_index, RowOutcome.STORAGE_ERROR, "raw event insert failed")

        if mapping is None:
            return RowResult(row_index, RowOutcome.UNMAPPED)

        normalized = self._normalizer.normalize(mapping, payload)
        if normalized is None:
            return RowResult(row_index, RowOutcome.REJECTED, "mapping did not produce a value")

        if repository.insert_metric_value(org_id, normalized) != StoreResult.OK:
            return RowResult(row_index, RowOutcome.STORAGE_ERROR, "metric value insert failed")
        return RowResult(row_index, RowOutcome.VALID)

    # ------------------------------------------------------------------
    # Run lifecycle
    # ------------------------------------------------------------------

    def _start_run(
        self,
        repository: IngestionRepository,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> IngestionRun:
        run = IngestionRun(org_id=org_id, source_connection_id=connection_id)
        repository.create_run(run)
        logger.info(
            "Ingestion run started run_id=%s org_id=%s connection_id=%s",
            run.id,
            org_id,
            connection_id,
        )
        return run

    def _finish(
        self,
        repository: IngestionRepository,
        run: IngestionRun,
        counters: RunCounters | None,
        *,
        storage_unavailable: bool = False,
    ) -> IngestionRunSummary:
        repository.update_run(run)
        if run.error:
            logger.warning("Ingestion run failed run_id=%s error=%s", run.id, run.error)
        else:
            logger.info(
                "Ingestion run finished run_id=%s rows_in=%s rows_valid=%s rows_invalid=%s",
                run.id,
                run.rows_in,
                run.rows_valid,
                run.rows_invalid,
            )
        return IngestionRunSummary.from_run(run, counters, storage_unavailable=storage_unavailable)

    def _load_mapping(
        self,
        repository: IngestionRepository,
        *,
        org_id: uuid.UUID,
        connection_id: uuid.UUID,
    ) -> MappingDefinition | None:
        raw = repository.get_mapping_definition(org_id, connection_id)
        if raw is None:
            logger.info("No mapping configured org_id=%s connection_id=%s", org_id, connection_id)
            return None
        try:
            return self._mapping_validator.validate(raw)
        except MappingDefinitionError as exc:
            logger.warning(
                "Stored mapping is not valid org_id=%s connection_id=%s error=%s",
                org_id,
                connection_id,
                exc.message,
            )
            return None

    def _record(self, counters: RunCounters, result: RowResult) -> None:
        counters.record(result)
        if self._log_row_errors and not result.is_valid and result.outcome != RowOutcome.UNMAPPED:
            logger.warning(
                "Ingestion row invalid row_index=%s outcome=%s detail=%s",
                result.row_index,
                result.outcome,
                result.detail,
            )

    # ------------------------------------------------------------------
    # Input shaping
    # ------------------------------------------------------------------

    @staticmethod
    def _decode(content: str | bytes) -> str:
        if isinstance(content, str):
            return content
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise IngestionStructureError(CSV_ENCODING_ERROR) from exc

    def _webhook_payload(self, body: Any) -> tuple[str, dict[str, Any]]:
        if not isinstance(body, Mapping):
            raise IngestionStructureError(WEBHOOK_BODY_ERROR)
        data = body.get("data")
        if not isinstance(data, Mapping):
            raise IngestionStructureError(WEBHOOK_DATA_ERROR)

        event_type = str(body.get("event_type") or "").strip() or self._default_webhook_event_type
        payload = {
            "event_type": event_type,
            "occurred_on": body.get("occurred_on"),
            "data": dict(data),
        }
        return event_type, payload


def _pair_cells(headers: Sequence[str], cells: Sequence[str]) -> dict[str, str]:
    """
    Header-to-cell map; missing trailing cells become "" and extra cells are dropped.
    """

    return {header: cells[index] if index < len(cells) else "" for index, header in enumerate(headers)}


@lru_cache(maxsize=1)
def get_ingestion_run_service() -> IngestionRunService:
    """
    Build and cache the ingestion service with env-driven settings.
    """

    settings = get_ingestion_settings()
    return IngestionRunService(
        csv_event_type=settings.csv_event_type,
        default_webhook_event_type=settings.default_webhook_event_type,
        log_row_errors=settings.log_row_errors,
    )
