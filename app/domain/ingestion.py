"""
app/domain/ingestion.py

Domain models for raw events, normalized metric values and ingestion runs.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime, timezone
from typing import Any


class RunStatus:
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

    TERMINAL = frozenset({SUCCESS, FAILED})


class RowOutcome:
    """
    Per-record result of one pass through the ingestion pipeline.
    """

    VALID = "valid"
    DUPLICATE = "duplicate"
    STORAGE_ERROR = "storage_error"
    UNMAPPED = "unmapped"
    REJECTED = "rejected"


class RunStateError(RuntimeError):
    """
    Raised when an ingestion run is moved out of a terminal state.
    """


@dataclass(frozen=True)
class RawPayload:
    """
    Validated ``{data, row_index}`` shape read by the normalizer.
    """

    data: Mapping[str, Any]
    row_index: int | None = None

    @classmethod
    def from_value(cls, value: Any) -> RawPayload | None:
        """
        Return the validated payload, or None when ``data`` is not a mapping.
        """

        if isinstance(value, RawPayload):
            return value
        if not isinstance(value, Mapping):
            return None
        data = value.get("data")
        if not isinstance(data, Mapping):
            return None
        row_index = value.get("row_index")
        if isinstance(row_index, bool) or not isinstance(row_index, int):
            row_index = None
        return cls(data=data, row_index=row_index)


@dataclass(frozen=True)
class RawEventInput:
    """
    One raw event ready for insertion.
    """

    org_id: uuid.UUID
    source_connection_id: uuid.UUID | None
    event_type: str
    payload: dict[str, Any]
    dedupe_hash: str


@dataclass(frozen=True)
class NormalizedMetricValue:
    """
    Canonical (metric key, date, value) output of the normalizer.
    """

    metric_key: str
    occurred_on: date
    value_num: float | None = None
    value_text: str | None = None
    source: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "metric_key": self.metric_key,
            "occurred_on": self.occurred_on.isoformat(),
            "value_num": self.value_num,
            "value_text": self.value_text,
            "source": self.source,
        }


@dataclass(frozen=True)
class RowResult:
    row_index: int | None
    outcome: str
    detail: str | None = None

    @property
    def is_valid(self) -> bool:
        return self.outcome == RowOutcome.VALID


@dataclass
class RunCounters:
    """
    Mutable tally of row results for the run in progress.
    """

    rows_in: int = 0
    rows_valid: int = 0
    rows_invalid: int = 0
    by_outcome: dict[str, int] = field(default_factory=dict)

    def record(self, result: RowResult) -> None:
        self.rows_in += 1
        if result.is_valid:
            self.rows_valid += 1
        else:
            self.rows_invalid += 1
        self.by_outcome[result.outcome] = self.by_outcome.get(result.outcome, 0) + 1

    def count(self, outcome: str) -> int:
        return self.by_outcome.get(outcome, 0)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class IngestionRun:
    """
    Lifecycle record for one ingestion operation.

    Created ``running``; ``complete`` and ``fail`` return the single terminal
    version of the run and refuse to leave a terminal state.
    """

    org_id: uuid.UUID
    source_connection_id: uuid.UUID | None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    status: str = RunStatus.RUNNING
    rows_in: int = 0
    rows_valid: int = 0
    rows_invalid: int = 0
    started_at: datetime = field(default_factory=utc_now)
    finished_at: datetime | None = None
    error: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in RunStatus.TERMINAL

    def complete(self, counters: RunCounters, *, finished_at: datetime | None = None) -> IngestionRun:
        return self._finish(RunStatus.SUCCESS, counters, error=None, finished_at=finished_at)

    def fail(
        self,
        error: str,
        counters: RunCounters | None = None,
        *,
        finished_at: datetime | None = None,
    ) -> IngestionRun:
        return self._finish(RunStatus.FAILED, counters or RunCounters(), error=error, finished_at=finished_at)

    def _finish(
        self,
        status: str,
        counters: RunCounters,
        *,
        error: str | None,
        finished_at: datetime | None,
    ) -> IngestionRun:
        if self.is_terminal:
            raise RunStateError(f"Ingestion run {self.id} is already {self.status}.")
        return replace(
            self,
            status=status,
            rows_in=counters.rows_in,
            rows_valid=counters.rows_valid,
            rows_invalid=counters.rows_invalid,
            finished_at=finished_at or utc_now(),
            error=error,
        )


@dataclass(frozen=True)
class IngestionRunSummary:
    """
    What the upload / webhook caller gets back once a run is terminal.
    """

    run_id: uuid.UUID
    status: str
    rows_in: int
    rows_valid: int
    rows_invalid: int
    error: str | None = None
    duplicate_rows: int = 0
    storage_unavailable: bool = False

    @property
    def succeeded(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @classmethod
    def from_run(
        cls,
        run: IngestionRun,
        counters: RunCounters | None = None,
        *,
        storage_unavailable: bool = False,
    ) -> IngestionRunSummary:
        return cls(
            run_id=run.id,
            status=run.status,
            rows_in=run.rows_in,
            rows_valid=run.rows_valid,
            rows_invalid=run.rows_invalid,
            error=run.error,
            duplicate_rows=counters.count(RowOutcome.DUPLICATE) if counters else 0,
            storage_unavailable=storage_unavailable,
        )
