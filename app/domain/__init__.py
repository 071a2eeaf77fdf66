"""
app/domain package marker.
"""

from app.domain.ingestion import (
    IngestionRun,
    IngestionRunSummary,
    NormalizedMetricValue,
    RawEventInput,
    RawPayload,
    RowOutcome,
    RowResult,
    RunCounters,
    RunStateError,
    RunStatus,
)

__all__ = [
    "IngestionRun",
    "IngestionRunSummary",
    "NormalizedMetricValue",
    "RawEventInput",
    "RawPayload",
    "RowOutcome",
    "RowResult",
    "RunCounters",
    "RunStateError",
    "RunStatus",
]
