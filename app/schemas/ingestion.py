"""
app/schemas/ingestion.py

Response schemas for ingestion endpoints.
"""

from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel, Field

from app.domain.ingestion import IngestionRunSummary


class IngestionRunResponse(BaseModel):
    """
    Aggregate outcome of one ingestion run.
    """

    run_id: UUID
    status: str
    rows_in: int = Field(..., ge=0)
    rows_valid: int = Field(..., ge=0)
    rows_invalid: int = Field(..., ge=0)
    duplicate_rows: int = Field(default=0, ge=0)
    error: str | None = None

    @classmethod
    def from_summary(cls, summary: IngestionRunSummary) -> IngestionRunResponse:
        return cls(
            run_id=summary.run_id,
            status=summary.status,
            rows_in=summary.rows_in,
            rows_valid=summary.rows_valid,
            rows_invalid=summary.rows_invalid,
            duplicate_rows=summary.duplicate_rows,
            error=summary.error,
        )
