"""
app/schemas/mappings.py

Request/response schemas for mapping administration endpoints.
"""

from __future__ import annotations

from datetime import date
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class MappingSaveRequest(BaseModel):
    source_connection_id: UUID
    mapping: Any = None


class MappingSaveResponse(BaseModel):
    source_connection_id: UUID
    mapping: dict[str, Any]


class MappingPreviewRequest(BaseModel):
    source_connection_id: UUID
    limit: int | None = Field(default=None, ge=1, le=200)


class NormalizedMetricValueResponse(BaseModel):
    metric_key: str
    occurred_on: date
    value_num: float | None = None
    value_text: str | None = None
    source: str | None = None


class MappingPreviewResponse(BaseModel):
    preview: list[NormalizedMetricValueResponse] = Field(default_factory=list)
    null_count: int = Field(..., ge=0)
    sampled: int = Field(..., ge=0)


class SourceFieldsResponse(BaseModel):
    fields: list[str] = Field(default_factory=list)
