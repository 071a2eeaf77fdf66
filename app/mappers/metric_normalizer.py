"""
app/mappers/metric_normalizer.py

Applies a mapping definition to one raw record's flat field map.

Rejection is an expected outcome, not an error: ``normalize`` returns None when
the date cannot be resolved or when neither a numeric nor a text value is
present, and the caller counts the record as invalid.
"""

from __future__ import annotations

import json
import math
import re
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from app.domain.ingestion import NormalizedMetricValue, RawPayload
from app.schemas.mapping_definition import (
    MappingDefinition,
    OccurredOnField,
    SourceField,
    SourceFixed,
)

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DECIMAL_PATTERN = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")

DATE_FORMATS: tuple[str, ...] = (
    "%Y/%m/%d",
    "%m/%d/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


@dataclass(frozen=True)
class MappingPreview:
    """
    Result of dry-running a mapping over previously received payloads.
    """

    accepted: list[NormalizedMetricValue] = field(default_factory=list)
    rejected_count: int = 0


class MetricNormalizer:
    """
    Pure projection of raw payloads onto normalized metric values.
    """

    def __init__(self, *, today: Callable[[], date] = utc_today) -> None:
        self._today = today

    def normalize(
        self,
        mapping: MappingDefinition,
        payload: Any,
    ) -> NormalizedMetricValue | None:
        raw = RawPayload.from_value(payload)
        if raw is None or not mapping.has_value_rule:
            return None
        data = raw.data

        if isinstance(mapping.occurred_on, OccurredOnField):
            occurred_on = to_occurred_on(data.get(mapping.occurred_on.field))
        else:
            occurred_on = self._today()
        if occurred_on is None:
            return None

        value_num = to_number(data.get(mapping.value_num.field)) if mapping.value_num else None
        value_text = to_text(data.get(mapping.value_text.field)) if mapping.value_text else None
        if value_num is None and value_text is None:
            return None

        return NormalizedMetricValue(
            metric_key=mapping.metric_key,
            occurred_on=occurred_on,
            value_num=value_num,
            value_text=value_text,
            source=self._resolve_source(mapping, data),
        )

    def preview(
        self,
        mapping: MappingDefinition,
        payloads: Iterable[Any],
        *,
        limit: int | None = None,
    ) -> MappingPreview:
        accepted: list[NormalizedMetricValue] = []
        rejected = 0
        for payload in payloads:
            normalized = self.normalize(mapping, payload)
            if normalized is None:
                rejected += 1
            elif limit is None or len(accepted) < limit:
                accepted.append(normalized)
        return MappingPreview(accepted=accepted, rejected_count=rejected)

    @staticmethod
    def _resolve_source(mapping: MappingDefinition, data: Mapping[str, Any]) -> str | None:
        rule = mapping.source
        if isinstance(rule, SourceFixed):
            return rule.value or None
        if isinstance(rule, SourceField):
            return to_text(data.get(rule.field))
        return None


def to_occurred_on(value: Any) -> date | None:
    """
    Resolve a calendar date from an ISO date string, another common
    date/datetime string, or a date/datetime object. Aware values are
    converted to UTC first.
    """

    if isinstance(value, datetime):
        return _utc_date(value)
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if ISO_DATE_PATTERN.match(text):
        try:
            return date.fromisoformat(text)
        except ValueError:
            return None

    try:
        return _utc_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).date()
    return value.date()


def to_number(value: Any) -> float | int | None:
    """
    Native finite numbers pass through; strings are trimmed and stripped of
    thousands separators before parsing. Anything else is no value.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        # Integers beyond float range have no storable value.
        try:
            float(value)
        except OverflowError:
            return None
        return value
    if isinstance(value, (float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = value.strip().replace(",", "")
    if not text or not DECIMAL_PATTERN.match(text):
        return None
    number = float(text)
    return number if math.isfinite(number) else None


def to_text(value: Any) -> str | None:
    """
    Stringify a field value; empty results count as absent.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, float) and value.is_integer():
        text = str(int(value))
    elif isinstance(value, (date, datetime)):
        text = value.isoformat()
    elif isinstance(value, (Mapping, list, tuple)):
        text = json.dumps(value, ensure_ascii=False, default=str, separators=(",", ":"))
    else:
        text = str(value)
    return text or None


_default_normalizer = MetricNormalizer()


def normalize_metric_value(mapping: MappingDefinition, payload: Any) -> NormalizedMetricValue | None:
    return _default_normalizer.normalize(mapping, payload)
