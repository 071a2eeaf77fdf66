"""
tests/test_metric_normalizer.py

Pytest unit tests for MetricNormalizer and its value coercions.

All tests are pure Python. "today" is injected so date assertions are
deterministic.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from app.mappers.metric_normalizer import (
    MetricNormalizer,
    normalize_metric_value,
    to_number,
    to_occurred_on,
    to_text,
)
from app.schemas.mapping_definition import MappingDefinition

FIXED_TODAY = date(2024, 6, 30)


def _mapping(**overrides: object) -> MappingDefinition:
    document: dict[str, object] = {
        "version": 1,
        "target": "metric_values",
        "metric_key": "revenue",
        "occurred_on": {"mode": "field", "field": "date"},
        "value_num": {"field": "amount"},
    }
    document.update(overrides)
    return MappingDefinition.model_validate(document)


@pytest.fixture()
def normalizer() -> MetricNormalizer:
    return MetricNormalizer(today=lambda: FIXED_TODAY)


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------


def test_maps_date_and_amount(normalizer: MetricNormalizer) -> None:
    result = normalizer.normalize(_mapping(), {"data": {"date": "2024-01-01", "amount": "100"}})

    assert result is not None
    assert result.metric_key == "revenue"
    assert result.occurred_on == date(2024, 1, 1)
    assert result.value_num == 100
    assert result.value_text is None
    assert result.source is None


def test_today_mode_uses_injected_clock(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(occurred_on={"mode": "today"})
    result = normalizer.normalize(mapping, {"data": {"amount": "5"}})
    assert result is not None
    assert result.occurred_on == FIXED_TODAY


def test_thousands_separator_is_stripped(normalizer: MetricNormalizer) -> None:
    result = normalizer.normalize(_mapping(), {"data": {"date": "2024-01-01", "amount": "1,234.5"}})
    assert result is not None
    assert result.value_num == 1234.5


def test_unparseable_date_is_rejected(normalizer: MetricNormalizer) -> None:
    assert normalizer.normalize(_mapping(), {"data": {"date": "not-a-date", "amount": "100"}}) is None


def test_missing_value_is_rejected(normalizer: MetricNormalizer) -> None:
    assert normalizer.normalize(_mapping(), {"data": {"date": "2024-01-01", "amount": "abc"}}) is None


def test_text_value_alone_is_accepted(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(value_num=None, value_text={"field": "status"})
    result = normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "status": "green"}})
    assert result is not None
    assert result.value_num is None
    assert result.value_text == "green"


def test_numeric_miss_with_text_present_is_accepted(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(value_text={"field": "note"})
    result = normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "amount": "", "note": "n/a"}})
    assert result is not None
    assert result.value_num is None
    assert result.value_text == "n/a"


def test_empty_text_counts_as_absent(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(value_num=None, value_text={"field": "note"})
    assert normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "note": ""}}) is None


@pytest.mark.parametrize("payload", [None, "x", [], {}, {"data": "x"}, {"data": [1, 2]}])
def test_payload_without_data_mapping_is_rejected(normalizer: MetricNormalizer, payload: object) -> None:
    assert normalizer.normalize(_mapping(), payload) is None


def test_fixed_source(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(source={"mode": "fixed", "value": "stripe"})
    result = normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "amount": 3}})
    assert result is not None
    assert result.source == "stripe"


def test_field_source_and_missing_field(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(source={"mode": "field", "field": "channel"})
    with_channel = normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "amount": 3, "channel": "ads"}})
    without_channel = normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "amount": 3}})

    assert with_channel is not None and with_channel.source == "ads"
    assert without_channel is not None and without_channel.source is None


@pytest.mark.parametrize(
    ("data", "accepted"),
    [
        ({"date": "2024-01-01", "amount": "1"}, True),
        ({"date": "", "amount": "1"}, False),
        ({"date": "2024-01-01", "amount": None}, False),
        ({"date": "2024-01-01", "amount": True}, False),
        ({"date": "2024-13-01", "amount": "1"}, False),
    ],
)
def test_accepted_iff_date_and_value_resolve(
    normalizer: MetricNormalizer,
    data: dict[str, object],
    accepted: bool,
) -> None:
    result = normalizer.normalize(_mapping(), {"data": data})
    date_ok = to_occurred_on(data.get("date")) is not None
    value_ok = to_number(data.get("amount")) is not None
    assert (result is not None) is accepted
    assert accepted is (date_ok and value_ok)


def test_module_helper_delegates() -> None:
    result = normalize_metric_value(_mapping(), {"data": {"date": "2024-02-02", "amount": "7"}})
    assert result is not None and result.value_num == 7


# ---------------------------------------------------------------------------
# preview
# ---------------------------------------------------------------------------


def test_preview_counts_rejections_and_caps_accepted(normalizer: MetricNormalizer) -> None:
    payloads = [
        {"data": {"date": "2024-01-01", "amount": "1"}},
        {"data": {"date": "bad", "amount": "1"}},
        {"data": {"date": "2024-01-02", "amount": "2"}},
        {"data": {"date": "2024-01-03", "amount": "3"}},
    ]
    preview = normalizer.preview(_mapping(), payloads, limit=2)

    assert [value.value_num for value in preview.accepted] == [1, 2]
    assert preview.rejected_count == 1


# ---------------------------------------------------------------------------
# coercions
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-01-01", date(2024, 1, 1)),
        (" 2024-01-01 ", date(2024, 1, 1)),
        ("2024-01-01T23:30:00Z", date(2024, 1, 1)),
        ("2024-01-01T23:30:00-05:00", date(2024, 1, 2)),
        ("2024/01/05", date(2024, 1, 5)),
        ("01/05/2024", date(2024, 1, 5)),
        (date(2023, 3, 3), date(2023, 3, 3)),
        (datetime(2023, 3, 3, 22, tzinfo=timezone(timedelta(hours=-4))), date(2023, 3, 4)),
        ("2024-02-30", None),
        ("", None),
        (None, None),
        (20240101, None),
    ],
)
def test_to_occurred_on(value: object, expected: date | None) -> None:
    assert to_occurred_on(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("100", 100),
        (" 42.5 ", 42.5),
        ("-1e3", -1000),
        ("1,000,000", 1_000_000),
        (7, 7),
        (2.5, 2.5),
        ("", None),
        ("abc", None),
        ("12abc", None),
        ("inf", None),
        ("nan", None),
        (float("nan"), None),
        (True, None),
        (None, None),
        ([1], None),
        (10**400, None),
        (-(10**400), None),
        (10**300, 10**300),
        (Decimal("1e400"), None),
        ("1" + "0" * 400, None),
    ],
)
def test_to_number(value: object, expected: float | None) -> None:
    assert to_number(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("green", "green"),
        ("", None),
        (None, None),
        (True, "true"),
        (3.0, "3"),
        (3.25, "3.25"),
        ({"a": 1}, '{"a":1}'),
    ],
)
def test_to_text(value: object, expected: str | None) -> None:
    assert to_text(value) == expected


def test_mapping_without_value_rule_always_rejects(normalizer: MetricNormalizer) -> None:
    mapping = _mapping().model_copy(update={"value_num": None})

    assert not mapping.has_value_rule
    assert normalizer.normalize(mapping, {"data": {"date": "2024-01-01", "amount": "1"}}) is None


def test_out_of_range_integer_is_rejected_not_raised(normalizer: MetricNormalizer) -> None:
    mapping = _mapping(occurred_on={"mode": "today"})

    assert normalizer.normalize(mapping, {"data": {"amount": 10**400}}) is None
