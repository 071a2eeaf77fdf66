"""
app/schemas/mapping_definition.py

Version 1 mapping definition document.

The JSON encoding of these models is persisted per source connection and must
stay stable:

    {
        "version": 1,
        "target": "metric_values",
        "metric_key": "revenue",
        "occurred_on": {"mode": "field", "field": "date"},   # or {"mode": "today"}
        "value_num": {"field": "amount"},                     # optional
        "value_text": {"field": "note"},                      # optional
        "source": {"mode": "fixed", "value": "stripe"}        # or {"mode": "field", "field": ...}
    }
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, StrictStr, field_validator, model_validator
from pydantic_core import PydanticCustomError

MAPPING_VERSION = 1
METRIC_VALUES_TARGET = "metric_values"


class _RuleModel(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")


class OccurredOnToday(_RuleModel):
    mode: Literal["today"]


class OccurredOnField(_RuleModel):
    mode: Literal["field"]
    field: StrictStr


class ValueFieldRule(_RuleModel):
    field: StrictStr


class SourceFixed(_RuleModel):
    mode: Literal["fixed"]
    value: StrictStr


class SourceField(_RuleModel):
    mode: Literal["field"]
    field: StrictStr


OccurredOnRule = Annotated[Union[OccurredOnToday, OccurredOnField], Field(discriminator="mode")]
SourceRule = Annotated[Union[SourceFixed, SourceField], Field(discriminator="mode")]


class MappingDefinition(_RuleModel):
    """
    Projection of one flat source record onto a dated metric value.
    """

    version: Literal[1]
    target: Literal["metric_values"]
    metric_key: StrictStr = Field(..., min_length=1)
    occurred_on: OccurredOnRule
    value_num: ValueFieldRule | None = None
    value_text: ValueFieldRule | None = None
    source: SourceRule | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _exact_version(cls, value: Any) -> Any:
        # True and 1.0 compare equal to 1.
        if isinstance(value, bool) or not isinstance(value, int):
            raise PydanticCustomError("literal_error", "Input should be {expected}", {"expected": "1"})
        return value

    @model_validator(mode="after")
    def _require_value_rule(self) -> MappingDefinition:
        if not self.has_value_rule:
            raise ValueError("Mapping must declare value_num or value_text.")
        return self

    @property
    def has_value_rule(self) -> bool:
        return self.value_num is not None or self.value_text is not None

    def to_document(self) -> dict[str, Any]:
        """
        Storage encoding; optional rules are omitted rather than null.
        """

        return self.model_dump(mode="json", exclude_none=True)
