"""
app/validators/mapping_validator.py

Validation for stored and submitted mapping definitions.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Sequence

from pydantic import ValidationError

from app.schemas.mapping_definition import MappingDefinition

_ERROR_CODES: dict[str, str] = {
    "missing": "required_field_missing",
    "literal_error": "invalid_literal",
    "union_tag_invalid": "invalid_mode",
    "union_tag_not_found": "missing_mode",
    "string_type": "invalid_type",
    "string_too_short": "empty_value",
    "model_type": "invalid_type",
    "model_attributes_type": "invalid_type",
}


@dataclass(frozen=True)
class MappingErrorDetail:
    """
    Structured mapping error detail.
    """

    code: str
    message: str
    field: str | None = None
    context: dict[str, Any] | None = None


class MappingDefinitionError(ValueError):
    """
    Raised when a mapping definition document is not a valid version 1 mapping.
    """

    def __init__(self, *, message: str, errors: Sequence[MappingErrorDetail]) -> None:
        super().__init__(message)
        self.message = message
        self.errors = tuple(errors)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "errors": [
                {
                    "code": error.code,
                    "message": error.message,
                    "field": error.field,
                    "context": error.context,
                }
                for error in self.errors
            ],
        }


class MappingDefinitionValidator:
    """
    Turns raw mapping documents into ``MappingDefinition`` objects.
    """

    def validate(self, raw: Any) -> MappingDefinition:
        """
        Validate one mapping document and raise structured errors if invalid.
        """

        if isinstance(raw, MappingDefinition):
            return raw
        if not isinstance(raw, Mapping):
            raise MappingDefinitionError(
                message="Mapping definition must be a JSON object.",
                errors=[
                    MappingErrorDetail(
                        code="invalid_document",
                        message="Expected an object.",
                        context={"received_type": type(raw).__name__},
                    )
                ],
            )

        try:
            return MappingDefinition.model_validate(dict(raw))
        except ValidationError as exc:
            errors = [self._to_detail(error) for error in exc.errors()]
            fields = ", ".join(sorted({error.field for error in errors if error.field})) or "document"
            raise MappingDefinitionError(
                message=f"Mapping definition validation failed: {fields}.",
                errors=errors,
            ) from exc

    def is_valid(self, raw: Any) -> bool:
        try:
            self.validate(raw)
        except MappingDefinitionError:
            return False
        return True

    @staticmethod
    def _to_detail(error: Mapping[str, Any]) -> MappingErrorDetail:
        location = [str(part) for part in error.get("loc", ())]
        error_type = str(error.get("type", ""))
        if error_type == "value_error" and not location:
            code = "value_rule_missing"
        else:
            code = _ERROR_CODES.get(error_type, "invalid_value")
        context = error.get("ctx")
        return MappingErrorDetail(
            code=code,
            message=str(error.get("msg", "Invalid value.")),
            field=".".join(location) or None,
            context={key: str(value) for key, value in context.items()} if context else None,
        )
