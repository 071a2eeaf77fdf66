"""
app/validators package marker.
"""

from app.validators.mapping_validator import (
    MappingDefinitionError,
    MappingDefinitionValidator,
    MappingErrorDetail,
)

__all__ = [
    "MappingDefinitionError",
    "MappingDefinitionValidator",
    "MappingErrorDetail",
]
