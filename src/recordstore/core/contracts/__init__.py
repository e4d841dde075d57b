"""
Contract Validation Module

Валидация декларативных определений схемы против JSON Schema контрактов.
"""

from .validators import (
    ContractValidator,
    SchemaDefinitionValidator,
    SchemaLoader,
    validate_schema_definition,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "SchemaDefinitionValidator",
    # Functions
    "validate_schema_definition",
]
