"""
Domain primitives: кардинальность связей, ключи, поля, правила именования.
"""

from recordstore.core.domain.cardinality import Cardinality, RelationshipSide, validate_cardinality
from recordstore.core.domain.field import STANDARD_TYPES, STANDARD_VALIDATORS, Field
from recordstore.core.domain.key import Key, KeyType
from recordstore.core.domain.names import NAME_PATTERN, camel_case, snake_case, validate_name

__all__ = [
    # Cardinality
    "Cardinality",
    "RelationshipSide",
    "validate_cardinality",
    # Field
    "Field",
    "STANDARD_TYPES",
    "STANDARD_VALIDATORS",
    # Key
    "Key",
    "KeyType",
    # Names
    "NAME_PATTERN",
    "validate_name",
    "snake_case",
    "camel_case",
]
