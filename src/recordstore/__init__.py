"""
recordstore — in-memory реляционное хранилище записей

Типизированные коллекции записей с уникальными ключами (по одной на модель),
немутирующая алгебра запросов RecordSet, сохранённые запросы (scopes) и
связи между моделями, вычисляемые по требованию.

Пример:
    >>> from recordstore import Schema
    >>> schema = Schema("blog")
    >>> post = schema.add_model("Post", key={"type": "auto"}, fields={"title": "string"})
    >>> post.create_record({"title": "Hello"}).id
    1
"""

from recordstore.core.config import DEFAULT_CONFIG, ExperimentalMessages, StoreConfig
from recordstore.core.domain import Cardinality, Field, Key, KeyType, RelationshipSide
from recordstore.core.errors import (
    CallbackTypeError,
    ConfigurationError,
    DuplicationError,
    ExperimentalAPIError,
    FieldValidationError,
    NamingError,
    RecordNotFoundError,
    RecordStoreError,
    UsageError,
)
from recordstore.model import Model, Property
from recordstore.record import Record, RecordSet, Scope
from recordstore.relationship import Relationship, wire_relationship
from recordstore.schema import Schema

__version__ = "0.1.0"

__all__ = [
    # Schema / Model
    "Schema",
    "Model",
    "Property",
    # Records
    "Record",
    "RecordSet",
    "Scope",
    # Relationships
    "Relationship",
    "wire_relationship",
    "Cardinality",
    "RelationshipSide",
    # Fields
    "Field",
    "Key",
    "KeyType",
    # Config
    "StoreConfig",
    "ExperimentalMessages",
    "DEFAULT_CONFIG",
    # Errors
    "RecordStoreError",
    "UsageError",
    "CallbackTypeError",
    "NamingError",
    "DuplicationError",
    "ConfigurationError",
    "FieldValidationError",
    "RecordNotFoundError",
    "ExperimentalAPIError",
]
