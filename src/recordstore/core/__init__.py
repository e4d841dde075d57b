"""
Core primitives record store: ошибки, конфигурация, доменные примитивы
и JSON Schema контракты.

Модуль не зависит от RecordSet/Model и может импортироваться отдельно.
"""

from recordstore.core.config import DEFAULT_CONFIG, ExperimentalMessages, StoreConfig
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

__all__ = [
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
