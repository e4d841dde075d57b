"""
Key — описание ключа модели

Immutable Pydantic модель. Ключ уникален в пределах RecordSet модели.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from .names import NAME_PATTERN


class KeyType(str, Enum):
    """Тип ключа"""

    STRING = "string"
    NUMBER = "number"
    AUTO = "auto"  # 1, 2, 3… назначается моделью


class Key(BaseModel):
    """
    Ключ модели.

    Для type='auto' ключ назначается автоматически, если не передан в данных.
    """

    name: str = Field(default="id", pattern=NAME_PATTERN, description="Имя ключевого поля")
    type: KeyType = Field(default=KeyType.STRING, description="Тип ключа")

    model_config = {"frozen": True}

    @property
    def is_auto(self) -> bool:
        return self.type == KeyType.AUTO

    def type_check(self, value: Any) -> bool:
        """Проверка значения ключа. None никогда не является валидным ключом."""
        if self.type == KeyType.STRING:
            return isinstance(value, str)
        return isinstance(value, int) and not isinstance(value, bool)
