"""
Cardinality — кардинальность связей между моделями

Кардинальность = {to-one, to-many} × {from-one, from-many}:
- oneToOne   — from-one, to-one (симметричная)
- oneToMany  — from-one, to-many
- manyToOne  — from-many, to-one
- manyToMany — from-many, to-many (симметричная)

RelationshipSide — tagged variant стороны связи. Вычисляется один раз при
конструировании Relationship и определяет алгоритм join.
"""

from enum import Enum
from typing import Union

from ..errors import ConfigurationError


# =============================================================================
# CARDINALITY
# =============================================================================


class Cardinality(str, Enum):
    """Кардинальность связи"""

    ONE_TO_ONE = "oneToOne"
    ONE_TO_MANY = "oneToMany"
    MANY_TO_ONE = "manyToOne"
    MANY_TO_MANY = "manyToMany"

    @property
    def is_to_one(self) -> bool:
        return self in (Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_ONE)

    @property
    def is_from_one(self) -> bool:
        return self in (Cardinality.ONE_TO_ONE, Cardinality.ONE_TO_MANY)

    @property
    def is_symmetric(self) -> bool:
        """Симметричная связь читается одинаково с обеих сторон."""
        return self in (Cardinality.ONE_TO_ONE, Cardinality.MANY_TO_MANY)

    def reversed(self) -> "Cardinality":
        """
        Кардинальность, видимая с обратной стороны связи.

        oneToMany ↔ manyToOne, симметричные остаются без изменений.
        """
        return _REVERSED[self]


_REVERSED = {
    Cardinality.ONE_TO_ONE: Cardinality.ONE_TO_ONE,
    Cardinality.ONE_TO_MANY: Cardinality.MANY_TO_ONE,
    Cardinality.MANY_TO_ONE: Cardinality.ONE_TO_MANY,
    Cardinality.MANY_TO_MANY: Cardinality.MANY_TO_MANY,
}


def validate_cardinality(value: Union[Cardinality, str]) -> Cardinality:
    """
    Приведение значения к Cardinality.

    Args:
        value: Cardinality или строка ('oneToOne', 'oneToMany', ...)

    Returns:
        Cardinality

    Raises:
        ConfigurationError: Если значение не является одной из четырёх форм
    """
    try:
        return Cardinality(value)
    except ValueError:
        valid = ", ".join(c.value for c in Cardinality)
        raise ConfigurationError(
            f"Invalid relationship type {value!r}. Expected one of: {valid}."
        ) from None


# =============================================================================
# RELATIONSHIP SIDE
# =============================================================================


class RelationshipSide(str, Enum):
    """
    Сторона связи, с которой читается поле.

    | сторона | алгоритм | стоимость |
    |---|---|---|
    | FORWARD_TO_ONE | прямой lookup внешнего ключа | O(1) |
    | FORWARD_TO_MANY | скан target store по списку ключей | O(target) |
    | REVERSE_FROM_ONE | поиск первой записи source store | O(source) |
    | REVERSE_FROM_MANY | скан source store, все совпадения | O(source) |
    """

    FORWARD_TO_ONE = "forward_to_one"
    FORWARD_TO_MANY = "forward_to_many"
    REVERSE_FROM_ONE = "reverse_from_one"
    REVERSE_FROM_MANY = "reverse_from_many"

    @property
    def is_reverse(self) -> bool:
        return self in (RelationshipSide.REVERSE_FROM_ONE, RelationshipSide.REVERSE_FROM_MANY)

    @classmethod
    def forward(cls, cardinality: Cardinality) -> "RelationshipSide":
        if cardinality.is_to_one:
            return cls.FORWARD_TO_ONE
        return cls.FORWARD_TO_MANY

    @classmethod
    def reverse(cls, cardinality: Cardinality) -> "RelationshipSide":
        if cardinality.is_from_one:
            return cls.REVERSE_FROM_ONE
        return cls.REVERSE_FROM_MANY
