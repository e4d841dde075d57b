"""
Relationship — направленная связь между двумя моделями

Связь from → to с кардинальностью {to-one, to-many} × {from-one, from-many}.
Forward-поле хранится в записях from-модели (внешний ключ или список
ключей), reverse-поле to-модели вычисляется сканированием from-коллекции.

Стороны связи разрешаются один раз при конструировании в tagged variant
RelationshipSide: (model_name, property) → сторона → алгоритм join.
Relationship неизменяема после конструирования.

ВСЕ ошибки конфигурации возникают при конструировании (fail-fast).
Разрешение связи никогда не бросает ошибок: отсутствие совпадений —
пустой RecordSet или None.
"""

import logging
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

from recordstore.core.config import StoreConfig
from recordstore.core.domain.cardinality import Cardinality, RelationshipSide, validate_cardinality
from recordstore.core.domain.field import Field
from recordstore.core.domain.names import snake_case, validate_name
from recordstore.core.errors import ConfigurationError, NamingError, UsageError
from recordstore.model import Model
from recordstore.record.record import Record, raw_value, record_key

logger = logging.getLogger(__name__)

ModelReference = Union[Model, str, Mapping[Any, str]]


# =============================================================================
# REFERENCE PARSING
# =============================================================================


def _resolve_model(reference: Union[Model, str], models: Optional[Mapping[str, Model]]) -> Model:
    if isinstance(reference, Model):
        return reference
    if isinstance(reference, str):
        if models is None or reference not in models:
            raise ConfigurationError(f"Model {reference} is not registered.")
        return models[reference]
    raise ConfigurationError(f"{reference!r} is not a model or a model name.")


def parse_reference(
    reference: ModelReference, models: Optional[Mapping[str, Model]] = None
) -> Tuple[Model, Optional[str]]:
    """
    Разбор ссылки на модель.

    Args:
        reference: Model | имя модели | {model_or_name: field_name}
        models: Реестр моделей для разрешения имён

    Returns:
        (model, явное имя поля или None)

    Raises:
        ConfigurationError: Модель не найдена или ссылка невалидна
    """
    if isinstance(reference, Mapping):
        if len(reference) != 1:
            raise ConfigurationError(
                f"Relationship reference {reference!r} must contain exactly one model."
            )
        (model_reference, field_name), = reference.items()
        try:
            validate_name(field_name, "Relationship field")
        except NamingError as e:
            raise ConfigurationError(str(e)) from None
        return _resolve_model(model_reference, models), field_name
    return _resolve_model(reference, models), None


def _default_name(model: Model, single: bool) -> str:
    name = snake_case(model.name)
    return name if single else f"{name}_set"


def _key_field(name: str, target: Model, single: bool) -> Field:
    """
    Поле внешнего ключа, типизированное ключом target-модели.

    To-many поле — список ключей без повторов.
    """
    key = target.key
    if single:
        return Field(name, key.type_check)
    return Field(
        name,
        lambda value: isinstance(value, list) and all(key.type_check(v) for v in value),
        validators={"unique_values": True},
    )


# =============================================================================
# RELATIONSHIP
# =============================================================================


class Relationship:
    """
    Связь между моделями.

    Для модели/свойства, не относящихся к связи, get() возвращает None,
    позволяя вызывающему откатиться на обычный lookup поля.
    """

    def __init__(
        self,
        from_: ModelReference,
        to: ModelReference,
        type: Union[Cardinality, str],
        *,
        models: Optional[Mapping[str, Model]] = None,
        config: Optional[StoreConfig] = None,
    ):
        """
        Args:
            from_: Модель, хранящая внешний ключ (или {model: field_name})
            to: Модель, на которую ссылается ключ (или {model: field_name})
            type: Кардинальность ('oneToOne', 'oneToMany', 'manyToOne', 'manyToMany')
            models: Реестр моделей для ссылок по имени
            config: Конфигурация (по умолчанию — конфигурация from-модели)

        Raises:
            ConfigurationError: Невалидная кардинальность, неизвестная модель,
                неоднозначная симметричная self-связь
        """
        self._type = validate_cardinality(type)
        from_model, from_name = parse_reference(from_, models)
        to_model, to_name = parse_reference(to, models)

        self._from = from_model
        self._to = to_model
        self._name = from_name or _default_name(to_model, self._type.is_to_one)
        self._reverse_name = to_name or _default_name(from_model, self._type.is_from_one)

        if (
            self._to is self._from
            and self._type.is_symmetric
            and self._name == self._reverse_name
        ):
            raise ConfigurationError(
                "Relationship cannot be symmetric if the from and to models are the same "
                "and no distinct name is provided for either side."
            )

        (config or from_model.config).handle_experimental_api_message(
            "Relationships are experimental in the current version. Please use with caution."
        )

        self._association = _key_field(self._name, to_model, self._type.is_to_one)
        self._reverse_association = _key_field(self._reverse_name, from_model, self._type.is_from_one)

        self._sides: Dict[Tuple[str, str], RelationshipSide] = {
            (from_model.name, self._name): RelationshipSide.forward(self._type),
        }
        # Forward-сторона имеет приоритет при совпадении имён в self-связи
        self._sides.setdefault(
            (to_model.name, self._reverse_name), RelationshipSide.reverse(self._type)
        )
        self._resolvers: Dict[RelationshipSide, Callable[[Record], Any]] = {
            RelationshipSide.FORWARD_TO_ONE: self._forward_to_one,
            RelationshipSide.FORWARD_TO_MANY: self._forward_to_many,
            RelationshipSide.REVERSE_FROM_ONE: self._reverse_from_one,
            RelationshipSide.REVERSE_FROM_MANY: self._reverse_from_many,
        }
        self._frozen = True

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_frozen", False):
            raise UsageError("Relationship is immutable after construction.")
        object.__setattr__(self, name, value)

    def __repr__(self) -> str:
        return (
            f"Relationship({self._from.name}.{self._name} -> "
            f"{self._to.name}.{self._reverse_name}, {self._type.value})"
        )

    # -------------------------------------------------------------------------
    # Конфигурация
    # -------------------------------------------------------------------------

    @property
    def type(self) -> Cardinality:
        return self._type

    @property
    def from_model(self) -> Model:
        return self._from

    @property
    def to_model(self) -> Model:
        return self._to

    @property
    def name(self) -> str:
        return self._name

    @property
    def reverse_name(self) -> str:
        return self._reverse_name

    @property
    def association(self) -> Tuple[str, Field]:
        """(имя, поле) forward-стороны для from-модели."""
        return self._name, self._association

    @property
    def reverse_association(self) -> Tuple[str, Field]:
        """(имя, поле) reverse-стороны для to-модели."""
        return self._reverse_name, self._reverse_association

    # -------------------------------------------------------------------------
    # Разрешение
    # -------------------------------------------------------------------------

    def side_of(self, model_name: str, property: str) -> Optional[RelationshipSide]:
        return self._sides.get((model_name, property))

    def get(self, model_name: str, property: str, record: Record) -> Any:
        """
        Связанные записи для record.

        Returns:
            Record/None для to-one и from-one, RecordSet для to-many и
            from-many; None, если (model_name, property) не сторона связи
        """
        side = self.side_of(model_name, property)
        if side is None:
            return None
        return self._resolvers[side](record)

    def is_receiver(self, model_name: str, property: str) -> bool:
        side = self.side_of(model_name, property)
        return side is not None and side.is_reverse

    def get_type(self, model_name: str, property: str) -> Optional[Cardinality]:
        """Кардинальность, видимая с указанной стороны связи."""
        side = self.side_of(model_name, property)
        if side is None:
            return None
        return self._type.reversed() if side.is_reverse else self._type

    def _forward_to_one(self, record: Record) -> Optional[Record]:
        # Прямой lookup по ключу, O(1)
        associated_key = raw_value(record, self._name)
        if associated_key is None:
            return None
        return self._to.records.get(associated_key)

    def _forward_to_many(self, record: Record):
        associated_keys = set(raw_value(record, self._name) or [])
        return self._to.records.where(lambda value, key: key in associated_keys)

    def _reverse_matcher(self, record: Record) -> Callable[[Record], bool]:
        key = record_key(record)
        if self._type.is_to_one:
            return lambda value: raw_value(value, self._name) == key
        return lambda value: key in (raw_value(value, self._name) or [])

    def _reverse_from_one(self, record: Record) -> Optional[Record]:
        return self._from.records.find(self._reverse_matcher(record))

    def _reverse_from_many(self, record: Record):
        return self._from.records.where(self._reverse_matcher(record))


# =============================================================================
# WIRING
# =============================================================================


def wire_relationship(relationship: Relationship) -> Relationship:
    """
    Регистрация сторон связи в моделях.

    Forward-поле добавляется в from-модель, reverse-receiver — в to-модель.
    Оба имени проверяются до регистрации: при коллизии ни одна модель
    не изменяется.

    Raises:
        NamingError: Имя стороны занято в модели (или совпадает с другой
            стороной той же модели)
    """
    from_model, to_model = relationship.from_model, relationship.to_model
    name, reverse_name = relationship.name, relationship.reverse_name

    from_model.check_member_name(name, "Relationship field")
    to_model.check_member_name(reverse_name, "Relationship field")
    if from_model is to_model and name == reverse_name:
        raise NamingError(
            f"Relationship field {name} is used for both sides of a relationship on {from_model.name}."
        )

    from_model._add_relationship_field(relationship)
    to_model._add_relationship_receiver(relationship)
    logger.debug("Wired relationship %r", relationship)
    return relationship
