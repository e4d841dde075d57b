"""
Model — владелец одного RecordSet

Model — единственный путь мутации своей коллекции (gateway):
create_record / update_record / remove_record. Все чтения идут через
немутирующую алгебру RecordSet.

Пространство имён модели общее: ключ, поля, поля связей, receivers связей,
properties, методы, scopes и члены Record не могут пересекаться.
"""

import functools
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Hashable, Mapping, Optional, Set, Union

from recordstore.core.config import DEFAULT_CONFIG, StoreConfig
from recordstore.core.domain.field import Field
from recordstore.core.domain.key import Key
from recordstore.core.domain.names import validate_name
from recordstore.core.errors import CallbackTypeError, NamingError, RecordNotFoundError, UsageError
from recordstore.record.handler import RecordHandler
from recordstore.record.record import Record, replace_data
from recordstore.record.set import RecordSet, open_record_set

logger = logging.getLogger(__name__)

# Публичные члены Record (to_dict, to_json) недоступны как имена полей
RECORD_MEMBERS = frozenset(name for name in dir(Record) if not name.startswith("_"))

FieldDefinition = Union[str, Callable[[Any], bool], Field, Mapping[str, Any]]


@dataclass(frozen=True)
class Property:
    """Вычисляемый атрибут записи."""

    name: str
    body: Callable[[Record], Any]
    cache: bool = False


class Model:
    """
    Модель: схема полей + коллекция записей.

    Example:
        >>> person = Model("Person", key={"name": "id", "type": "number"},
        ...                fields={"name": "string", "age": "number"})
        >>> person.create_record({"id": 1, "name": "Ann", "age": 30}).name
        'Ann'
    """

    def __init__(
        self,
        name: str,
        *,
        key: Union[str, Key, Mapping[str, Any]] = "id",
        fields: Optional[Mapping[str, FieldDefinition]] = None,
        properties: Optional[Mapping[str, Any]] = None,
        methods: Optional[Mapping[str, Callable]] = None,
        scopes: Optional[Mapping[str, Any]] = None,
        config: Optional[StoreConfig] = None,
    ):
        self.name = validate_name(name, "Model")
        self.config = config or DEFAULT_CONFIG
        self.key = self._parse_key(key)

        self._records, self._writer = open_record_set()
        self._handler = RecordHandler(self)

        self._fields: Dict[str, Field] = {}
        self._properties: Dict[str, Property] = {}
        self._methods: Dict[str, Callable] = {}
        self._relationships: Dict[str, Any] = {}

        for field_name, definition in (fields or {}).items():
            self.add_field(field_name, definition)
        for property_name, definition in (properties or {}).items():
            if isinstance(definition, Mapping):
                self.add_property(property_name, definition.get("body"), cache=definition.get("cache", False))
            else:
                self.add_property(property_name, definition)
        for method_name, method in (methods or {}).items():
            self.add_method(method_name, method)
        for scope_name, definition in (scopes or {}).items():
            self.add_scope(scope_name, *self._parse_scope(scope_name, definition))

    def __repr__(self) -> str:
        return f"Model({self.name!r})"

    # -------------------------------------------------------------------------
    # Определение модели
    # -------------------------------------------------------------------------

    def add_field(self, name: str, definition: FieldDefinition) -> Field:
        """
        Добавление поля.

        Args:
            name: Имя поля
            definition: имя стандартного типа | предикат типа | Field |
                mapping опций ({type, default, required, validators, values})

        Raises:
            NamingError: Имя занято
            CallbackTypeError: Невалидный тип поля
        """
        self.check_member_name(name, "Field")
        field = self._build_field(name, definition)
        self._fields[name] = field
        return field

    def add_property(self, name: str, body: Callable[[Record], Any], *, cache: bool = False) -> Property:
        self.check_member_name(name, "Property")
        if not callable(body):
            raise CallbackTypeError(f"Property {name} is not a function.")
        prop = Property(name, body, cache)
        self._properties[name] = prop
        return prop

    def add_method(self, name: str, method: Callable) -> None:
        self.check_member_name(name, "Method")
        if not callable(method):
            raise CallbackTypeError(f"Method {name} is not a function.")
        self._methods[name] = method

    def add_scope(self, name: str, matcher: Callable, comparator: Optional[Callable] = None) -> None:
        """
        Регистрация scope в коллекции модели.

        Raises:
            NamingError: Имя занято полем/методом/встроенным членом RecordSet
            DuplicationError: Scope уже зарегистрирован
            CallbackTypeError: matcher/comparator не callable
        """
        with self._writer.lock:
            self._writer.add_scope(
                name, matcher, comparator, reserved=self.member_names(include_scopes=False)
            )

    def member_names(self, include_scopes: bool = True) -> Set[str]:
        names = {self.key.name, *self._fields, *self._relationships, *self._properties, *self._methods}
        names |= RECORD_MEMBERS
        if include_scopes:
            names.update(self._records.scope_names)
        return names

    def check_member_name(self, name: str, kind: str = "Name") -> str:
        """
        Проверка имени по всему пространству имён модели.

        Raises:
            NamingError: Имя невалидно или уже занято
        """
        validate_name(name, kind)
        if name in self.member_names():
            raise NamingError(f"{kind} {name} is already in use in model {self.name}.")
        return name

    @property
    def fields(self) -> Mapping[str, Field]:
        return MappingProxyType(self._fields)

    @property
    def relationships(self) -> Mapping[str, Any]:
        return MappingProxyType(self._relationships)

    @property
    def records(self) -> RecordSet:
        """Живая коллекция записей (только read-операции)."""
        return self._records

    # -------------------------------------------------------------------------
    # Gateway
    # -------------------------------------------------------------------------

    def create_record(self, data: Mapping[str, Any]) -> Record:
        """
        Создание записи.

        Raises:
            DuplicationError: Ключ уже существует
            FieldValidationError: Невалидный ключ или значение поля
        """
        # Проверка и вставка под одним lock: ключ не может быть занят между ними
        with self._writer.lock:
            key, record = self._handler.build(data)
            self._writer.insert(key, record)
        logger.debug("Created %s record %r", self.name, key)
        return record

    def update_record(self, key: Hashable, data: Mapping[str, Any]) -> Record:
        """
        Обновление полей записи (всё или ничего).

        Raises:
            RecordNotFoundError: Записи с таким ключом нет
            UsageError: Попытка изменить ключ
            FieldValidationError: Невалидное значение поля
        """
        if not isinstance(data, Mapping):
            raise UsageError("Record data must be a mapping.")
        with self._writer.lock:
            record = self._records.get(key)
            if record is None:
                raise RecordNotFoundError(f"Record {key!r} does not exist in model {self.name}.")
            replace_data(record, self._handler.build_update(record, data))
        logger.debug("Updated %s record %r", self.name, key)
        return record

    def remove_record(self, key: Hashable) -> bool:
        if not self._writer.remove(key):
            logger.warning("Record %r does not exist in model %s.", key, self.name)
            return False
        logger.debug("Removed %s record %r", self.name, key)
        return True

    def clear_records_for_testing(self) -> None:
        self._writer.clear_for_testing()

    # -------------------------------------------------------------------------
    # Связи (вызывается из wire_relationship)
    # -------------------------------------------------------------------------

    def _add_relationship_field(self, relationship: Any) -> None:
        name, field = relationship.association
        self.check_member_name(name, "Relationship field")
        self._fields[name] = field
        self._relationships[name] = relationship

    def _add_relationship_receiver(self, relationship: Any) -> None:
        name, _ = relationship.reverse_association
        self.check_member_name(name, "Relationship field")
        self._relationships[name] = relationship

    # -------------------------------------------------------------------------
    # Доступ к атрибутам записи
    # -------------------------------------------------------------------------

    def _resolve_member(self, record: Record, name: str) -> Any:
        if name == self.key.name:
            return record._key

        relationship = self._relationships.get(name)
        if relationship is not None:
            return relationship.get(self.name, name, record)

        if name in self._fields:
            return record._data.get(name)

        prop = self._properties.get(name)
        if prop is not None:
            if not prop.cache:
                return prop.body(record)
            if name not in record._cache:
                record._cache[name] = prop.body(record)
            return record._cache[name]

        method = self._methods.get(name)
        if method is not None:
            return functools.partial(method, record)

        raise AttributeError(f"{self.name} record has no attribute {name!r}")

    # -------------------------------------------------------------------------
    # Private
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_key(key: Union[str, Key, Mapping[str, Any]]) -> Key:
        if isinstance(key, Key):
            return key
        if isinstance(key, str):
            return Key(name=key)
        if isinstance(key, Mapping):
            return Key(**key)
        raise UsageError(f"Key {key!r} is not a string, Key or mapping.")

    def _build_field(self, name: str, definition: FieldDefinition) -> Field:
        if isinstance(definition, Field):
            if definition.name != name:
                raise NamingError(f"Field {definition.name} cannot be registered as {name}.")
            return definition
        if isinstance(definition, str):
            return Field.standard(definition, name)
        if isinstance(definition, Mapping):
            options = dict(definition)
            field_type = options.pop("type", None)
            if isinstance(field_type, str):
                return Field.standard(field_type, name, **options)
            if callable(field_type):
                self._handle_custom_type(name)
                return Field(name, field_type, **options)
            raise CallbackTypeError(f"Field {name} type is not a string or a function.")
        if callable(definition):
            self._handle_custom_type(name)
            return Field(name, definition)
        raise CallbackTypeError(f"Field {name} type is not a string or a function.")

    def _handle_custom_type(self, name: str) -> None:
        self.config.handle_experimental_api_message(
            f"The provided type for {name} is not part of the standard types. "
            "Function types are experimental and may go away in a later release."
        )

    @staticmethod
    def _parse_scope(name: str, definition: Any):
        if callable(definition):
            return definition, None
        if isinstance(definition, Mapping):
            return definition.get("matcher"), definition.get("comparator")
        raise CallbackTypeError(f"Scope {name} is not a function or valid mapping.")
