"""
RecordHandler — построение и проверка записей для Model

Единая точка валидации данных при create/update:
1. Ключ (тип, уникальность, auto-назначение)
2. Неизвестные поля (warning или NamingError при strict_fields)
3. Default-значения
4. Проверка типов и валидаторов каждого поля

Все проверки выполняются до любой мутации: при ошибке состояние модели
не меняется.
"""

import logging
from typing import Any, Dict, Hashable, List, Mapping, Tuple

from recordstore.core.errors import (
    DuplicationError,
    FieldValidationError,
    NamingError,
    UsageError,
)
from recordstore.record.record import Record, record_data

logger = logging.getLogger(__name__)


class RecordHandler:
    """Построитель записей одной модели."""

    def __init__(self, model: Any):
        self._model = model
        self._last_auto_key = 0

    def build(self, data: Mapping[str, Any]) -> Tuple[Hashable, Record]:
        """
        Построение новой записи.

        Returns:
            (key, record)

        Raises:
            UsageError: Если data не Mapping
            FieldValidationError: Невалидный ключ или значение поля
            DuplicationError: Ключ уже существует
            NamingError: Неизвестное поле при strict_fields
        """
        if not isinstance(data, Mapping):
            raise UsageError("Record data must be a mapping.")

        key = self._resolve_key(data)
        known = self._known_values(data)

        values: Dict[str, Any] = {}
        for name, field in self._model._fields.items():
            values[name] = known[name] if name in known else field.default

        self._validate(key, values, self._others())

        if self._model.key.is_auto:
            self._last_auto_key = max(self._last_auto_key, key)
        return key, Record(self._model, key, values)

    def build_update(self, record: Record, changes: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Новые хранимые значения записи после применения changes.

        Запись не изменяется: результат применяет Model.

        Raises:
            UsageError: Если data не Mapping или меняется ключ
            FieldValidationError: Невалидное значение поля
        """
        if not isinstance(changes, Mapping):
            raise UsageError("Record data must be a mapping.")
        key_name = self._model.key.name
        if key_name in changes and changes[key_name] != record._key:
            raise UsageError(f"Cannot change the key {key_name} of an existing record.")

        values = dict(record._data)
        values.update(self._known_values(changes))

        self._validate(record._key, values, self._others(exclude=record._key))
        return values

    # -------------------------------------------------------------------------
    # Private
    # -------------------------------------------------------------------------

    def _resolve_key(self, data: Mapping[str, Any]) -> Hashable:
        key_def = self._model.key
        if key_def.is_auto and data.get(key_def.name) is None:
            key = self._last_auto_key + 1
            while key in self._model.records:
                key += 1
            return key

        key = data.get(key_def.name)
        if not key_def.type_check(key):
            raise FieldValidationError(
                f"{self._model.name} record has invalid {key_def.name} {key!r}."
            )
        if key in self._model.records:
            raise DuplicationError(
                f"{self._model.name} record with {key_def.name} {key!r} already exists."
            )
        return key

    def _known_values(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        fields = self._model._fields
        key_name = self._model.key.name
        known: Dict[str, Any] = {}
        unknown: List[str] = []
        for name, value in data.items():
            if name == key_name:
                continue
            if name in fields:
                known[name] = value
            else:
                unknown.append(name)

        for name in unknown:
            relationship = self._model._relationships.get(name)
            if relationship is not None and relationship.is_receiver(self._model.name, name):
                message = f"{self._model.name} field {name} is computed by a relationship and cannot be set."
            else:
                message = f"{self._model.name} has no field {name}."
            if self._model.config.strict_fields:
                raise NamingError(message)
            logger.warning("%s The value will be ignored.", message)
        return known

    def _others(self, exclude: Hashable = None) -> List[Dict[str, Any]]:
        """Данные остальных записей; пусто, если ни одно поле их не сравнивает."""
        if not any(field.compares_records for field in self._model._fields.values()):
            return []
        return [
            record_data(other)
            for other_key, other in self._model.records.items()
            if exclude is None or other_key != exclude
        ]

    def _validate(self, key: Hashable, values: Dict[str, Any], others: List[Dict[str, Any]]) -> None:
        data = {self._model.key.name: key, **values}
        for field in self._model._fields.values():
            field.validate(data, others)
