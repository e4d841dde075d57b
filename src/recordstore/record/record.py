"""
Record — экземпляр сущности модели

Запись непрозрачна для RecordSet: коллекции нужны только её ключ и
значения полей. Доступ к атрибутам маршрутизируется моделью: ключ,
хранимые поля, связи, вычисляемые properties, методы.

Запись read-only снаружи: изменения только через Model.update_record().
"""

import json
from typing import Any, Dict, Hashable, Iterable, Mapping

from recordstore.core.errors import UsageError


class Record:
    """Экземпляр сущности модели."""

    __slots__ = ("_model", "_key", "_data", "_cache")

    def __init__(self, model: Any, key: Hashable, data: Mapping[str, Any]):
        object.__setattr__(self, "_model", model)
        object.__setattr__(self, "_key", key)
        object.__setattr__(self, "_data", dict(data))
        object.__setattr__(self, "_cache", {})

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return self._model._resolve_member(self, name)

    def __getitem__(self, name: str) -> Any:
        try:
            return getattr(self, name)
        except AttributeError:
            raise KeyError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        raise UsageError(
            f"Cannot set {name} directly. Please use `Model.update_record()` instead."
        )

    def __delattr__(self, name: str) -> None:
        raise UsageError(
            f"Cannot delete {name} directly. Please use `Model.update_record()` instead."
        )

    def __repr__(self) -> str:
        return f"<{self._model.name} {self._key!r}>"

    def to_dict(self) -> Dict[str, Any]:
        """
        Plain-data представление: ключ + хранимые поля.

        Вложенные записи рекурсивно заменяются своими dict.
        Для связей хранятся внешние ключи, а не связанные записи.
        """
        result = {self._model.key.name: self._key}
        for name, value in self._data.items():
            result[name] = render(value)
        return result

    def to_json(self, **dumps_kwargs: Any) -> str:
        dumps_kwargs.setdefault("default", str)
        return json.dumps(self.to_dict(), **dumps_kwargs)


# =============================================================================
# HELPERS (package-internal)
# =============================================================================


def is_record(value: Any) -> bool:
    return isinstance(value, Record)


def record_key(record: Record) -> Hashable:
    return record._key


def raw_value(record: Record, name: str) -> Any:
    """Хранимое значение поля (для связей — внешний ключ или список ключей)."""
    return record._data.get(name)


def record_data(record: Record) -> Dict[str, Any]:
    """Ключ + хранимые значения без рендеринга."""
    return {record._model.key.name: record._key, **record._data}


def replace_data(record: Record, data: Mapping[str, Any]) -> None:
    """Замена хранимых значений; кэш properties сбрасывается."""
    object.__setattr__(record, "_data", dict(data))
    object.__setattr__(record, "_cache", {})


def record_model_name(records: Iterable[Any]) -> str:
    """Имя модели, если все записи принадлежат одной модели, иначе ''."""
    names = {value._model.name for value in records if is_record(value)}
    if len(names) == 1:
        return names.pop()
    return ""


def render(value: Any) -> Any:
    if is_record(value):
        return value.to_dict()
    if isinstance(value, list):
        return [render(item) for item in value]
    if isinstance(value, dict):
        return {key: render(item) for key, item in value.items()}
    return value
