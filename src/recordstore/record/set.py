"""
RecordSet — упорядоченная коллекция записей с уникальными ключами

Read-only Mapping (key → Record) с замкнутой алгеброй производных операций
(map/filter/reduce/sort/group_by/merge...). Каждая производная операция
возвращает новый независимый RecordSet (copy-on-read, не live view).

ИНВАРИАНТЫ:
1. Ключи уникальны
2. Порядок итерации = порядок вставки; сохраняется всеми операциями,
   кроме явно переупорядочивающих (sort, only) или удаляющих (filter, slice...)
3. Публичные set/delete/clear запрещены (UsageError); мутирует только
   RecordSetWriter, выдаваемый владельцу коллекции (Model)
4. Таблица scopes копируется в каждый производный RecordSet
5. sort стабилен

Callbacks вызываются с (value, key, record_set). Callback, объявивший меньше
позиционных параметров, получает только первые аргументы.
"""

import functools
import inspect
import json
import logging
import threading
from collections.abc import Mapping
from dataclasses import dataclass
from itertools import islice
from typing import Any, Callable, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple, Union

from recordstore.core.domain.names import validate_name
from recordstore.core.errors import CallbackTypeError, DuplicationError, NamingError, UsageError
from recordstore.record.record import is_record, record_key, record_model_name

logger = logging.getLogger(__name__)

Item = Tuple[Hashable, Any]


# =============================================================================
# CALLBACK ADAPTATION
# =============================================================================


def _bind(fn: Callable, max_args: int, min_args: int = 1, kind: str = "Callback") -> Callable:
    """
    Приведение callback к вызову с max_args позиционными аргументами.

    Если fn принимает меньше позиционных параметров, лишние аргументы
    отбрасываются. *args получает все аргументы.

    Raises:
        CallbackTypeError: Если fn не callable
    """
    if not callable(fn):
        raise CallbackTypeError(f"{kind} {fn!r} is not a function.")

    try:
        signature = inspect.signature(fn)
    except (TypeError, ValueError):
        # builtins без сигнатуры (bool, operator.attrgetter, ...)
        accepted = min_args
    else:
        accepted = 0
        for parameter in signature.parameters.values():
            if parameter.kind is parameter.VAR_POSITIONAL:
                return fn
            if parameter.kind in (parameter.POSITIONAL_ONLY, parameter.POSITIONAL_OR_KEYWORD):
                accepted += 1

    if accepted >= max_args:
        return fn
    accepted = max(accepted, min_args)
    return lambda *args: fn(*args[:accepted])


def _comparator_key(comparator: Callable, kind: str = "Comparator") -> Callable[[Item], Any]:
    """Sort key из comparator(value_a, value_b, key_a, key_b) → int."""
    compare = _bind(comparator, 4, 2, kind)
    return functools.cmp_to_key(lambda a, b: compare(a[1], b[1], a[0], b[0]))


def _group_key(value: Any) -> Hashable:
    """Hashable ключ группы: запись → её ключ, list → tuple, dict → tuple пар."""
    if is_record(value):
        return record_key(value)
    if isinstance(value, list):
        return tuple(_group_key(item) for item in value)
    if isinstance(value, dict):
        return tuple((item_key, _group_key(item)) for item_key, item in value.items())
    if isinstance(value, set):
        return frozenset(_group_key(item) for item in value)
    return value


# =============================================================================
# SCOPE
# =============================================================================


@dataclass(frozen=True)
class Scope:
    """
    Именованный сохранённый запрос: matcher + опциональный comparator.

    Результат не кэшируется: каждое обращение пересчитывается по текущему
    составу того RecordSet, на котором scope вызван.
    """

    name: str
    matcher: Callable
    comparator: Optional[Callable] = None

    def apply(self, record_set: "RecordSet") -> List[Item]:
        matcher = _bind(self.matcher, 3, kind=f"Scope {self.name}")
        matches = [
            (key, value)
            for key, value in record_set.items()
            if matcher(value, key, record_set)
        ]
        if self.comparator is not None:
            matches.sort(key=_comparator_key(self.comparator, f"Scope comparator {self.name}"))
        return matches


# =============================================================================
# RECORD SET
# =============================================================================


class RecordSet(Mapping):
    """
    Упорядоченная read-only коллекция записей.

    Итерация возвращает ключи в порядке вставки (как dict). Scopes доступны
    как атрибуты (record_set.active) и через record_set.scope('active').
    """

    __slots__ = ("_records", "_scopes")

    def __init__(
        self,
        items: Union[Iterable[Item], Mapping] = (),
        *,
        copy_scopes_from: Optional["RecordSet"] = None,
    ):
        """
        Args:
            items: Пары (key, record) или Mapping
            copy_scopes_from: RecordSet, таблица scopes которого копируется
        """
        object.__setattr__(self, "_records", dict(items))
        scopes: Dict[str, Scope] = {}
        if copy_scopes_from is not None:
            # Scopes уже проверены при регистрации в исходном RecordSet
            scopes.update(copy_scopes_from._scopes)
        object.__setattr__(self, "_scopes", scopes)

    def _derive(self, items: Union[Iterable[Item], Mapping] = ()) -> "RecordSet":
        return RecordSet(items, copy_scopes_from=self)

    # -------------------------------------------------------------------------
    # Mapping protocol
    # -------------------------------------------------------------------------

    def __getitem__(self, key: Hashable) -> Any:
        return self._records[key]

    def __iter__(self) -> Iterator[Hashable]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records

    def __repr__(self) -> str:
        name = record_model_name(self._records.values())
        label = f"RecordSet[{name}]" if name else "RecordSet"
        return f"<{label} {list(self._records)!r}>"

    def __copy__(self) -> "RecordSet":
        return self.duplicate()

    # -------------------------------------------------------------------------
    # Запрещённые мутации
    # -------------------------------------------------------------------------

    def set(self, key: Hashable, value: Any) -> None:
        raise UsageError(
            "You cannot directly modify a RecordSet. Please use `Model.create_record()` instead."
        )

    def delete(self, key: Hashable) -> None:
        raise UsageError(
            "You cannot directly modify a RecordSet. Please use `Model.remove_record()` instead."
        )

    def clear(self) -> None:
        raise UsageError(
            "You cannot directly modify a RecordSet. Please use `Model.remove_record()` instead."
        )

    def __setitem__(self, key: Hashable, value: Any) -> None:
        self.set(key, value)

    def __delitem__(self, key: Hashable) -> None:
        self.delete(key)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in self._scopes:
            raise UsageError(f"Scope {name} is read-only.")
        raise UsageError("You cannot directly modify a RecordSet.")

    def __delattr__(self, name: str) -> None:
        if name in self._scopes:
            raise UsageError(f"Scope {name} cannot be removed.")
        raise UsageError("You cannot directly modify a RecordSet.")

    # -------------------------------------------------------------------------
    # Scopes
    # -------------------------------------------------------------------------

    def __getattr__(self, name: str) -> "RecordSet":
        # Вызывается только если обычный lookup не нашёл атрибут
        if name.startswith("_"):
            raise AttributeError(name)
        scopes = self._scopes
        if name in scopes:
            return self._derive(scopes[name].apply(self))
        raise AttributeError(f"RecordSet has no attribute or scope {name!r}")

    def scope(self, name: str) -> "RecordSet":
        """
        Вычисление scope по текущему составу коллекции.

        Raises:
            KeyError: Если scope не зарегистрирован
        """
        if name not in self._scopes:
            raise KeyError(f"Scope {name!r} is not defined.")
        return self._derive(self._scopes[name].apply(self))

    @property
    def scope_names(self) -> Tuple[str, ...]:
        return tuple(self._scopes)

    # -------------------------------------------------------------------------
    # Алгебра
    # -------------------------------------------------------------------------

    def map(self, fn: Callable, flat: bool = False) -> Union[Dict[Hashable, Any], List[Any]]:
        """
        Применение fn(value, key, record_set) к каждому элементу.

        Returns:
            dict key → результат, или list результатов при flat=True
        """
        callback = _bind(fn, 3)
        if flat:
            return [callback(value, key, self) for key, value in self._records.items()]
        return {key: callback(value, key, self) for key, value in self._records.items()}

    def reduce(self, fn: Callable, initial: Any) -> Any:
        """fn(accumulator, value, key, record_set) → новый accumulator"""
        callback = _bind(fn, 4, 2)
        accumulator = initial
        for key, value in self._records.items():
            accumulator = callback(accumulator, value, key, self)
        return accumulator

    def filter(self, fn: Callable, flat: bool = False) -> Union["RecordSet", List[Any]]:
        """
        Элементы, для которых fn(value, key, record_set) истинно.

        Returns:
            Новый RecordSet, или list значений при flat=True
        """
        callback = _bind(fn, 3)
        matches = [
            (key, value) for key, value in self._records.items() if callback(value, key, self)
        ]
        if flat:
            return [value for _, value in matches]
        return self._derive(matches)

    def where(self, fn: Callable) -> "RecordSet":
        return self.filter(fn)

    def where_not(self, fn: Callable) -> "RecordSet":
        callback = _bind(fn, 3)
        return self.filter(lambda value, key, record_set: not callback(value, key, record_set))

    def find(self, fn: Callable) -> Any:
        """Первое значение, удовлетворяющее fn, или None."""
        callback = _bind(fn, 3)
        for key, value in self._records.items():
            if callback(value, key, self):
                return value
        return None

    def find_id(self, fn: Callable) -> Optional[Hashable]:
        """Ключ первого значения, удовлетворяющего fn, или None."""
        callback = _bind(fn, 3)
        for key, value in self._records.items():
            if callback(value, key, self):
                return key
        return None

    def every(self, fn: Callable) -> bool:
        callback = _bind(fn, 3)
        return all(callback(value, key, self) for key, value in self._records.items())

    def some(self, fn: Callable) -> bool:
        callback = _bind(fn, 3)
        return any(callback(value, key, self) for key, value in self._records.items())

    def sort(
        self,
        comparator: Optional[Callable] = None,
        *,
        key: Optional[Callable] = None,
        reverse: bool = False,
    ) -> "RecordSet":
        """
        Новый RecordSet в порядке comparator (или key-функции).

        Сортировка стабильна: равные элементы сохраняют исходный
        относительный порядок (в том числе при reverse=True).

        Args:
            comparator: comparator(value_a, value_b, key_a, key_b) → int
            key: key(value, record_key) → sort key
            reverse: Обратный порядок

        Raises:
            UsageError: Если не передан ровно один из comparator/key
        """
        if (comparator is None) == (key is None):
            raise UsageError("sort() requires exactly one of comparator or key.")

        items = list(self._records.items())
        if comparator is not None:
            items.sort(key=_comparator_key(comparator), reverse=reverse)
        else:
            key_fn = _bind(key, 2, kind="Sort key")
            items.sort(key=lambda item: key_fn(item[1], item[0]), reverse=reverse)
        return self._derive(items)

    def select(self, *names: str) -> List[Dict[str, Any]]:
        """Список dict с выбранными полями каждой записи."""
        return [
            {name: getattr(value, name, None) for name in names}
            for value in self._records.values()
        ]

    def pluck(self, *names: str) -> List[Any]:
        """
        Значения полей каждой записи.

        Одно имя → список значений ('id' → ключи записей).
        Несколько имён → список кортежей значений.
        """
        if len(names) == 1:
            name = names[0]
            if name == "id":
                return list(self._records)
            return [getattr(value, name, None) for value in self._records.values()]
        return [
            tuple(getattr(value, name, None) for name in names)
            for value in self._records.values()
        ]

    def group_by(self, name: str) -> Dict[Any, "RecordSet"]:
        """
        Разбиение по значению поля.

        Если значение поля — запись, группировка идёт по её ключу,
        а не по identity объекта. Списки группируются по tuple, dict —
        по tuple пар (key, value). Каждая группа сохраняет таблицу scopes.
        """
        groups: Dict[Any, RecordSet] = {}
        for key, value in self._records.items():
            group_key = _group_key(getattr(value, name, None))
            if group_key not in groups:
                groups[group_key] = self._derive()
            groups[group_key]._records[key] = value
        return groups

    def duplicate(self) -> "RecordSet":
        return self._derive(self._records)

    def merge(self, *record_sets: Mapping) -> "RecordSet":
        """
        Объединение с другими коллекциями.

        Raises:
            DuplicationError: Если любой ключ встречается более одного раза
                (частичного merge не происходит)
        """
        merged = dict(self._records)
        for record_set in record_sets:
            for key, value in record_set.items():
                if key in merged:
                    raise DuplicationError(f"Key {key!r} already exists in the record set.")
                merged[key] = value
        return self._derive(merged)

    def append(self, *records: Any) -> "RecordSet":
        """Вставка/перезапись записей по ключу (последняя запись побеждает)."""
        merged = dict(self._records)
        for record in records:
            if not is_record(record):
                raise UsageError(f"Cannot append {record!r}: only records can be appended.")
            merged[record_key(record)] = record
        return self._derive(merged)

    def only(self, *keys: Hashable) -> "RecordSet":
        """Записи с указанными ключами, в порядке аргументов."""
        return self._derive(
            (key, self._records[key]) for key in keys if key in self._records
        )

    def except_(self, *keys: Hashable) -> "RecordSet":
        """Все записи, кроме указанных ключей (имя с '_': except — ключевое слово)."""
        excluded = set(keys)
        return self._derive(
            (key, value) for key, value in self._records.items() if key not in excluded
        )

    def slice(self, start: Optional[int] = None, end: Optional[int] = None) -> "RecordSet":
        return self._derive(list(self._records.items())[start:end])

    def limit(self, n: int) -> "RecordSet":
        """Первые n записей."""
        if n < 0:
            raise ValueError(f"limit must be non-negative, got {n}")
        return self._derive(islice(self._records.items(), n))

    def offset(self, n: int) -> "RecordSet":
        """Все записи, кроме первых n."""
        if n < 0:
            raise ValueError(f"offset must be non-negative, got {n}")
        return self._derive(islice(self._records.items(), n, None))

    def batch_iterator(self, batch_size: int, flat: bool = False) -> Iterator[Union["RecordSet", List[Any]]]:
        """
        Ленивый одноразовый генератор батчей.

        Все батчи содержат ровно batch_size элементов, кроме, возможно,
        последнего. Состав фиксируется в момент вызова.

        Raises:
            ValueError: Если batch_size < 1
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        return self._batches(list(self._records.items()), batch_size, flat)

    def _batches(self, items: List[Item], batch_size: int, flat: bool):
        for start in range(0, len(items), batch_size):
            batch = items[start:start + batch_size]
            if flat:
                yield [value for _, value in batch]
            else:
                yield self._derive(batch)

    # -------------------------------------------------------------------------
    # Производные accessors
    # -------------------------------------------------------------------------

    @property
    def first(self) -> Any:
        return next(iter(self._records.values()), None)

    @property
    def last(self) -> Any:
        return next(reversed(self._records.values()), None)

    @property
    def count(self) -> int:
        return len(self._records)

    @property
    def length(self) -> int:
        return len(self._records)

    @property
    def ids(self) -> List[Hashable]:
        return list(self._records)

    # -------------------------------------------------------------------------
    # Сериализация
    # -------------------------------------------------------------------------

    def to_list(self, flat: bool = False) -> List[Any]:
        """Список записей; flat=True → список plain dict."""
        if flat:
            return [value.to_dict() for value in self._records.values()]
        return list(self._records.values())

    def to_dict(self, flat: bool = False) -> Dict[Hashable, Any]:
        """dict key → запись; flat=True → key → plain dict."""
        if flat:
            return {key: value.to_dict() for key, value in self._records.items()}
        return dict(self._records)

    def to_json(self, **dumps_kwargs: Any) -> str:
        """JSON snapshot коллекции (не wire protocol, без версионирования)."""
        dumps_kwargs.setdefault("default", str)
        return json.dumps(self.to_dict(flat=True), **dumps_kwargs)


# Встроенные члены RecordSet, недоступные как имена scopes
RESERVED_MEMBERS = frozenset(dir(RecordSet))


# =============================================================================
# WRITER (privileged gateway)
# =============================================================================


class RecordSetWriter:
    """
    Единственный путь мутации RecordSet.

    Выдаётся только владельцу коллекции через open_record_set(). Запись
    сериализуется reentrant lock'ом; владелец держит тот же lock на всё
    время validate-then-mutate (writer.lock). Чтение остаётся lock-free,
    так как производные операции копируют данные.
    """

    __slots__ = ("_target", "_lock")

    def __init__(self, target: RecordSet):
        self._target = target
        self._lock = threading.RLock()

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def insert(self, key: Hashable, record: Any) -> None:
        with self._lock:
            self._target._records[key] = record

    def remove(self, key: Hashable) -> bool:
        with self._lock:
            if key not in self._target._records:
                return False
            del self._target._records[key]
            return True

    def add_scope(
        self,
        name: str,
        matcher: Callable,
        comparator: Optional[Callable] = None,
        *,
        reserved: Iterable[str] = (),
    ) -> Scope:
        """
        Регистрация scope в таблице коллекции.

        Args:
            name: Имя scope
            matcher: matcher(value, key, record_set) → bool
            comparator: comparator(value_a, value_b, key_a, key_b) → int
            reserved: Имена, уже занятые в модели (поля, методы, ...)

        Raises:
            NamingError: Имя невалидно, занято моделью или встроенным членом
            DuplicationError: Scope с таким именем уже зарегистрирован
            CallbackTypeError: matcher/comparator не callable
        """
        with self._lock:
            validate_name(name, "Scope")
            if name in set(reserved):
                raise NamingError(f"Scope name {name} is already in use.")
            scopes = self._target._scopes
            if name in scopes:
                raise DuplicationError(f"Scope {name} already exists.")
            if name in RESERVED_MEMBERS:
                raise NamingError(f"Scope name {name} is already in use.")
            if not callable(matcher):
                raise CallbackTypeError(f"Scope {name} is not a function.")
            if comparator is not None and not callable(comparator):
                raise CallbackTypeError(f"Scope comparator {name} is not a function.")

            scope = Scope(name, matcher, comparator)
            scopes[name] = scope
        logger.debug("Registered scope %s", name)
        return scope

    def clear_for_testing(self) -> None:
        with self._lock:
            self._target._records.clear()


def open_record_set() -> Tuple[RecordSet, RecordSetWriter]:
    """Новый пустой RecordSet и его writer (для владельца коллекции)."""
    record_set = RecordSet()
    return record_set, RecordSetWriter(record_set)
