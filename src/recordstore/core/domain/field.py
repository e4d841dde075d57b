"""
Field — описание поля модели

Поле = имя + предикат типа + default + валидаторы.
Предикат типа проверяет только форму значения; None проходит проверку,
если поле не required. Валидаторы вызываются с (record_data, others), где
others — данные остальных записей модели (для unique).

Стандартные типы:
- boolean, number, string, date, object
- boolean_array, number_array, string_array, date_array
- enum (values=[...])
"""

import copy
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..errors import CallbackTypeError, FieldValidationError
from .names import camel_case, validate_name

TypeCheck = Callable[[Any], bool]
Validator = Callable[[Mapping[str, Any], List[Mapping[str, Any]]], bool]


# =============================================================================
# STANDARD TYPES
# =============================================================================


def _is_boolean(value: Any) -> bool:
    return isinstance(value, bool)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_string(value: Any) -> bool:
    return isinstance(value, str)


def _is_date(value: Any) -> bool:
    return isinstance(value, (date, datetime))


def _is_object(value: Any) -> bool:
    return isinstance(value, dict)


def _array_of(item_check: TypeCheck) -> TypeCheck:
    def check(value: Any) -> bool:
        return isinstance(value, list) and all(item_check(item) for item in value)

    return check


STANDARD_TYPES: Dict[str, TypeCheck] = {
    "boolean": _is_boolean,
    "number": _is_number,
    "string": _is_string,
    "date": _is_date,
    "object": _is_object,
    "boolean_array": _array_of(_is_boolean),
    "number_array": _array_of(_is_number),
    "string_array": _array_of(_is_string),
    "date_array": _array_of(_is_date),
}


# =============================================================================
# STANDARD VALIDATORS
# =============================================================================


def _unique(name: str, enabled: bool) -> Validator:
    def validator(data, others):
        value = data.get(name)
        if not enabled or value is None:
            return True
        return all(other.get(name) != value for other in others)

    return validator


def _bounded(name: str, bound: Any, measure: Callable[[Any], Any], op: Callable[[Any, Any], bool]) -> Validator:
    def validator(data, others):
        value = data.get(name)
        if value is None:
            return True
        return op(measure(value), bound)

    return validator


def _integer(name: str, enabled: bool) -> Validator:
    def validator(data, others):
        value = data.get(name)
        if not enabled or value is None:
            return True
        return isinstance(value, int) or (isinstance(value, float) and value.is_integer())

    return validator


def _unique_values(name: str, enabled: bool) -> Validator:
    def validator(data, others):
        value = data.get(name)
        if not enabled or value is None:
            return True
        return len(set(value)) == len(value)

    return validator


def _identity(value):
    return value


STANDARD_VALIDATORS: Dict[str, Callable[[str, Any], Validator]] = {
    "unique": _unique,
    "min": lambda name, bound: _bounded(name, bound, _identity, lambda v, b: v >= b),
    "max": lambda name, bound: _bounded(name, bound, _identity, lambda v, b: v <= b),
    "min_length": lambda name, bound: _bounded(name, bound, len, lambda v, b: v >= b),
    "max_length": lambda name, bound: _bounded(name, bound, len, lambda v, b: v <= b),
    "integer": _integer,
    "unique_values": _unique_values,
}


def _custom_validator(name: str, fn: Callable[[Any], bool]) -> Validator:
    def validator(data, others):
        return bool(fn(data.get(name)))

    return validator


# =============================================================================
# FIELD
# =============================================================================


class Field:
    """
    Поле модели.

    Хранит предикат типа, default и валидаторы. Сам по себе ничего не
    хранит о записях: проверка выполняется RecordHandler при create/update.
    """

    def __init__(
        self,
        name: str,
        type_check: TypeCheck,
        *,
        required: bool = False,
        default: Any = None,
        validators: Optional[Mapping[str, Any]] = None,
    ):
        """
        Args:
            name: Имя поля
            type_check: Предикат типа value → bool
            required: None недопустим
            default: Значение по умолчанию (копируется для каждой записи)
            validators: имя → опция стандартного валидатора или callable(value)

        Raises:
            CallbackTypeError: Если type_check или валидатор не callable
            FieldValidationError: Если default не проходит проверку типа
        """
        self.name = validate_name(name, "Field")
        if not callable(type_check):
            raise CallbackTypeError(f"Field {name} type is not a function.")
        self._type_check = type_check
        self.required = required

        if default is not None and not type_check(default):
            raise FieldValidationError(f"Default value for field {name} is not valid.")
        self._default = default

        self._validators: Dict[str, Validator] = {}
        # Данные остальных записей нужны только валидатору unique
        self._compares_records = False
        for validator_name, option in (validators or {}).items():
            if validator_name == "unique" and option:
                self._compares_records = True
            self._validators[f"{name}{camel_case(validator_name)}"] = self._build_validator(
                validator_name, option
            )

    def _build_validator(self, validator_name: str, option: Any) -> Validator:
        if validator_name in STANDARD_VALIDATORS:
            return STANDARD_VALIDATORS[validator_name](self.name, option)
        if callable(option):
            return _custom_validator(self.name, option)
        raise CallbackTypeError(
            f"Validator {validator_name} for field {self.name} is not a function."
        )

    @property
    def default(self) -> Any:
        return copy.deepcopy(self._default)

    @property
    def validators(self) -> Mapping[str, Validator]:
        return MappingProxyType(self._validators)

    @property
    def compares_records(self) -> bool:
        return self._compares_records

    def type_check(self, value: Any) -> bool:
        if value is None:
            return not self.required
        return bool(self._type_check(value))

    def validate(self, data: Mapping[str, Any], others: Iterable[Mapping[str, Any]] = ()) -> None:
        """
        Полная проверка значения поля в данных записи.

        Raises:
            FieldValidationError: При нарушении типа или любого валидатора
        """
        value = data.get(self.name)
        if not self.type_check(value):
            raise FieldValidationError(f"{self.name} has invalid value {value!r}.")
        others = list(others)
        for validator_name, validator in self._validators.items():
            if not validator(data, others):
                raise FieldValidationError(
                    f"{self.name} failed validation {validator_name} with value {value!r}."
                )

    def __repr__(self) -> str:
        return f"Field({self.name!r})"

    # -------------------------------------------------------------------------
    # Стандартные типы
    # -------------------------------------------------------------------------

    @classmethod
    def standard(cls, type_name: str, name: str, **options: Any) -> "Field":
        if type_name == "enum":
            return cls.enum(name, **options)
        if type_name not in STANDARD_TYPES:
            raise CallbackTypeError(f"Field type {type_name} is not a valid type.")
        return cls(name, STANDARD_TYPES[type_name], **options)

    @classmethod
    def boolean(cls, name: str, **options: Any) -> "Field":
        return cls.standard("boolean", name, **options)

    @classmethod
    def number(cls, name: str, **options: Any) -> "Field":
        return cls.standard("number", name, **options)

    @classmethod
    def string(cls, name: str, **options: Any) -> "Field":
        return cls.standard("string", name, **options)

    @classmethod
    def date(cls, name: str, **options: Any) -> "Field":
        return cls.standard("date", name, **options)

    @classmethod
    def object(cls, name: str, **options: Any) -> "Field":
        return cls.standard("object", name, **options)

    @classmethod
    def boolean_array(cls, name: str, **options: Any) -> "Field":
        return cls.standard("boolean_array", name, **options)

    @classmethod
    def number_array(cls, name: str, **options: Any) -> "Field":
        return cls.standard("number_array", name, **options)

    @classmethod
    def string_array(cls, name: str, **options: Any) -> "Field":
        return cls.standard("string_array", name, **options)

    @classmethod
    def date_array(cls, name: str, **options: Any) -> "Field":
        return cls.standard("date_array", name, **options)

    @classmethod
    def enum(cls, name: str, *, values: Iterable[Any], **options: Any) -> "Field":
        allowed = tuple(values)
        return cls(name, lambda value: value in allowed, **options)
