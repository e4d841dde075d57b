"""
Names — правила именования моделей, полей, scopes и связей.
"""

import keyword
import re
from typing import Final

from ..errors import NamingError

# Имя должно быть валидным Python identifier (доступ через атрибут записи)
NAME_PATTERN: Final[str] = r"^[A-Za-z][A-Za-z0-9_]*$"
_NAME_RE = re.compile(NAME_PATTERN)

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def validate_name(name: str, kind: str = "Name") -> str:
    """
    Проверка имени.

    Args:
        name: Проверяемое имя
        kind: Тип объекта для сообщения об ошибке ('Field', 'Scope', ...)

    Returns:
        name без изменений

    Raises:
        NamingError: Если имя не строка, не identifier или ключевое слово Python
    """
    if not isinstance(name, str) or not _NAME_RE.match(name):
        raise NamingError(f"{kind} name {name!r} is not a valid identifier.")
    if keyword.iskeyword(name):
        raise NamingError(f"{kind} name {name!r} is a reserved Python keyword.")
    return name


def snake_case(name: str) -> str:
    """'BlogPost' → 'blog_post'"""
    return _CAMEL_BOUNDARY_RE.sub("_", name).lower()


def camel_case(name: str) -> str:
    """'min_length' → 'MinLength'"""
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)
