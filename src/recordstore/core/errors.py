"""
Errors — таксономия ошибок record store

Все ошибки синхронные и пробрасываются непосредственному вызывающему.
Ни одна операция не применяется частично: вызов либо полностью успешен,
либо не имеет эффекта.

Категории:
- Usage errors — прямая мутация RecordSet, не-callable matcher/comparator,
  коллизии имён
- Duplication errors — пересечение ключей при merge, повторная регистрация имени
- Configuration errors — невалидная кардинальность, неоднозначная
  симметричная self-связь
"""


class RecordStoreError(Exception):
    """Базовый класс всех ошибок record store."""


# =============================================================================
# USAGE ERRORS
# =============================================================================


class UsageError(RecordStoreError):
    """Некорректное использование API (например, прямая мутация RecordSet)."""


class CallbackTypeError(UsageError, TypeError):
    """Передан не-callable объект там, где ожидается функция."""


class NamingError(UsageError):
    """Имя уже занято полем, встроенным членом или другим объектом модели."""


# =============================================================================
# DUPLICATION ERRORS
# =============================================================================


class DuplicationError(RecordStoreError):
    """
    Повторяющийся ключ или имя.

    Отделена от UsageError, чтобы вызывающий мог перехватить её отдельно
    (например, откатиться с merge() на append()).
    """


# =============================================================================
# CONFIGURATION / VALIDATION ERRORS
# =============================================================================


class ConfigurationError(RecordStoreError, ValueError):
    """Невалидная конфигурация связи. Возникает только при конструировании."""


class FieldValidationError(RecordStoreError, ValueError):
    """Значение поля не прошло проверку типа или валидатор."""


class RecordNotFoundError(RecordStoreError, KeyError):
    """Запись с указанным ключом отсутствует в модели."""


class ExperimentalAPIError(RecordStoreError):
    """Использование experimental API при experimental_api_messages='error'."""
