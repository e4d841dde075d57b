"""
StoreConfig — конфигурация record store

Immutable Pydantic модель, общая для Schema → Model → Relationship.
"""

import logging
from enum import Enum

from pydantic import BaseModel, Field

from .errors import ExperimentalAPIError

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class ExperimentalMessages(str, Enum):
    """Реакция на использование experimental API"""

    WARN = "warn"
    ERROR = "error"
    OFF = "off"


# =============================================================================
# CONFIG MODEL
# =============================================================================


class StoreConfig(BaseModel):
    """
    Конфигурация record store.

    Immutable модель (frozen=True): конфигурация задаётся один раз при
    создании Schema/Model и далее не меняется.
    """

    experimental_api_messages: ExperimentalMessages = Field(
        default=ExperimentalMessages.WARN,
        description="Что делать при использовании experimental API (warn/error/off)",
    )
    strict_fields: bool = Field(
        default=False,
        description="Неизвестные поля в данных записи: ошибка вместо предупреждения",
    )

    model_config = {"frozen": True, "extra": "forbid"}

    def handle_experimental_api_message(self, message: str) -> None:
        """
        Обработка сообщения об experimental API согласно конфигурации.

        Args:
            message: Текст сообщения

        Raises:
            ExperimentalAPIError: Если experimental_api_messages == 'error'
        """
        if self.experimental_api_messages == ExperimentalMessages.ERROR:
            raise ExperimentalAPIError(message)
        if self.experimental_api_messages == ExperimentalMessages.WARN:
            logger.warning(message)


DEFAULT_CONFIG = StoreConfig()
