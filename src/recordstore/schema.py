"""
Schema — реестр моделей и связей

Schema.create() строит модели и связи из декларативного определения,
предварительно проверенного JSON Schema контрактом schema_definition.json.
"""

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from recordstore.core.config import DEFAULT_CONFIG, StoreConfig
from recordstore.core.contracts import validate_schema_definition
from recordstore.core.domain.cardinality import Cardinality
from recordstore.core.domain.names import validate_name
from recordstore.core.errors import DuplicationError
from recordstore.model import Model
from recordstore.relationship import Relationship, wire_relationship
from recordstore.relationship.relationship import ModelReference

logger = logging.getLogger(__name__)


class Schema:
    """
    Реестр моделей одного приложения.

    Example:
        >>> schema = Schema.create({
        ...     "models": [{"name": "Person", "key": {"name": "id", "type": "number"}}],
        ...     "relationships": [
        ...         {"from": {"Person": "friends"}, "to": {"Person": "friended"}, "type": "manyToMany"},
        ...     ],
        ... })
        >>> schema.get_model("Person").fields["friends"].name
        'friends'
    """

    def __init__(self, name: str = "default", *, config: Optional[StoreConfig] = None):
        self.name = validate_name(name, "Schema")
        self.config = config or DEFAULT_CONFIG
        self._models: Dict[str, Model] = {}
        self._relationships: List[Relationship] = []

    def __repr__(self) -> str:
        return f"Schema({self.name!r}, models={list(self._models)})"

    @classmethod
    def create(cls, definition: Mapping[str, Any]) -> "Schema":
        """
        Построение схемы из декларативного определения.

        Args:
            definition: {name?, config?, models: [...], relationships: [...]}

        Raises:
            jsonschema.ValidationError: Определение не соответствует контракту
            RecordStoreError: Ошибка построения моделей или связей
        """
        validate_schema_definition(definition)
        schema = cls(
            definition.get("name", "default"),
            config=StoreConfig(**definition.get("config", {})),
        )
        for model_definition in definition["models"]:
            schema.add_model(**model_definition)
        for relationship in definition.get("relationships", []):
            schema.add_relationship(relationship["from"], relationship["to"], relationship["type"])
        logger.debug(
            "Created schema %s with %d models and %d relationships",
            schema.name,
            len(schema._models),
            len(schema._relationships),
        )
        return schema

    def add_model(self, name: str, **options: Any) -> Model:
        """
        Регистрация модели.

        Args:
            name: Имя модели
            **options: key, fields, properties, methods, scopes

        Raises:
            DuplicationError: Модель с таким именем уже есть
        """
        if name in self._models:
            raise DuplicationError(f"A model named {name} already exists in schema {self.name}.")
        options.setdefault("config", self.config)
        model = Model(name, **options)
        self._models[name] = model
        logger.debug("Registered model %s in schema %s", name, self.name)
        return model

    def get_model(self, name: str) -> Model:
        try:
            return self._models[name]
        except KeyError:
            raise KeyError(f"Model {name} does not exist in schema {self.name}.") from None

    def add_relationship(
        self,
        from_: ModelReference,
        to: ModelReference,
        type: Union[Cardinality, str],
    ) -> Relationship:
        """
        Создание и регистрация связи между моделями схемы.

        Raises:
            ConfigurationError: Невалидная связь
            NamingError: Имя стороны связи занято в модели
        """
        relationship = Relationship(from_, to, type, models=self._models, config=self.config)
        wire_relationship(relationship)
        self._relationships.append(relationship)
        return relationship

    @property
    def models(self) -> Mapping[str, Model]:
        return MappingProxyType(self._models)

    @property
    def relationships(self) -> Tuple[Relationship, ...]:
        return tuple(self._relationships)
