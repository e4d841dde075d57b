"""
Tests for Schema и JSON Schema контракта schema_definition

Покрытие:
- SchemaLoader: загрузка, кэш, ошибки
- Валидация декларативного определения (required/enum/pattern/additional)
- Schema.create: модели, связи, конфигурация
- Реестр моделей: add_model/get_model/add_relationship
"""

import logging
from pathlib import Path

import pytest
from jsonschema import ValidationError

from recordstore import DuplicationError, Model, Schema, StoreConfig
from recordstore.core.contracts import (
    SchemaDefinitionValidator,
    SchemaLoader,
    validate_schema_definition,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def valid_definition():
    """Валидное декларативное определение схемы."""
    return {
        "name": "library",
        "config": {"experimental_api_messages": "off"},
        "models": [
            {
                "name": "Author",
                "key": {"name": "id", "type": "number"},
                "fields": {"name": "string"},
            },
            {
                "name": "Book",
                "key": {"type": "auto"},
                "fields": {"title": {"type": "string", "required": True}, "pages": "number"},
                "properties": {"long": lambda book: (book.pages or 0) > 300},
                "scopes": {"thick": lambda book: (book.pages or 0) > 300},
            },
            {"name": "Reader", "key": "email"},
        ],
        "relationships": [
            {"from": "Book", "to": {"Author": "books"}, "type": "manyToOne"},
            {"from": {"Reader": "favorites"}, "to": "Book", "type": "manyToMany"},
        ],
    }


# =============================================================================
# TESTS - SCHEMA LOADING
# =============================================================================


def test_schema_loader_loads_schema_definition():
    """Загрузка контракта schema_definition."""
    loader = SchemaLoader()
    schema = loader.load_schema("schema_definition")
    assert schema["required"] == ["models"]


def test_schema_loader_caches_schemas():
    """Проверка кэширования схем."""
    loader = SchemaLoader()
    assert loader.load_schema("schema_definition") is loader.load_schema("schema_definition")


def test_schema_loader_raises_on_missing_schema():
    loader = SchemaLoader()
    with pytest.raises(FileNotFoundError):
        loader.load_schema("non_existent_schema")


def test_schema_loader_raises_on_missing_directory(tmp_path):
    with pytest.raises(RuntimeError):
        SchemaLoader(tmp_path / "missing")


def test_schema_loader_rejects_invalid_schema(tmp_path):
    """Meta-validation самой JSON Schema."""
    (tmp_path / "broken.json").write_text('{"type": 42}', encoding="utf-8")
    loader = SchemaLoader(Path(tmp_path))
    with pytest.raises(ValueError):
        loader.load_schema("broken")


# =============================================================================
# TESTS - DEFINITION VALIDATION
# =============================================================================


def test_validator_accepts_valid_definition(valid_definition):
    validator = SchemaDefinitionValidator()
    validator.validate(valid_definition)  # Не должно выбросить исключение
    assert validator.is_valid(valid_definition)
    assert list(validator.iter_errors(valid_definition)) == []


def test_rejects_missing_models():
    with pytest.raises(ValidationError) as exc_info:
        validate_schema_definition({"name": "empty"})
    assert "'models' is a required property" in str(exc_info.value)


def test_rejects_unknown_top_level_key(valid_definition):
    data = dict(valid_definition, tables=[])
    with pytest.raises(ValidationError):
        validate_schema_definition(data)


def test_rejects_invalid_relationship_type(valid_definition):
    data = dict(valid_definition)
    data["relationships"] = [{"from": "Book", "to": "Author", "type": "oneToFew"}]
    with pytest.raises(ValidationError):
        validate_schema_definition(data)


def test_rejects_invalid_model_name(valid_definition):
    data = dict(valid_definition)
    data["models"] = [{"name": "bad name"}]
    with pytest.raises(ValidationError):
        validate_schema_definition(data)


def test_rejects_invalid_key_type():
    with pytest.raises(ValidationError):
        validate_schema_definition({"models": [{"name": "A", "key": {"type": "uuid"}}]})


def test_rejects_multi_entry_reference():
    data = {
        "models": [{"name": "A"}, {"name": "B"}],
        "relationships": [{"from": {"A": "x", "B": "y"}, "to": "B", "type": "oneToOne"}],
    }
    with pytest.raises(ValidationError):
        validate_schema_definition(data)


def test_rejects_unknown_config_option():
    with pytest.raises(ValidationError):
        validate_schema_definition({"config": {"verbose": True}, "models": []})


# =============================================================================
# TESTS - SCHEMA.CREATE
# =============================================================================


class TestSchemaCreate:
    """Построение схемы из определения."""

    def test_builds_models_and_relationships(self, valid_definition):
        schema = Schema.create(valid_definition)

        assert schema.name == "library"
        assert list(schema.models) == ["Author", "Book", "Reader"]
        assert len(schema.relationships) == 2

        author = schema.get_model("Author")
        book = schema.get_model("Book")
        reader = schema.get_model("Reader")

        author.create_record({"id": 1, "name": "Ann"})
        first = book.create_record({"title": "Short", "pages": 100, "author": 1})
        second = book.create_record({"title": "Long", "pages": 900, "author": 1})
        fan = reader.create_record({"email": "r@x", "favorites": [second.id]})

        assert first.id == 1
        assert second.long
        assert author.records[1].books.ids == [1, 2]
        assert first.author is author.records[1]
        assert book.records.thick.ids == [2]
        assert fan.favorites.first is second
        assert second.reader_set.ids == ["r@x"]

    def test_config_is_shared(self, valid_definition):
        valid_definition["config"] = {"strict_fields": True, "experimental_api_messages": "off"}
        schema = Schema.create(valid_definition)
        assert schema.config.strict_fields
        assert all(model.config is schema.config for model in schema.models.values())

    def test_invalid_definition_builds_nothing(self):
        with pytest.raises(ValidationError):
            Schema.create({"models": [{"name": "A", "colour": "red"}]})

    def test_default_name(self):
        schema = Schema.create({"models": []})
        assert schema.name == "default"
        assert schema.config == StoreConfig()


# =============================================================================
# TESTS - REGISTRY
# =============================================================================


class TestSchemaRegistry:
    """add_model / get_model / add_relationship."""

    def test_add_and_get_model(self):
        schema = Schema("shop", config=StoreConfig(experimental_api_messages="off"))
        product = schema.add_model("Product", fields={"price": "number"})
        assert isinstance(product, Model)
        assert schema.get_model("Product") is product
        assert product.config is schema.config

    def test_duplicate_model(self):
        schema = Schema()
        schema.add_model("Product")
        with pytest.raises(DuplicationError):
            schema.add_model("Product")

    def test_missing_model(self):
        with pytest.raises(KeyError):
            Schema().get_model("Missing")

    def test_models_mapping_is_read_only(self):
        schema = Schema()
        with pytest.raises(TypeError):
            schema.models["Product"] = Model("Product")

    def test_add_relationship_by_name(self, caplog):
        schema = Schema()
        schema.add_model("Order", key={"name": "id", "type": "number"})
        schema.add_model("Line", key={"name": "id", "type": "number"})
        with caplog.at_level(logging.WARNING):
            relationship = schema.add_relationship("Line", "Order", "manyToOne")
        assert "experimental" in caplog.text
        assert schema.relationships == (relationship,)

        schema.get_model("Order").create_record({"id": 1})
        schema.get_model("Line").create_record({"id": 10, "order": 1})
        assert schema.get_model("Order").records[1].line_set.ids == [10]
