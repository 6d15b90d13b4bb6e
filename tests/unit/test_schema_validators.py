"""Unit tests for JSON Schema compilation and validation."""

from typing import Any

import pytest
from jsonschema import Draft202012Validator

from schemaforge.exceptions import SchemaInvalid
from schemaforge.schema.validators import (
    JSONSchemaBackend,
    ValidationIssue,
    to_json_pointer,
    validate_structured_data,
)


@pytest.mark.unit
class TestJSONSchemaBackend:
    """Test cases for the jsonschema-backed validation backend."""

    def test_compile_valid_schema(self, sentiment_schema: dict[str, Any]) -> None:
        """Test that a well-formed schema compiles to a reusable validator."""
        backend = JSONSchemaBackend()

        compiled = backend.compile(sentiment_schema)

        assert backend.validate(compiled, {"sentiment": "positive"}).valid is True
        assert backend.validate(compiled, {"sentiment": "meh"}).valid is False

    def test_compile_rejects_malformed_schema(self) -> None:
        """Test that a schema with an invalid keyword value raises SchemaInvalid."""
        backend = JSONSchemaBackend()
        schema = {"type": "object", "properties": {"age": {"type": "integer", "minimum": "x"}}}

        with pytest.raises(SchemaInvalid) as exc_info:
            backend.compile(schema)

        assert exc_info.value.schema == schema
        assert "Invalid JSON Schema" in str(exc_info.value)

    @pytest.mark.parametrize("schema", ["not a schema", 42, ["type", "object"], None])
    def test_compile_rejects_non_object_documents(self, schema: Any) -> None:
        """Test that schema documents must be objects or booleans."""
        with pytest.raises(SchemaInvalid):
            JSONSchemaBackend().compile(schema)

    def test_boolean_schemas(self) -> None:
        """Test that true accepts everything and false rejects everything."""
        backend = JSONSchemaBackend()

        assert backend.validate(backend.compile(True), {"anything": 1}).valid is True
        assert backend.validate(backend.compile(False), {}).valid is False

    def test_collects_every_violation(self) -> None:
        """Test that all violations are reported, not just the first."""
        backend = JSONSchemaBackend()
        schema = {
            "type": "object",
            "properties": {
                "name": {"type": "string"},
                "age": {"type": "integer", "minimum": 0},
            },
            "required": ["name", "email"],
        }

        outcome = backend.validate(backend.compile(schema), {"name": 5, "age": -1})

        assert outcome.valid is False
        assert len(outcome.errors) == 3
        paths = {issue.path for issue in outcome.errors}
        assert paths == {"", "/name", "/age"}

    def test_errors_are_deterministically_ordered(self) -> None:
        """Test that issues are sorted by path then message."""
        backend = JSONSchemaBackend()
        schema = {
            "type": "object",
            "properties": {"b": {"type": "string"}, "a": {"type": "string"}},
        }

        outcome = backend.validate(backend.compile(schema), {"b": 1, "a": 2})

        assert [issue.path for issue in outcome.errors] == ["/a", "/b"]

    def test_nested_paths_use_json_pointer(self) -> None:
        """Test that nested error locations render as JSON Pointers."""
        backend = JSONSchemaBackend()
        schema = {
            "type": "object",
            "properties": {
                "items": {
                    "type": "array",
                    "items": {
                        "type": "object",
                        "properties": {"price": {"type": "number"}},
                    },
                }
            },
        }

        outcome = backend.validate(
            backend.compile(schema), {"items": [{"price": 1}, {"price": "free"}]}
        )

        assert outcome.errors[0].path == "/items/1/price"

    def test_additional_properties_allowed_by_default(
        self, sentiment_schema: dict[str, Any]
    ) -> None:
        """Test that undeclared properties pass unless the schema forbids them."""
        backend = JSONSchemaBackend()

        outcome = backend.validate(
            backend.compile(sentiment_schema), {"sentiment": "neutral", "extra": True}
        )

        assert outcome.valid is True

    def test_additional_properties_false_is_enforced(self) -> None:
        """Test that additionalProperties: false rejects undeclared properties."""
        backend = JSONSchemaBackend()
        schema = {
            "type": "object",
            "properties": {"x": {"type": "integer"}},
            "additionalProperties": False,
        }

        outcome = backend.validate(backend.compile(schema), {"x": 1, "y": 2})

        assert outcome.valid is False
        assert "'y'" in outcome.errors[0].message

    def test_format_keyword_is_checked(self) -> None:
        """Test that format assertions such as email are applied."""
        backend = JSONSchemaBackend()
        schema = {"type": "object", "properties": {"email": {"type": "string", "format": "email"}}}

        outcome = backend.validate(backend.compile(schema), {"email": "not-an-email"})

        assert outcome.valid is False

    def test_dollar_schema_selects_draft(self) -> None:
        """Test that $schema picks the matching validator class."""
        backend = JSONSchemaBackend()
        schema = {
            "$schema": "https://json-schema.org/draft/2020-12/schema",
            "type": "array",
            "prefixItems": [{"type": "integer"}],
        }

        compiled = backend.compile(schema)

        assert isinstance(compiled, Draft202012Validator)
        assert backend.validate(compiled, ["x"]).valid is False

    def test_check_delegates_to_compile(self) -> None:
        """Test that check raises for invalid schemas and passes valid ones."""
        backend = JSONSchemaBackend()

        backend.check({"type": "string"})
        with pytest.raises(SchemaInvalid):
            backend.check({"type": "no-such-type"})


@pytest.mark.unit
class TestValidationHelpers:
    """Test cases for module-level validation helpers."""

    def test_validate_structured_data(self, sentiment_schema: dict[str, Any]) -> None:
        """Test the compile-and-validate convenience function."""
        outcome = validate_structured_data({"confidence": 2}, sentiment_schema)

        assert outcome.valid is False
        assert {issue.path for issue in outcome.errors} == {"", "/confidence"}

    def test_json_pointer_escaping(self) -> None:
        """Test RFC 6901 escaping of '~' and '/'."""
        assert to_json_pointer([]) == ""
        assert to_json_pointer(["a/b", "c~d", 0]) == "/a~1b/c~0d/0"

    def test_issue_string_form(self) -> None:
        """Test that issues render with 'root' for the document root."""
        assert str(ValidationIssue(path="", message="bad")) == "root: bad"
        assert str(ValidationIssue(path="/name", message="bad")) == "/name: bad"
