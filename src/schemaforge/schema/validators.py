"""JSON Schema compilation and validation behind a swappable backend."""

import logging
from abc import ABC, abstractmethod
from typing import Any

from jsonschema import Draft7Validator, FormatChecker, validators
from jsonschema.exceptions import SchemaError
from pydantic import BaseModel, Field

from schemaforge.exceptions import SchemaInvalid

logger = logging.getLogger(__name__)


class ValidationIssue(BaseModel):
    """A single schema violation.

    Attributes:
        path: JSON Pointer to the offending value ("" for the document root)
        message: Human-readable description of the violation
    """

    path: str = Field(default="", description="JSON Pointer to the offending value")
    message: str = Field(description="Description of the violation")

    def __str__(self) -> str:
        return f"{self.path or 'root'}: {self.message}"


class ValidationOutcome(BaseModel):
    """Result of validating a value against a compiled schema."""

    valid: bool
    errors: list[ValidationIssue] = Field(default_factory=list)


def to_json_pointer(path: Any) -> str:
    """Render a jsonschema error path as an RFC 6901 JSON Pointer."""
    parts = []
    for part in path:
        token = str(part).replace("~", "~0").replace("/", "~1")
        parts.append(token)
    return "".join(f"/{token}" for token in parts)


class SchemaValidationBackend(ABC):
    """Compiles JSON Schema documents and validates data against them."""

    @abstractmethod
    def compile(self, schema: Any) -> Any:
        """Compile a schema into a reusable validator.

        Raises:
            SchemaInvalid: If the schema is malformed
        """
        pass

    @abstractmethod
    def validate(self, compiled: Any, data: Any) -> ValidationOutcome:
        """Validate data with a compiled validator, collecting every violation."""
        pass

    def check(self, schema: Any) -> None:
        """Raise ``SchemaInvalid`` if ``schema`` does not compile."""
        self.compile(schema)


class JSONSchemaBackend(SchemaValidationBackend):
    """Backend built on the ``jsonschema`` library.

    The validator class follows the schema's ``$schema`` keyword and falls back
    to Draft 7. Undeclared properties are allowed unless the schema itself
    restricts them, and ``format`` keywords are checked.
    """

    def __init__(self, default_validator: type[Any] = Draft7Validator) -> None:
        self.default_validator = default_validator
        self.format_checker = FormatChecker()

    def compile(self, schema: Any) -> Any:
        if not isinstance(schema, (dict, bool)):
            raise SchemaInvalid(
                f"Invalid JSON Schema: expected an object or boolean, got {type(schema).__name__}",
                schema=schema,
            )

        try:
            validator_class = validators.validator_for(
                schema, default=self.default_validator
            )
            validator_class.check_schema(schema)
        except SchemaError as e:
            raise SchemaInvalid(f"Invalid JSON Schema: {e.message}", schema=schema) from e

        return validator_class(schema, format_checker=self.format_checker)

    def validate(self, compiled: Any, data: Any) -> ValidationOutcome:
        issues = [
            ValidationIssue(path=to_json_pointer(error.absolute_path), message=error.message)
            for error in compiled.iter_errors(data)
        ]
        issues.sort(key=lambda issue: (issue.path, issue.message))

        if issues:
            logger.debug("Validation produced %d issue(s)", len(issues))

        return ValidationOutcome(valid=not issues, errors=issues)


def validate_structured_data(
    data: Any, schema: Any, backend: SchemaValidationBackend | None = None
) -> ValidationOutcome:
    """Compile ``schema`` and validate ``data`` against it in one step.

    Args:
        data: Parsed JSON value to check
        schema: JSON Schema document
        backend: Validation backend (defaults to ``JSONSchemaBackend``)

    Returns:
        Validation outcome with every violation

    Raises:
        SchemaInvalid: If the schema does not compile
    """
    backend = backend or JSONSchemaBackend()
    return backend.validate(backend.compile(schema), data)
