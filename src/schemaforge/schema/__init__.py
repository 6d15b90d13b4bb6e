"""JSON Schema handling for structured LLM responses.

This module provides:
- Pluggable JSON Schema compilation and validation (all violations collected)
- JSON payload extraction from raw model output
- Response-format hints for models with a native JSON mode
- Schema document loading from files and URLs
- A catalog of example schemas
"""

from .adapters import DEFAULT_JSON_MODE_PREFIXES, JsonModeRegistry, ResponseFormatMode
from .examples import EXAMPLE_SCHEMAS
from .extractor import ExtractionResult, extract_json
from .loader import SchemaLoader
from .validators import (
    JSONSchemaBackend,
    SchemaValidationBackend,
    ValidationIssue,
    ValidationOutcome,
    validate_structured_data,
)

__all__ = [
    # Adapters
    "DEFAULT_JSON_MODE_PREFIXES",
    "JsonModeRegistry",
    "ResponseFormatMode",
    # Extraction
    "ExtractionResult",
    "extract_json",
    # Loading
    "EXAMPLE_SCHEMAS",
    "SchemaLoader",
    # Validation
    "JSONSchemaBackend",
    "SchemaValidationBackend",
    "ValidationIssue",
    "ValidationOutcome",
    "validate_structured_data",
]
