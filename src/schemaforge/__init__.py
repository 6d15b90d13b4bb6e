"""SchemaForge - Versioned JSON Schema registry and structured LLM completions."""

__version__ = "0.1.0"

# Structured completion
from .completion import (
    ChatMessage,
    CompletionProvider,
    LiteLLMCompletionProvider,
    StructuredCompletionOrchestrator,
    StructuredCompletionRequest,
    StructuredCompletionResult,
)

# Custom exceptions
from .exceptions import (
    ConcurrentUpdateError,
    ConfigurationException,
    ParseError,
    ProviderError,
    ResourceNotFound,
    SchemaForgeException,
    SchemaInvalid,
    ValidationFailed,
    VersionNotFound,
)

# Schema resource registry
from .registry import (
    InMemorySchemaRepository,
    SchemaResource,
    SchemaResourceManager,
    SchemaResourceUpdate,
    SQLiteSchemaRepository,
    VersionRecord,
    Visibility,
)

# Schema validation
from .schema import EXAMPLE_SCHEMAS, JSONSchemaBackend, ValidationIssue, extract_json

# Usage tracking
from .tracking import UsageMetrics

# Configuration utilities
from .utils import (
    EngineSettings,
    create_completion_provider,
    create_orchestrator,
    create_schema_manager,
    get_available_providers,
    get_settings,
    load_environment,
)

__all__ = [
    "__version__",
    "ChatMessage",
    "CompletionProvider",
    "LiteLLMCompletionProvider",
    "StructuredCompletionOrchestrator",
    "StructuredCompletionRequest",
    "StructuredCompletionResult",
    "InMemorySchemaRepository",
    "SQLiteSchemaRepository",
    "SchemaResource",
    "SchemaResourceManager",
    "SchemaResourceUpdate",
    "VersionRecord",
    "Visibility",
    "EXAMPLE_SCHEMAS",
    "JSONSchemaBackend",
    "ValidationIssue",
    "extract_json",
    "UsageMetrics",
    "EngineSettings",
    "load_environment",
    "get_settings",
    "create_completion_provider",
    "create_schema_manager",
    "create_orchestrator",
    "get_available_providers",
    # Exceptions
    "SchemaForgeException",
    "SchemaInvalid",
    "ResourceNotFound",
    "VersionNotFound",
    "ConcurrentUpdateError",
    "ParseError",
    "ValidationFailed",
    "ProviderError",
    "ConfigurationException",
]
