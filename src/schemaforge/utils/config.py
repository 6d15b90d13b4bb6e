"""Configuration utilities for environment-based setup."""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from schemaforge.completion.orchestrator import StructuredCompletionOrchestrator
from schemaforge.completion.provider import (
    DEFAULT_MODEL,
    CompletionProvider,
    LiteLLMCompletionProvider,
)
from schemaforge.completion.retry import MAX_RETRIES_LIMIT
from schemaforge.exceptions import ConfigurationException
from schemaforge.registry.manager import SchemaResourceManager
from schemaforge.registry.repository import InMemorySchemaRepository, SchemaRepository
from schemaforge.registry.sqlite_repository import SQLiteSchemaRepository

ENV_DEFAULT_MODEL = "SCHEMAFORGE_DEFAULT_MODEL"
ENV_DATABASE_PATH = "SCHEMAFORGE_DATABASE_PATH"
ENV_REQUEST_TIMEOUT = "SCHEMAFORGE_REQUEST_TIMEOUT"
ENV_DEFAULT_MAX_RETRIES = "SCHEMAFORGE_DEFAULT_MAX_RETRIES"

_SETTINGS_ENV = {
    "default_model": ENV_DEFAULT_MODEL,
    "database_path": ENV_DATABASE_PATH,
    "request_timeout": ENV_REQUEST_TIMEOUT,
    "default_max_retries": ENV_DEFAULT_MAX_RETRIES,
}


class EngineSettings(BaseModel):
    """Engine-wide defaults read from the environment.

    Attributes:
        default_model: Model used when a request names none
        database_path: SQLite file for the resource store; None keeps it in memory
        request_timeout: Per-attempt provider deadline in seconds
        default_max_retries: Retry budget for requests built from these settings
    """

    default_model: str = DEFAULT_MODEL
    database_path: str | None = None
    request_timeout: float | None = Field(default=None, gt=0)
    default_max_retries: int = Field(default=3, ge=0, le=MAX_RETRIES_LIMIT)


def load_environment() -> None:
    """Load environment variables from .env file if it exists."""
    load_dotenv()


def get_settings() -> EngineSettings:
    """Build settings from ``SCHEMAFORGE_*`` environment variables.

    Returns:
        The resolved settings

    Raises:
        ConfigurationException: If a variable holds an unusable value
    """
    load_environment()

    values: dict[str, str] = {}
    for key, env_name in _SETTINGS_ENV.items():
        raw = os.getenv(env_name)
        if raw is not None and raw.strip():
            values[key] = raw.strip()

    try:
        return EngineSettings(**values)
    except ValidationError as e:
        error = e.errors()[0]
        field_name = str(error["loc"][0]) if error["loc"] else ""
        env_name = _SETTINGS_ENV.get(field_name, field_name)
        raise ConfigurationException(
            f"Invalid value for {env_name}: {error['msg']}",
            config_key=env_name,
            config_value=values.get(field_name),
        ) from e


def create_completion_provider(
    api_key: str | None = None,
    timeout: float | None = None,
) -> LiteLLMCompletionProvider:
    """Create a LiteLLM completion provider with environment-based configuration.

    Args:
        api_key: API key (if None, LiteLLM reads the provider's usual env var)
        timeout: Per-call deadline in seconds (if None, uses SCHEMAFORGE_REQUEST_TIMEOUT)

    Returns:
        Configured LiteLLMCompletionProvider
    """
    settings = get_settings()
    return LiteLLMCompletionProvider(
        api_key=api_key,
        timeout=timeout if timeout is not None else settings.request_timeout,
    )


def create_schema_manager(database_path: str | None = None) -> SchemaResourceManager:
    """Create a schema resource manager.

    Args:
        database_path: SQLite file to use (if None, uses SCHEMAFORGE_DATABASE_PATH;
            if that is unset too, resources live in memory)

    Returns:
        Configured SchemaResourceManager
    """
    if database_path is None:
        database_path = get_settings().database_path

    repository: SchemaRepository
    if database_path:
        repository = SQLiteSchemaRepository(database_path)
    else:
        repository = InMemorySchemaRepository()

    return SchemaResourceManager(repository)


def create_orchestrator(
    manager: SchemaResourceManager | None = None,
    provider: CompletionProvider | None = None,
) -> StructuredCompletionOrchestrator:
    """Create a structured completion orchestrator.

    Args:
        manager: Resource manager for ``schema_id`` lookups (built from env if None)
        provider: Completion provider (built from env if None)

    Returns:
        Configured StructuredCompletionOrchestrator
    """
    settings = get_settings()

    return StructuredCompletionOrchestrator(
        provider=provider or create_completion_provider(),
        manager=manager or create_schema_manager(),
        default_model=settings.default_model,
        default_timeout=settings.request_timeout,
        default_max_retries=settings.default_max_retries,
    )


def get_available_providers() -> dict[str, bool]:
    """Check which providers have API keys available.

    Returns:
        Dictionary mapping provider names to availability status
    """
    load_environment()

    return {
        "openai": os.getenv("OPENAI_API_KEY") is not None,
        "anthropic": os.getenv("ANTHROPIC_API_KEY") is not None,
        "openrouter": os.getenv("OPENROUTER_API_KEY") is not None,
    }
