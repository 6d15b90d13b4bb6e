"""Utility functions for environment-based configuration."""

from .config import (
    EngineSettings,
    create_completion_provider,
    create_orchestrator,
    create_schema_manager,
    get_available_providers,
    get_settings,
    load_environment,
)

__all__ = [
    "EngineSettings",
    "load_environment",
    "get_settings",
    "create_completion_provider",
    "create_schema_manager",
    "create_orchestrator",
    "get_available_providers",
]
