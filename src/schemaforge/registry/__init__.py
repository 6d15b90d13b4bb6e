"""Versioned registry of schema resources."""

from .manager import SchemaResourceManager
from .models import (
    SchemaResource,
    SchemaResourceUpdate,
    VersionComparison,
    VersionRecord,
    Visibility,
)
from .repository import InMemorySchemaRepository, SchemaRepository
from .sqlite_repository import SQLiteSchemaRepository

__all__ = [
    "SchemaResourceManager",
    "SchemaResource",
    "SchemaResourceUpdate",
    "VersionComparison",
    "VersionRecord",
    "Visibility",
    "SchemaRepository",
    "InMemorySchemaRepository",
    "SQLiteSchemaRepository",
]
