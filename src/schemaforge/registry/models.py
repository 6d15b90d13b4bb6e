"""Data model for versioned schema resources."""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

UPDATABLE_FIELDS: tuple[str, ...] = (
    "name",
    "description",
    "json_schema",
    "example_output",
    "visibility",
)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid4())


def _normalize_numbers(value: Any) -> Any:
    # JSON has a single number type; bools are left alone
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, dict):
        return {key: _normalize_numbers(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_normalize_numbers(item) for item in value]
    return value


def canonical_json(value: Any) -> str:
    """Serialize a value so that deep-equal values produce identical strings.

    Key order is ignored and integral floats compare equal to integers,
    so ``{"maximum": 1.0}`` and ``{"maximum": 1}`` serialize identically.
    """
    if isinstance(value, Enum):
        value = value.value
    return json.dumps(
        _normalize_numbers(value), sort_keys=True, separators=(",", ":"), default=str
    )


class Visibility(str, Enum):
    """Who may read a schema resource."""

    PRIVATE = "private"
    PUBLIC = "public"


class SchemaResource(BaseModel):
    """A named, owned JSON Schema contract.

    Attributes:
        id: Resource identifier
        owner_id: Identifier of the owning user
        name: Display name
        description: Optional free-text description
        json_schema: The JSON Schema document
        example_output: Optional example of a conforming output
        visibility: Private or public
        usage_count: Number of structured completions that referenced this resource
        version: Current version number, starting at 1
        is_latest: True for the live row
        parent_id: Source resource id when created by a fork
        created_at: Creation timestamp
        updated_at: Timestamp of the last write
    """

    id: str = Field(default_factory=new_id)
    owner_id: str
    name: str = Field(min_length=1)
    description: str | None = None
    json_schema: Any
    example_output: Any = None
    visibility: Visibility = Visibility.PRIVATE
    usage_count: int = Field(default=0, ge=0)
    version: int = Field(default=1, ge=1)
    is_latest: bool = True
    parent_id: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    def content(self) -> dict[str, Any]:
        """Return the updatable fields of this resource."""
        return {field: getattr(self, field) for field in UPDATABLE_FIELDS}


class VersionRecord(BaseModel):
    """Immutable snapshot of a schema resource taken before an update."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    resource_id: str
    version: int = Field(ge=1)
    name: str
    description: str | None = None
    json_schema: Any
    example_output: Any = None
    visibility: Visibility = Visibility.PRIVATE
    changed_by: str
    change_summary: str | None = None
    created_at: datetime = Field(default_factory=utc_now)

    @classmethod
    def snapshot(
        cls,
        resource: SchemaResource,
        changed_by: str,
        change_summary: str | None = None,
    ) -> "VersionRecord":
        """Capture the current state of ``resource`` at its current version."""
        return cls(
            resource_id=resource.id,
            version=resource.version,
            changed_by=changed_by,
            change_summary=change_summary,
            **resource.content(),
        )

    def content(self) -> dict[str, Any]:
        return {field: getattr(self, field) for field in UPDATABLE_FIELDS}


class SchemaResourceUpdate(BaseModel):
    """Partial update for a schema resource.

    Only fields the caller explicitly sets take part in the update, so
    ``SchemaResourceUpdate(description=None)`` clears the description while
    ``SchemaResourceUpdate()`` changes nothing.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    json_schema: Any = None
    example_output: Any = None
    visibility: Visibility | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the explicitly set fields."""
        values = {field: getattr(self, field) for field in self.model_fields_set}
        # name, json_schema and visibility cannot be cleared
        for required in ("name", "json_schema", "visibility"):
            if required in values and values[required] is None:
                del values[required]
        return values

    def diff(self, resource: SchemaResource) -> dict[str, Any]:
        """Return the set fields whose values differ from ``resource``."""
        return {
            field: value
            for field, value in self.changes().items()
            if canonical_json(value) != canonical_json(getattr(resource, field))
        }


class VersionComparison(BaseModel):
    """Two resolved snapshots of the same resource, without diffing."""

    version_a: SchemaResource | VersionRecord
    version_b: SchemaResource | VersionRecord
