"""Schema resource store with append-only version history."""

import logging
from typing import Any

from schemaforge.exceptions import (
    ConcurrentUpdateError,
    ResourceNotFound,
    VersionNotFound,
)
from schemaforge.registry.models import (
    SchemaResource,
    SchemaResourceUpdate,
    VersionComparison,
    VersionRecord,
    Visibility,
)
from schemaforge.registry.repository import SchemaRepository
from schemaforge.schema.examples import EXAMPLE_SCHEMAS
from schemaforge.schema.loader import SchemaLoader
from schemaforge.schema.validators import JSONSchemaBackend, SchemaValidationBackend

logger = logging.getLogger(__name__)

DEFAULT_CHANGE_SUMMARY = "Updated schema resource"


class SchemaResourceManager:
    """Owns the versioned lifecycle of schema resources.

    Every update that changes content first snapshots the live resource into a
    ``VersionRecord`` tagged with the current version, then bumps the live
    version by one. History is only ever appended to: restoring an old
    version writes its content forward as a new version.

    Updates are serialized per resource through the repository's
    compare-and-swap on ``version``; a lost race re-reads and re-diffs.
    """

    def __init__(
        self,
        repository: SchemaRepository,
        validator: SchemaValidationBackend | None = None,
        loader: SchemaLoader | None = None,
        max_update_attempts: int = 5,
    ) -> None:
        """Initialize SchemaResourceManager.

        Args:
            repository: Storage backend for resources and version records
            validator: Backend used to check schemas on create/update
            loader: Loader used by ``import_resource``
            max_update_attempts: Compare-and-swap attempts before giving up
        """
        if max_update_attempts < 1:
            raise ValueError("max_update_attempts must be at least 1")

        self.repository = repository
        self.validator = validator or JSONSchemaBackend()
        self.loader = loader or SchemaLoader(backend=self.validator)
        self.max_update_attempts = max_update_attempts

    def create(
        self,
        owner_id: str,
        name: str,
        json_schema: Any,
        description: str | None = None,
        example_output: Any = None,
        visibility: Visibility | str = Visibility.PRIVATE,
    ) -> SchemaResource:
        """Create a new schema resource at version 1.

        Args:
            owner_id: Owning user
            name: Display name
            json_schema: JSON Schema document
            description: Optional description
            example_output: Optional example of a conforming output
            visibility: Private (default) or public

        Returns:
            The stored resource

        Raises:
            SchemaInvalid: If ``json_schema`` does not compile
        """
        self.validator.check(json_schema)

        resource = SchemaResource(
            owner_id=owner_id,
            name=name,
            description=description,
            json_schema=json_schema,
            example_output=example_output,
            visibility=visibility,
        )
        stored = self.repository.insert_resource(resource)
        logger.info("Created schema resource %s for %s", stored.id, owner_id)
        return stored

    def get(
        self, owner_id: str, resource_id: str, allow_public: bool = True
    ) -> SchemaResource:
        """Fetch a resource owned by the caller, or any public one when allowed.

        Raises:
            ResourceNotFound: If the resource is missing or not visible
        """
        resource = self.repository.get_resource(
            resource_id, owner_id=owner_id, include_public=allow_public
        )
        if resource is None:
            raise ResourceNotFound(
                f"Schema resource '{resource_id}' not found", resource_id=resource_id
            )
        return resource

    def list_resources(
        self,
        owner_id: str,
        include_public: bool = True,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SchemaResource]:
        return self.repository.list_resources(
            owner_id,
            include_public=include_public,
            search=search,
            limit=limit,
            offset=offset,
        )

    def list_trending(self, limit: int = 10) -> list[SchemaResource]:
        """Public resources with the highest usage counts."""
        return self.repository.list_public_by_usage(limit)

    def update(
        self,
        owner_id: str,
        resource_id: str,
        changes: SchemaResourceUpdate | dict[str, Any],
        change_summary: str | None = None,
    ) -> SchemaResource:
        """Apply a partial update, writing a version record if anything changed.

        Args:
            owner_id: Caller; must own the resource
            resource_id: Resource to update
            changes: Fields to change; unset fields are left alone
            change_summary: Note stored on the version record

        Returns:
            The updated resource, or the unchanged one for a no-op update

        Raises:
            SchemaInvalid: If a new ``json_schema`` does not compile
            ResourceNotFound: If the caller does not own the resource
            ConcurrentUpdateError: If every compare-and-swap attempt lost a race
        """
        if not isinstance(changes, SchemaResourceUpdate):
            changes = SchemaResourceUpdate(**changes)

        requested = changes.changes()
        if "json_schema" in requested:
            self.validator.check(requested["json_schema"])

        for attempt in range(self.max_update_attempts):
            current = self.get(owner_id, resource_id, allow_public=False)

            differing = changes.diff(current)
            if not differing:
                logger.debug("No changes for %s; keeping version %d", resource_id, current.version)
                return current

            record = VersionRecord.snapshot(
                current,
                changed_by=owner_id,
                change_summary=change_summary or DEFAULT_CHANGE_SUMMARY,
            )
            updated = self.repository.compare_and_swap(
                resource_id, current.version, differing, record
            )
            if updated is not None:
                logger.debug(
                    "Archived %s version %d; live version is now %d",
                    resource_id,
                    current.version,
                    updated.version,
                )
                return updated

            logger.warning(
                "Version conflict updating %s (attempt %d/%d)",
                resource_id,
                attempt + 1,
                self.max_update_attempts,
            )

        raise ConcurrentUpdateError(
            f"Could not update schema resource '{resource_id}' after "
            f"{self.max_update_attempts} attempts due to concurrent modifications",
            resource_id=resource_id,
        )

    def restore(
        self,
        owner_id: str,
        resource_id: str,
        target_version: int,
        change_summary: str | None = None,
    ) -> SchemaResource:
        """Reapply a historical version's content as a new version.

        Restoring never rewrites history: it is an ``update`` whose values are
        the target snapshot, so it produces ``current + 1`` (or nothing, when
        the target content equals the live content).

        Raises:
            ResourceNotFound: If the caller does not own the resource
            VersionNotFound: If ``target_version`` does not exist
        """
        current = self.get(owner_id, resource_id, allow_public=False)
        snapshot = self._resolve_version(current, target_version)

        return self.update(
            owner_id,
            resource_id,
            SchemaResourceUpdate(**snapshot.content()),
            change_summary=change_summary or f"Restored to version {target_version}",
        )

    def fork(
        self, owner_id: str, resource_id: str, new_name: str | None = None
    ) -> SchemaResource:
        """Create an independent private copy of a resource.

        The source may be the caller's own resource or any public one. The
        fork starts at version 1 with no history and points back at the
        source through ``parent_id``.

        Raises:
            ResourceNotFound: If the source is neither owned nor public
        """
        source = self.get(owner_id, resource_id, allow_public=True)

        fork = SchemaResource(
            owner_id=owner_id,
            name=new_name or f"{source.name} (Copy)",
            description=f"Forked from: {source.name}",
            json_schema=source.json_schema,
            example_output=source.example_output,
            visibility=Visibility.PRIVATE,
            parent_id=source.id,
        )
        stored = self.repository.insert_resource(fork)
        logger.info("Forked schema resource %s into %s", source.id, stored.id)
        return stored

    def list_versions(self, owner_id: str, resource_id: str) -> list[VersionRecord]:
        """Archived versions, newest first; the live state is not included."""
        self.get(owner_id, resource_id, allow_public=False)
        return self.repository.list_versions(resource_id)

    def compare(
        self, owner_id: str, resource_id: str, version_a: int, version_b: int
    ) -> VersionComparison:
        """Resolve two versions for side-by-side display.

        Each side is the live resource when it names the current version, or
        the archived record otherwise.

        Raises:
            ResourceNotFound: If the caller does not own the resource
            VersionNotFound: If either version does not exist
        """
        current = self.get(owner_id, resource_id, allow_public=False)
        return VersionComparison(
            version_a=self._resolve_version(current, version_a),
            version_b=self._resolve_version(current, version_b),
        )

    def delete(
        self, owner_id: str, resource_id: str, retain_history: bool = False
    ) -> None:
        """Remove a live resource.

        Version records are deleted with it unless ``retain_history`` is set.

        Raises:
            ResourceNotFound: If the caller does not own the resource
        """
        self.get(owner_id, resource_id, allow_public=False)
        if not self.repository.delete_resource(resource_id, retain_history=retain_history):
            raise ResourceNotFound(
                f"Schema resource '{resource_id}' not found", resource_id=resource_id
            )
        logger.info("Deleted schema resource %s", resource_id)

    def increment_usage(self, resource_id: str) -> None:
        if not self.repository.increment_usage(resource_id):
            raise ResourceNotFound(
                f"Schema resource '{resource_id}' not found", resource_id=resource_id
            )

    def import_resource(
        self,
        owner_id: str,
        name: str,
        source: str,
        description: str | None = None,
        example_output: Any = None,
        visibility: Visibility | str = Visibility.PRIVATE,
    ) -> SchemaResource:
        """Create a resource from a schema file path, schema name or URL."""
        json_schema = self.loader.load(source)
        return self.create(
            owner_id,
            name,
            json_schema,
            description=description,
            example_output=example_output,
            visibility=visibility,
        )

    def create_from_example(self, owner_id: str, example_key: str) -> SchemaResource:
        """Create a private resource from one of the built-in example schemas."""
        try:
            example = EXAMPLE_SCHEMAS[example_key]
        except KeyError as e:
            raise ResourceNotFound(
                f"Example schema '{example_key}' not found. "
                f"Available: {sorted(EXAMPLE_SCHEMAS)}",
                resource_id=example_key,
            ) from e

        return self.create(
            owner_id,
            example["name"],
            example["json_schema"],
            description=example.get("description"),
            example_output=example.get("example_output"),
        )

    def _resolve_version(
        self, current: SchemaResource, version: int
    ) -> SchemaResource | VersionRecord:
        if version == current.version:
            return current

        record = self.repository.get_version(current.id, version)
        if record is None:
            raise VersionNotFound(
                f"Version {version} of schema resource '{current.id}' not found",
                resource_id=current.id,
                version=version,
            )
        return record
