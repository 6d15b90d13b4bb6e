"""Persistence contract for schema resources and their version history."""

import copy
import itertools
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from schemaforge.registry.models import (
    UPDATABLE_FIELDS,
    SchemaResource,
    VersionRecord,
    utc_now,
)

logger = logging.getLogger(__name__)


def is_visible(
    resource: SchemaResource, owner_id: str | None, include_public: bool
) -> bool:
    """Apply owner-scoped and public-visibility filtering to a resource."""
    if owner_id is None:
        return True
    if resource.owner_id == owner_id:
        return True
    return include_public and resource.is_public


def matches_search(resource: SchemaResource, search: str | None) -> bool:
    if not search:
        return True
    needle = search.lower()
    return needle in resource.name.lower() or needle in (resource.description or "").lower()


class SchemaRepository(ABC):
    """Storage for live schema resources and their version records.

    Live resources are keyed by ``resource_id`` and version records by
    ``(resource_id, version)``. Implementations must make
    ``compare_and_swap`` and ``increment_usage`` atomic at the storage layer.
    """

    @abstractmethod
    def insert_resource(self, resource: SchemaResource) -> SchemaResource:
        """Persist a new live resource."""
        pass

    @abstractmethod
    def get_resource(
        self,
        resource_id: str,
        owner_id: str | None = None,
        include_public: bool = False,
    ) -> SchemaResource | None:
        """Fetch a live resource.

        Args:
            resource_id: Resource to fetch
            owner_id: When given, only resources owned by this user are returned
            include_public: With ``owner_id``, also return public resources

        Returns:
            The resource, or None if it does not exist or is filtered out
        """
        pass

    @abstractmethod
    def list_resources(
        self,
        owner_id: str,
        include_public: bool = True,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SchemaResource]:
        """List resources visible to ``owner_id``, newest first."""
        pass

    @abstractmethod
    def list_public_by_usage(self, limit: int = 10) -> list[SchemaResource]:
        """List public resources ordered by usage count, highest first."""
        pass

    @abstractmethod
    def compare_and_swap(
        self,
        resource_id: str,
        expected_version: int,
        changes: dict[str, Any],
        record: VersionRecord,
    ) -> SchemaResource | None:
        """Apply ``changes`` and write ``record`` if the live version still matches.

        The version record and the live row update happen atomically. On
        success the live version becomes ``expected_version + 1``.

        Returns:
            The updated resource, or None if the live version moved on
            (or the resource disappeared) since it was read
        """
        pass

    @abstractmethod
    def get_version(self, resource_id: str, version: int) -> VersionRecord | None:
        pass

    @abstractmethod
    def list_versions(self, resource_id: str) -> list[VersionRecord]:
        """Return every version record for a resource, version descending."""
        pass

    @abstractmethod
    def delete_resource(self, resource_id: str, retain_history: bool = False) -> bool:
        """Remove a live resource, and its history unless ``retain_history``."""
        pass

    @abstractmethod
    def increment_usage(self, resource_id: str) -> bool:
        """Atomically add one to ``usage_count``; False if the resource is gone."""
        pass


class InMemorySchemaRepository(SchemaRepository):
    """Process-local repository guarded by a single lock."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._resources: dict[str, SchemaResource] = {}
        self._versions: dict[tuple[str, int], VersionRecord] = {}
        self._order: dict[str, int] = {}
        self._sequence = itertools.count()

    def insert_resource(self, resource: SchemaResource) -> SchemaResource:
        with self._lock:
            if resource.id in self._resources:
                raise ValueError(f"Resource {resource.id} already exists")
            self._resources[resource.id] = resource.model_copy(deep=True)
            self._order[resource.id] = next(self._sequence)
            return resource.model_copy(deep=True)

    def get_resource(
        self,
        resource_id: str,
        owner_id: str | None = None,
        include_public: bool = False,
    ) -> SchemaResource | None:
        with self._lock:
            resource = self._resources.get(resource_id)
            if resource is None or not is_visible(resource, owner_id, include_public):
                return None
            return resource.model_copy(deep=True)

    def list_resources(
        self,
        owner_id: str,
        include_public: bool = True,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SchemaResource]:
        with self._lock:
            matches = [
                resource
                for resource in self._resources.values()
                if is_visible(resource, owner_id, include_public)
                and matches_search(resource, search)
            ]
            matches.sort(
                key=lambda r: (r.created_at, self._order[r.id]), reverse=True
            )
            end = None if limit is None else offset + limit
            return [r.model_copy(deep=True) for r in matches[offset:end]]

    def list_public_by_usage(self, limit: int = 10) -> list[SchemaResource]:
        with self._lock:
            public = [r for r in self._resources.values() if r.is_public]
            public.sort(key=lambda r: (r.usage_count, self._order[r.id]), reverse=True)
            return [r.model_copy(deep=True) for r in public[:limit]]

    def compare_and_swap(
        self,
        resource_id: str,
        expected_version: int,
        changes: dict[str, Any],
        record: VersionRecord,
    ) -> SchemaResource | None:
        unknown = set(changes) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields are not updatable: {sorted(unknown)}")

        with self._lock:
            current = self._resources.get(resource_id)
            if current is None or current.version != expected_version:
                logger.debug("Stale version %d for %s", expected_version, resource_id)
                return None
            if (resource_id, expected_version) in self._versions:
                logger.warning(
                    "Version %d of %s already recorded", expected_version, resource_id
                )
                return None

            self._versions[(resource_id, expected_version)] = record
            updated = current.model_copy(
                update={
                    **copy.deepcopy(changes),
                    "version": expected_version + 1,
                    "is_latest": True,
                    "updated_at": utc_now(),
                },
                deep=True,
            )
            self._resources[resource_id] = updated
            return updated.model_copy(deep=True)

    def get_version(self, resource_id: str, version: int) -> VersionRecord | None:
        with self._lock:
            return self._versions.get((resource_id, version))

    def list_versions(self, resource_id: str) -> list[VersionRecord]:
        with self._lock:
            records = [
                record
                for (owner, _), record in self._versions.items()
                if owner == resource_id
            ]
        return sorted(records, key=lambda r: r.version, reverse=True)

    def delete_resource(self, resource_id: str, retain_history: bool = False) -> bool:
        with self._lock:
            if self._resources.pop(resource_id, None) is None:
                return False
            self._order.pop(resource_id, None)

            if not retain_history:
                for key in [k for k in self._versions if k[0] == resource_id]:
                    del self._versions[key]

            for child_id, child in self._resources.items():
                if child.parent_id == resource_id:
                    self._resources[child_id] = child.model_copy(
                        update={"parent_id": None}
                    )
            return True

    def increment_usage(self, resource_id: str) -> bool:
        with self._lock:
            resource = self._resources.get(resource_id)
            if resource is None:
                return False
            self._resources[resource_id] = resource.model_copy(
                update={"usage_count": resource.usage_count + 1}
            )
            return True
