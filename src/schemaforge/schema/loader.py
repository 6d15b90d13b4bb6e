"""Loading JSON Schema documents from local files and URLs."""

import json
import logging
from pathlib import Path
from typing import Any

import requests

from schemaforge.exceptions import ResourceNotFound, SchemaInvalid
from schemaforge.schema.validators import JSONSchemaBackend, SchemaValidationBackend

logger = logging.getLogger(__name__)


class SchemaLoader:
    """Loads schema documents for import into the resource store.

    Supports loading schemas from:
    - Named files in configured directories
    - Explicit file paths
    - URLs with caching

    Every loaded document is compiled before it is returned, so callers only
    ever see schemas that will also pass ``SchemaResourceManager.create``.
    """

    def __init__(
        self,
        schema_directories: list[str] | None = None,
        backend: SchemaValidationBackend | None = None,
        request_timeout: float = 10.0,
    ) -> None:
        """Initialize SchemaLoader.

        Args:
            schema_directories: Directories to search for named schema files.
                               Defaults to ['schemas/'] if None.
            backend: Validation backend used to check loaded documents
            request_timeout: Timeout in seconds for URL fetches
        """
        self.schema_directories = schema_directories or ["schemas/"]
        self.backend = backend or JSONSchemaBackend()
        self.request_timeout = request_timeout
        self._url_cache: dict[str, Any] = {}

    def load(self, source: str) -> Any:
        """Load a schema from a URL, a file path, or a name in the search directories."""
        if source.startswith(("http://", "https://")):
            return self.load_schema_from_url(source)

        path = Path(source)
        if path.suffix == ".json" or path.exists():
            return self.load_file(path)

        return self.load_schema(source)

    def load_schema(self, schema_name: str) -> Any:
        """Load a JSON schema by name.

        Args:
            schema_name: Name of the schema (without .json extension)

        Returns:
            JSON schema document

        Raises:
            ResourceNotFound: If no matching file exists
            SchemaInvalid: If the file is not a valid JSON Schema
        """
        for directory in self.schema_directories:
            schema_path = Path(directory) / f"{schema_name}.json"
            if schema_path.exists():
                return self.load_file(schema_path)

        raise ResourceNotFound(
            f"Schema '{schema_name}' not found in directories: {self.schema_directories}",
            resource_id=schema_name,
        )

    def load_file(self, schema_path: str | Path) -> Any:
        path = Path(schema_path)
        if not path.exists():
            raise ResourceNotFound(f"Schema file {path} not found", resource_id=str(path))

        try:
            with open(path, encoding="utf-8") as f:
                schema = json.load(f)
        except json.JSONDecodeError as e:
            raise SchemaInvalid(f"Invalid schema file {path}: {e}") from e

        self.backend.check(schema)
        logger.debug("Loaded schema from %s", path)
        return schema

    def load_schema_from_url(self, url: str) -> Any:
        """Load a JSON schema from a URL.

        Args:
            url: URL to fetch schema from

        Returns:
            JSON schema document

        Raises:
            SchemaInvalid: If URL fetch or schema validation fails
        """
        if url in self._url_cache:
            return self._url_cache[url]

        try:
            response = requests.get(url, timeout=self.request_timeout)
            response.raise_for_status()
            schema = response.json()
        except requests.RequestException as e:
            raise SchemaInvalid(f"Failed to fetch schema from {url}: {e}") from e
        except ValueError as e:
            raise SchemaInvalid(f"Invalid JSON schema from {url}: {e}") from e

        self.backend.check(schema)

        self._url_cache[url] = schema
        logger.debug("Loaded schema from %s", url)
        return schema
