"""SQLite-backed schema repository."""

import json
import logging
import os
import sqlite3
from typing import Any

from schemaforge.registry.models import (
    UPDATABLE_FIELDS,
    SchemaResource,
    VersionRecord,
    Visibility,
    utc_now,
)
from schemaforge.registry.repository import SchemaRepository

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS schema_resources (
  id TEXT PRIMARY KEY,
  owner_id TEXT NOT NULL,
  name TEXT NOT NULL,
  description TEXT,
  json_schema TEXT NOT NULL,
  example_output TEXT,
  visibility TEXT NOT NULL DEFAULT 'private',
  usage_count INTEGER NOT NULL DEFAULT 0,
  version INTEGER NOT NULL DEFAULT 1,
  is_latest INTEGER NOT NULL DEFAULT 1,
  parent_id TEXT REFERENCES schema_resources(id) ON DELETE SET NULL,
  created_at TEXT NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_schema_resources_owner ON schema_resources(owner_id);
CREATE INDEX IF NOT EXISTS idx_schema_resources_visibility ON schema_resources(visibility);

CREATE TABLE IF NOT EXISTS schema_versions (
  id TEXT PRIMARY KEY,
  resource_id TEXT NOT NULL,
  version INTEGER NOT NULL,
  name TEXT NOT NULL,
  description TEXT,
  json_schema TEXT NOT NULL,
  example_output TEXT,
  visibility TEXT NOT NULL DEFAULT 'private',
  changed_by TEXT NOT NULL,
  change_summary TEXT,
  created_at TEXT NOT NULL,
  UNIQUE(resource_id, version)
);
"""

RESOURCE_COLUMNS = (
    "id,owner_id,name,description,json_schema,example_output,visibility,"
    "usage_count,version,is_latest,parent_id,created_at,updated_at"
)
VERSION_COLUMNS = (
    "id,resource_id,version,name,description,json_schema,example_output,"
    "visibility,changed_by,change_summary,created_at"
)


def _dump(value: Any) -> str | None:
    return None if value is None else json.dumps(value, ensure_ascii=False)


def _load(value: str | None) -> Any:
    return None if value is None else json.loads(value)


def _column_value(field: str, value: Any) -> Any:
    if field in ("json_schema", "example_output"):
        return _dump(value)
    if field == "visibility":
        return Visibility(value).value
    return value


def _row_to_resource(row: sqlite3.Row) -> SchemaResource:
    return SchemaResource(
        id=row["id"],
        owner_id=row["owner_id"],
        name=row["name"],
        description=row["description"],
        json_schema=_load(row["json_schema"]),
        example_output=_load(row["example_output"]),
        visibility=row["visibility"],
        usage_count=row["usage_count"],
        version=row["version"],
        is_latest=bool(row["is_latest"]),
        parent_id=row["parent_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _row_to_version(row: sqlite3.Row) -> VersionRecord:
    return VersionRecord(
        id=row["id"],
        resource_id=row["resource_id"],
        version=row["version"],
        name=row["name"],
        description=row["description"],
        json_schema=_load(row["json_schema"]),
        example_output=_load(row["example_output"]),
        visibility=row["visibility"],
        changed_by=row["changed_by"],
        change_summary=row["change_summary"],
        created_at=row["created_at"],
    )


class SQLiteSchemaRepository(SchemaRepository):
    """Repository storing resources and version records in a SQLite file.

    Usage counting is a single ``UPDATE ... SET usage_count = usage_count + 1``
    and version bumps are guarded by ``WHERE version = ?`` inside an
    immediate transaction, so concurrent writers never lose updates.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        directory = os.path.dirname(os.path.abspath(db_path))
        os.makedirs(directory, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, isolation_level=None, timeout=5.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        conn.execute("PRAGMA busy_timeout = 5000")
        return conn

    def _init_db(self) -> None:
        conn = self._connect()
        try:
            conn.executescript(SCHEMA_SQL)
        finally:
            conn.close()

    def insert_resource(self, resource: SchemaResource) -> SchemaResource:
        conn = self._connect()
        try:
            conn.execute(
                f"INSERT INTO schema_resources({RESOURCE_COLUMNS}) "
                "VALUES(?,?,?,?,?,?,?,?,?,?,?,?,?)",
                (
                    resource.id,
                    resource.owner_id,
                    resource.name,
                    resource.description,
                    _dump(resource.json_schema),
                    _dump(resource.example_output),
                    resource.visibility.value,
                    resource.usage_count,
                    resource.version,
                    int(resource.is_latest),
                    resource.parent_id,
                    resource.created_at.isoformat(),
                    resource.updated_at.isoformat(),
                ),
            )
        except sqlite3.IntegrityError as e:
            raise ValueError(f"Resource {resource.id} could not be inserted: {e}") from e
        finally:
            conn.close()
        return resource

    def get_resource(
        self,
        resource_id: str,
        owner_id: str | None = None,
        include_public: bool = False,
    ) -> SchemaResource | None:
        sql = f"SELECT {RESOURCE_COLUMNS} FROM schema_resources WHERE id = ?"
        params: list[Any] = [resource_id]
        if owner_id is not None:
            if include_public:
                sql += " AND (owner_id = ? OR visibility = 'public')"
            else:
                sql += " AND owner_id = ?"
            params.append(owner_id)

        conn = self._connect()
        try:
            row = conn.execute(sql, params).fetchone()
        finally:
            conn.close()
        return _row_to_resource(row) if row else None

    def list_resources(
        self,
        owner_id: str,
        include_public: bool = True,
        search: str | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[SchemaResource]:
        if include_public:
            clauses = ["(owner_id = ? OR visibility = 'public')"]
        else:
            clauses = ["owner_id = ?"]
        params: list[Any] = [owner_id]

        if search:
            clauses.append("(name LIKE ? OR IFNULL(description, '') LIKE ?)")
            pattern = f"%{search}%"
            params.extend([pattern, pattern])

        sql = (
            f"SELECT {RESOURCE_COLUMNS} FROM schema_resources WHERE "
            + " AND ".join(clauses)
            + " ORDER BY created_at DESC, rowid DESC LIMIT ? OFFSET ?"
        )
        params.extend([-1 if limit is None else limit, offset])

        conn = self._connect()
        try:
            rows = conn.execute(sql, params).fetchall()
        finally:
            conn.close()
        return [_row_to_resource(row) for row in rows]

    def list_public_by_usage(self, limit: int = 10) -> list[SchemaResource]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {RESOURCE_COLUMNS} FROM schema_resources "
                "WHERE visibility = 'public' ORDER BY usage_count DESC, rowid DESC LIMIT ?",
                (limit,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_resource(row) for row in rows]

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

        assignments = "".join(f"{field} = ?, " for field in changes)
        values = [_column_value(field, value) for field, value in changes.items()]

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                cursor = conn.execute(
                    f"UPDATE schema_resources SET {assignments}"
                    "version = version + 1, is_latest = 1, updated_at = ? "
                    "WHERE id = ? AND version = ?",
                    (*values, utc_now().isoformat(), resource_id, expected_version),
                )
                if cursor.rowcount == 0:
                    conn.execute("ROLLBACK")
                    return None

                conn.execute(
                    f"INSERT INTO schema_versions({VERSION_COLUMNS}) "
                    "VALUES(?,?,?,?,?,?,?,?,?,?,?)",
                    (
                        record.id,
                        record.resource_id,
                        record.version,
                        record.name,
                        record.description,
                        _dump(record.json_schema),
                        _dump(record.example_output),
                        record.visibility.value,
                        record.changed_by,
                        record.change_summary,
                        record.created_at.isoformat(),
                    ),
                )
                row = conn.execute(
                    f"SELECT {RESOURCE_COLUMNS} FROM schema_resources WHERE id = ?",
                    (resource_id,),
                ).fetchone()
                conn.execute("COMMIT")
            except sqlite3.IntegrityError:
                conn.execute("ROLLBACK")
                logger.warning(
                    "Version %s of %s already recorded", expected_version, resource_id
                )
                return None
            except Exception:
                conn.execute("ROLLBACK")
                raise
        finally:
            conn.close()

        return _row_to_resource(row)

    def get_version(self, resource_id: str, version: int) -> VersionRecord | None:
        conn = self._connect()
        try:
            row = conn.execute(
                f"SELECT {VERSION_COLUMNS} FROM schema_versions "
                "WHERE resource_id = ? AND version = ?",
                (resource_id, version),
            ).fetchone()
        finally:
            conn.close()
        return _row_to_version(row) if row else None

    def list_versions(self, resource_id: str) -> list[VersionRecord]:
        conn = self._connect()
        try:
            rows = conn.execute(
                f"SELECT {VERSION_COLUMNS} FROM schema_versions "
                "WHERE resource_id = ? ORDER BY version DESC",
                (resource_id,),
            ).fetchall()
        finally:
            conn.close()
        return [_row_to_version(row) for row in rows]

    def delete_resource(self, resource_id: str, retain_history: bool = False) -> bool:
        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
            cursor = conn.execute(
                "DELETE FROM schema_resources WHERE id = ?", (resource_id,)
            )
            deleted = cursor.rowcount > 0
            if deleted and not retain_history:
                conn.execute(
                    "DELETE FROM schema_versions WHERE resource_id = ?", (resource_id,)
                )
            conn.execute("COMMIT")
        finally:
            conn.close()
        return deleted

    def increment_usage(self, resource_id: str) -> bool:
        conn = self._connect()
        try:
            cursor = conn.execute(
                "UPDATE schema_resources SET usage_count = usage_count + 1 WHERE id = ?",
                (resource_id,),
            )
        finally:
            conn.close()
        return cursor.rowcount > 0
