"""
Dev Agent Schema Store

Single-connection SQLite store with a forward-only migration ledger and
parameterized execute/query primitives.

Usage:
    from dev_agent.storage import SchemaStore

    store = SchemaStore("data/.dev-agent.db")
    store.initialize()          # applies pending migrations

    with store.transaction():
        store.execute("UPDATE goals SET title = ? WHERE id = ?", ("New", "g-abc123"))

    rows = store.query_all("SELECT * FROM goals WHERE status = ?", ("todo",))
"""

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Sequence

from dev_agent.exceptions import ConnectError, MigrationError
from dev_agent.storage.schema import (
    LEDGER_DDL,
    LEDGER_TABLE,
    MIGRATIONS,
    get_migration_sql,
    get_migration_versions,
)

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"

Params = Sequence[Any]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2025-01-31T12:00:00.000Z."""
    now = datetime.now(timezone.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def split_statements(script: str) -> List[str]:
    """Split a migration script into complete SQL statements.

    Statements are accumulated line by line until SQLite reports them
    complete; comment-only fragments are dropped.
    """
    statements = []
    buffer = ""
    for line in script.splitlines(keepends=True):
        buffer += line
        if sqlite3.complete_statement(buffer):
            statements.append(buffer.strip())
            buffer = ""

    leftover = "\n".join(
        line for line in buffer.splitlines()
        if line.strip() and not line.strip().startswith("--")
    )
    if leftover.strip():
        statements.append(leftover.strip())
    return statements


class SchemaStore:
    """Embedded relational store with a migrations ledger.

    All operations run on one connection and execute serially. The
    connection is opened in autocommit mode; multi-statement atomicity uses
    begin/commit/rollback or the ``transaction()`` context manager.
    """

    def __init__(self, path: Optional[str] = None, migrations: Optional[Dict[str, str]] = None):
        """
        Initialize the store (no connection is opened yet).

        Args:
            path: Store file path or ':memory:'. If None, resolved from the
                environment, then the project configuration file, then
                falls back to an ephemeral store.
            migrations: Migration scripts keyed by version (default: MIGRATIONS)
        """
        if path is None:
            from dev_agent.config import resolve_database_config

            path = resolve_database_config().path

        self.path = str(path)
        self.migrations = migrations if migrations is not None else MIGRATIONS
        self._conn: Optional[sqlite3.Connection] = None
        logger.debug("SchemaStore configured with path: %s", self.path)

    # ========== Lifecycle ==========

    @property
    def is_ephemeral(self) -> bool:
        return self.path.startswith(MEMORY_PATH) or self.path == ""

    @property
    def is_initialized(self) -> bool:
        return self._conn is not None

    def initialize(self) -> List[str]:
        """Open the connection and apply pending migrations.

        Returns:
            Versions applied by this call (empty when up to date)

        Raises:
            ConnectError: If the store cannot be opened
            MigrationError: If a migration fails (it is rolled back and the
                remaining migrations are not attempted)
        """
        if self._conn is None:
            self._conn = self._open()

        applied = self.run_migrations()
        logger.info("Store initialized at %s (%d migration(s) applied)", self.path, len(applied))
        return applied

    def _open(self) -> sqlite3.Connection:
        if not self.is_ephemeral:
            Path(self.path).parent.mkdir(parents=True, exist_ok=True)

        try:
            conn = sqlite3.connect(self.path, isolation_level=None)
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
        except (sqlite3.Error, OSError) as e:
            raise ConnectError(
                f"Unable to open store at {self.path}",
                target="the SQLite store",
                details=str(e),
            ) from e
        return conn

    def close(self) -> None:
        """Close the connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SchemaStore":
        if not self.is_initialized:
            self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========== Migrations ==========

    def run_migrations(self) -> List[str]:
        """Apply every migration not yet recorded in the ledger, in order."""
        conn = self._require_connection()
        conn.execute(LEDGER_DDL)

        applied_now = []
        for version in self.pending_migrations():
            self._apply_migration(version)
            applied_now.append(version)
        return applied_now

    def _apply_migration(self, version: str) -> None:
        conn = self._require_connection()
        sql = get_migration_sql(version, self.migrations) or ""

        try:
            conn.execute("BEGIN")
            for statement in split_statements(sql):
                conn.execute(statement)
            conn.execute(
                f"INSERT INTO {LEDGER_TABLE} (version, applied_at) VALUES (?, ?)",
                (version, utc_timestamp()),
            )
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            if conn.in_transaction:
                conn.execute("ROLLBACK")
            logger.error("Failed to apply migration %s: %s", version, e)
            raise MigrationError(
                f"Failed to apply migration {version}",
                version=version,
                details=str(e),
            ) from e

        logger.info("Applied migration %s", version)

    def applied_migrations(self) -> List[Dict[str, Any]]:
        """Ledger rows in version order."""
        conn = self._require_connection()
        conn.execute(LEDGER_DDL)
        rows = conn.execute(
            f"SELECT version, applied_at FROM {LEDGER_TABLE} ORDER BY version"
        ).fetchall()
        return [dict(row) for row in rows]

    def pending_migrations(self) -> List[str]:
        """Known versions missing from the ledger, in application order."""
        applied = {row["version"] for row in self.applied_migrations()}
        return [v for v in get_migration_versions(self.migrations) if v not in applied]

    # ========== Primitives ==========

    def execute(self, sql: str, params: Params = ()) -> int:
        """Execute a parameterized statement.

        Returns:
            Number of rows changed
        """
        conn = self._require_connection()
        cursor = conn.execute(sql, tuple(params))
        return cursor.rowcount

    def query_one(self, sql: str, params: Params = ()) -> Optional[Dict[str, Any]]:
        """Return the first row as a dict, or None."""
        conn = self._require_connection()
        row = conn.execute(sql, tuple(params)).fetchone()
        return dict(row) if row is not None else None

    def query_all(self, sql: str, params: Params = ()) -> List[Dict[str, Any]]:
        """Return all rows as dicts."""
        conn = self._require_connection()
        return [dict(row) for row in conn.execute(sql, tuple(params)).fetchall()]

    def begin(self) -> None:
        self._require_connection().execute("BEGIN")

    def commit(self) -> None:
        self._require_connection().execute("COMMIT")

    def rollback(self) -> None:
        self._require_connection().execute("ROLLBACK")

    @property
    def in_transaction(self) -> bool:
        return self._conn is not None and self._conn.in_transaction

    @contextmanager
    def transaction(self) -> Iterator["SchemaStore"]:
        """Run a block atomically: commit on success, rollback on error."""
        self.begin()
        try:
            yield self
        except BaseException:
            self.rollback()
            raise
        else:
            self.commit()

    # ========== Introspection ==========

    def table_exists(self, table_name: str) -> bool:
        row = self.query_one(
            "SELECT name FROM sqlite_master WHERE type='table' AND name=?",
            (table_name,),
        )
        return row is not None

    def get_table_schema(self, table_name: str) -> List[Dict[str, Any]]:
        """Column descriptions from PRAGMA table_info."""
        if not self.table_exists(table_name):
            return []
        # Table name is checked against sqlite_master above
        return self.query_all(f'PRAGMA table_info("{table_name}")')

    def get_stats(self) -> Dict[str, Any]:
        """Table names and file size in bytes (0 when ephemeral)."""
        tables = [
            row["name"]
            for row in self.query_all(
                "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
            )
        ]
        size = 0
        if not self.is_ephemeral and Path(self.path).exists():
            size = Path(self.path).stat().st_size
        return {"path": self.path, "tables": tables, "size": size}

    def backup(self, backup_path: str) -> bool:
        """Copy the store to ``backup_path`` with SQLite's online backup.

        Returns:
            False for an ephemeral store (nothing is written), else True
        """
        conn = self._require_connection()
        if self.is_ephemeral:
            logger.warning("Cannot back up an in-memory store to a file")
            return False

        Path(backup_path).parent.mkdir(parents=True, exist_ok=True)
        target = sqlite3.connect(backup_path)
        try:
            conn.backup(target)
        finally:
            target.close()
        logger.info("Store backed up to %s", backup_path)
        return True

    def _require_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise ConnectError(
                "Store is not initialized",
                remediation="Call SchemaStore.initialize() before using the store",
            )
        return self._conn
