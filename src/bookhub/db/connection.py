# ABOUTME: SQLite connection management for the BookHub store.
# ABOUTME: Opens or creates the database, applies schema and migrations, registers SQL helpers.

import logging
import sqlite3
from pathlib import Path

from bookhub.config import DEFAULT_DB_PATH
from bookhub.db.schema import MIGRATIONS, SCHEMA_V1
from bookhub.errors import StorageUnavailableError

logger = logging.getLogger(__name__)


def _casefold(value: str | None) -> str | None:
    """SQL function: Unicode-aware lowercasing (SQLite's lower() is ASCII-only)."""
    return value.casefold() if value is not None else None


def _schema_exists(conn: sqlite3.Connection) -> bool:
    """Check if the schema has already been applied."""
    cursor = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' AND name='schema_version'"
    )
    return cursor.fetchone() is not None


def _apply_schema(conn: sqlite3.Connection) -> None:
    """Execute the DDL to create all tables and indexes."""
    conn.executescript(SCHEMA_V1)


def _get_schema_version(conn: sqlite3.Connection) -> int:
    """Read the current schema version from the database."""
    cursor = conn.execute("SELECT version FROM schema_version ORDER BY version DESC LIMIT 1")
    row = cursor.fetchone()
    return row[0] if row else 0


def _apply_migrations(conn: sqlite3.Connection) -> None:
    """Apply pending schema migrations sequentially.

    No-op if the database is already at the latest version.
    """
    current = _get_schema_version(conn)
    for version, sql in MIGRATIONS:
        if version > current:
            logger.info("Applying schema migration v%d", version)
            conn.executescript(sql)


def open_store(path: Path | None = None) -> sqlite3.Connection:
    """Open or create the BookHub database.

    Creates the database file and parent directories if they don't exist,
    applies the schema on first creation and any pending migrations. The
    connection may be shared across threads; callers serialize access.

    Args:
        path: Path to the database file. Defaults to ~/.bookhub/bookhub.db.

    Returns:
        A configured sqlite3.Connection with sqlite3.Row rows.

    Raises:
        StorageUnavailableError: If the file cannot be created or opened.
    """
    db_path = path or DEFAULT_DB_PATH
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(str(db_path), check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.create_function("casefold", 1, _casefold, deterministic=True)
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA foreign_keys=ON")

        if not _schema_exists(conn):
            _apply_schema(conn)

        _apply_migrations(conn)
    except (OSError, sqlite3.Error) as exc:
        logger.error("Cannot open store at %s", db_path, exc_info=True)
        raise StorageUnavailableError(f"Cannot open store at {db_path}: {exc}") from exc

    return conn
