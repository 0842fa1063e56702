"""SQLite key-value store for dbmigrate.

Stores one database as a single sqlite file inside a `<name>.db/` directory:

    <directory>/<name>.db/kv.sqlite3

The file holds one table, kv(key BLOB PRIMARY KEY, value BLOB). A NULL value
is reported as None by iterate() and get() so that callers can exercise the
"key present without a value" case.

Example:
    >>> store = SQLiteKVStore("application", Path("~/.node/data"))
    >>> store.set(b"key", b"value")
    >>> list(store.iterate())
    [(b'key', b'value')]
"""

import logging
import sqlite3
from pathlib import Path
from typing import Iterator

from dbmigrate.backends.types import BackendError
from dbmigrate.constants import DB_SUFFIX, SQLITE_FILE_NAME

logger = logging.getLogger(__name__)


class SQLiteBatch:
    """Write batch for SQLiteKVStore.

    Pairs are held in memory and inserted in a single transaction on write().
    """

    def __init__(self, store: "SQLiteKVStore"):
        self._store = store
        self._pending: list[tuple[bytes, bytes]] = []

    def set(self, key: bytes, value: bytes) -> None:
        if not key:
            raise BackendError("key cannot be empty")
        if value is None:
            raise BackendError("value cannot be None")
        self._pending.append((key, value))

    def write(self) -> None:
        self._store._write_pairs(self._pending)
        self._pending = []

    def close(self) -> None:
        self._pending = []

    def __len__(self) -> int:
        return len(self._pending)


class SQLiteKVStore:
    """SQLite-backed key-value store.

    Args:
        name: Database name (without the .db suffix)
        directory: Directory that holds the `<name>.db` database directory
        create_if_missing: Create the database if it does not exist

    Attributes:
        path: Path to the database directory
        _conn: SQLite connection
    """

    def __init__(self, name: str, directory: Path | str, create_if_missing: bool = True):
        """Open or create the store.

        Raises:
            BackendError: If the database cannot be opened, or does not
                exist and create_if_missing is False
        """
        self.path = str(Path(directory) / f"{name}{DB_SUFFIX}")
        db_file = Path(self.path) / SQLITE_FILE_NAME
        if not create_if_missing and not db_file.is_file():
            raise BackendError(f"sqlite store at {self.path} does not exist")

        try:
            Path(self.path).mkdir(parents=True, exist_ok=True)
            self._conn: sqlite3.Connection | None = sqlite3.connect(str(db_file))
            # Single writer, no concurrent readers during a migration
            self._conn.execute("PRAGMA journal_mode = WAL")
            self._conn.execute("PRAGMA synchronous = NORMAL")
            self._init_schema()
            logger.debug(f"Opened sqlite store at {self.path}")
        except (OSError, sqlite3.Error) as e:
            raise BackendError(f"Failed to open sqlite store at {self.path}: {e}") from e

    def _init_schema(self) -> None:
        """Initialize database schema."""
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key BLOB PRIMARY KEY,
                value BLOB
            )
        """
        )
        self._conn.commit()

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise BackendError(f"sqlite store at {self.path} is closed")
        return self._conn

    def _write_pairs(self, pairs: list[tuple[bytes, bytes]]) -> None:
        if not pairs:
            return
        conn = self._connection()
        try:
            conn.executemany(
                "INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)",
                pairs,
            )
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise BackendError(f"Failed to write {len(pairs)} pairs to {self.path}: {e}") from e

    def iterate(self) -> Iterator[tuple[bytes, bytes | None]]:
        cursor = self._connection().execute("SELECT key, value FROM kv ORDER BY key")
        try:
            for key, value in cursor:
                yield bytes(key), None if value is None else bytes(value)
        except sqlite3.Error as e:
            raise BackendError(f"Failed to iterate {self.path}: {e}") from e
        finally:
            cursor.close()

    def get(self, key: bytes) -> bytes | None:
        row = self._connection().execute("SELECT value FROM kv WHERE key = ?", (key,)).fetchone()
        if row is None or row[0] is None:
            return None
        return bytes(row[0])

    def has(self, key: bytes) -> bool:
        row = self._connection().execute("SELECT 1 FROM kv WHERE key = ?", (key,)).fetchone()
        return row is not None

    def set(self, key: bytes, value: bytes | None) -> None:
        """Write a single key.

        Unlike batches, a None value is accepted here and stored as NULL.
        """
        if not key:
            raise BackendError("key cannot be empty")
        conn = self._connection()
        try:
            conn.execute("INSERT OR REPLACE INTO kv (key, value) VALUES (?, ?)", (key, value))
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            raise BackendError(f"Failed to set key in {self.path}: {e}") from e

    def new_batch(self) -> SQLiteBatch:
        self._connection()
        return SQLiteBatch(self)

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "SQLiteKVStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
