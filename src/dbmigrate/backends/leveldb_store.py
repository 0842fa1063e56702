"""LevelDB key-value store for dbmigrate.

Wraps plyvel (Python bindings to the C++ LevelDB library). Both LevelDB
flavors, goleveldb and cleveldb, share the same on-disk format and are
opened through this store:

    <directory>/<name>.db/{CURRENT, LOG, LOCK, MANIFEST-*, *.ldb, *.log}
"""

import logging
from pathlib import Path
from typing import Iterator

import plyvel

from dbmigrate.backends.types import BackendError
from dbmigrate.constants import DB_SUFFIX

logger = logging.getLogger(__name__)


class LevelDBBatch:
    """Write batch for LevelDBKVStore, written with sync=True."""

    def __init__(self, db: "plyvel.DB"):
        self._batch = db.write_batch(sync=True)
        self._count = 0

    def set(self, key: bytes, value: bytes) -> None:
        if not key:
            raise BackendError("key cannot be empty")
        if value is None:
            raise BackendError("value cannot be None")
        self._batch.put(key, value)
        self._count += 1

    def write(self) -> None:
        try:
            self._batch.write()
        except plyvel.Error as e:
            raise BackendError(f"Failed to write leveldb batch: {e}") from e
        self._batch.clear()
        self._count = 0

    def close(self) -> None:
        self._batch.clear()
        self._count = 0

    def __len__(self) -> int:
        return self._count


class LevelDBKVStore:
    """LevelDB-backed key-value store.

    Args:
        name: Database name (without the .db suffix)
        directory: Directory that holds the `<name>.db` database directory
        create_if_missing: Create the database if it does not exist
    """

    def __init__(self, name: str, directory: Path | str, create_if_missing: bool = True):
        self.path = str(Path(directory) / f"{name}{DB_SUFFIX}")
        if not create_if_missing and not Path(self.path).is_dir():
            raise BackendError(f"leveldb store at {self.path} does not exist")
        try:
            self._db: plyvel.DB | None = plyvel.DB(
                self.path, create_if_missing=create_if_missing
            )
        except (plyvel.Error, OSError) as e:
            raise BackendError(f"Failed to open leveldb store at {self.path}: {e}") from e
        logger.debug(f"Opened leveldb store at {self.path}")

    def _handle(self) -> "plyvel.DB":
        if self._db is None or self._db.closed:
            raise BackendError(f"leveldb store at {self.path} is closed")
        return self._db

    def iterate(self) -> Iterator[tuple[bytes, bytes | None]]:
        it = self._handle().iterator()
        try:
            for key, value in it:
                yield key, value
        except plyvel.Error as e:
            raise BackendError(f"Failed to iterate {self.path}: {e}") from e
        finally:
            it.close()

    def get(self, key: bytes) -> bytes | None:
        return self._handle().get(key)

    def set(self, key: bytes, value: bytes) -> None:
        try:
            self._handle().put(key, value, sync=True)
        except plyvel.Error as e:
            raise BackendError(f"Failed to set key in {self.path}: {e}") from e

    def new_batch(self) -> LevelDBBatch:
        return LevelDBBatch(self._handle())

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    def __enter__(self) -> "LevelDBKVStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
