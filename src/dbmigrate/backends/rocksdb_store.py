"""RocksDB key-value store for dbmigrate.

Wraps rocksdict in raw mode so keys and values are plain bytes:

    <directory>/<name>.db/{CURRENT, LOG, IDENTITY, MANIFEST-*, OPTIONS-*, *.sst}
"""

import logging
from pathlib import Path
from typing import Iterator

from rocksdict import Options, Rdict, WriteBatch

from dbmigrate.backends.types import BackendError
from dbmigrate.constants import DB_SUFFIX

logger = logging.getLogger(__name__)


def _raw_options(create_if_missing: bool) -> Options:
    opt = Options(raw_mode=True)
    opt.create_if_missing(create_if_missing)
    return opt


class RocksDBBatch:
    """Write batch for RocksDBKVStore.

    rocksdict consumes a WriteBatch when it is written, so a fresh one is
    started after every write().
    """

    def __init__(self, db: Rdict):
        self._db = db
        self._batch: WriteBatch | None = WriteBatch(raw_mode=True)
        self._count = 0

    def _pending(self) -> WriteBatch:
        if self._batch is None:
            raise BackendError("rocksdb batch is closed")
        return self._batch

    def set(self, key: bytes, value: bytes) -> None:
        if not key:
            raise BackendError("key cannot be empty")
        if value is None:
            raise BackendError("value cannot be None")
        batch = self._pending()
        try:
            batch.put(key, value)
        except Exception as e:
            raise BackendError(f"Failed to queue key in rocksdb batch: {e}") from e
        self._count += 1

    def write(self) -> None:
        batch = self._pending()
        try:
            self._db.write(batch)
        except Exception as e:
            raise BackendError(f"Failed to write rocksdb batch: {e}") from e
        self._batch = WriteBatch(raw_mode=True)
        self._count = 0

    def close(self) -> None:
        self._batch = None
        self._count = 0

    def __len__(self) -> int:
        return self._count


class RocksDBKVStore:
    """RocksDB-backed key-value store.

    Args:
        name: Database name (without the .db suffix)
        directory: Directory that holds the `<name>.db` database directory
        create_if_missing: Create the database if it does not exist. When
            False a missing database raises BackendError and nothing is created.
    """

    def __init__(self, name: str, directory: Path | str, create_if_missing: bool = True):
        self.path = str(Path(directory) / f"{name}{DB_SUFFIX}")
        if not create_if_missing and not Path(self.path).is_dir():
            raise BackendError(f"rocksdb store at {self.path} does not exist")
        try:
            self._db: Rdict | None = Rdict(self.path, options=_raw_options(create_if_missing))
        except Exception as e:
            raise BackendError(f"Failed to open rocksdb store at {self.path}: {e}") from e
        logger.debug(f"Opened rocksdb store at {self.path}")

    def _handle(self) -> Rdict:
        if self._db is None:
            raise BackendError(f"rocksdb store at {self.path} is closed")
        return self._db

    def iterate(self) -> Iterator[tuple[bytes, bytes | None]]:
        it = self._handle().iter()
        try:
            it.seek_to_first()
            while it.valid():
                yield it.key(), it.value()
                it.next()
            # Raises if the underlying iterator hit an error
            it.status()
        except Exception as e:
            raise BackendError(f"Failed to iterate {self.path}: {e}") from e
        finally:
            del it

    def get(self, key: bytes) -> bytes | None:
        return self._handle().get(key)

    def set(self, key: bytes, value: bytes) -> None:
        try:
            self._handle().put(key, value)
        except Exception as e:
            raise BackendError(f"Failed to set key in {self.path}: {e}") from e

    def new_batch(self) -> RocksDBBatch:
        return RocksDBBatch(self._handle())

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None

    def __enter__(self) -> "RocksDBKVStore":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()
