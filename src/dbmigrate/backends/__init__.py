"""Key-value backends for dbmigrate.

Available stores:
    - goleveldb / cleveldb: LevelDB via plyvel (cleveldb only when enabled)
    - rocksdb: RocksDB via rocksdict
    - sqlite: single-table sqlite file (stdlib)

badgerdb and boltdb are recognized by detection but cannot be opened.

Usage:
    >>> from dbmigrate.backends import build_backend_set, open_store
    >>> backends = build_backend_set()
    >>> backend = backends.require("goleveldb")
    >>> with open_store(backend, "application", data_dir) as store:
    ...     pairs = list(store.iterate())
"""

from .factory import build_backend_set, open_store
from .provider import KVBatch, KVStore
from .types import (
    UNKNOWN_BACKEND,
    BackendDescriptor,
    BackendError,
    BackendSet,
    BackendType,
    UnsupportedBackendError,
)

__all__ = [
    "BackendDescriptor",
    "BackendError",
    "BackendSet",
    "BackendType",
    "KVBatch",
    "KVStore",
    "UNKNOWN_BACKEND",
    "UnsupportedBackendError",
    "build_backend_set",
    "open_store",
]
