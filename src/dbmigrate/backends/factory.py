"""Factory for backend capability sets and key-value stores.

This module provides:
- build_backend_set: check this process for the modules each backend needs
  and return the immutable BackendSet used for the rest of the run
- open_store: open (or create) a store of a given backend

Native bindings are imported lazily in open_store so a missing optional
dependency only matters for the backends that need it.
"""

import importlib.util
import logging
from pathlib import Path
from typing import TYPE_CHECKING

from dbmigrate.backends.types import (
    BackendDescriptor,
    BackendSet,
    BackendType,
    UnsupportedBackendError,
)

if TYPE_CHECKING:
    from dbmigrate.backends.provider import KVStore

logger = logging.getLogger(__name__)

__all__ = ["build_backend_set", "open_store"]

# Priority order matters: detection of the ambiguous LevelDB signature picks
# the first available LevelDB flavor in this order.
_BACKEND_MODULES: tuple[tuple[BackendType, str | None, bool], ...] = (
    (BackendType.GOLEVELDB, "plyvel", False),
    (BackendType.CLEVELDB, "plyvel", True),
    (BackendType.ROCKSDB, "rocksdict", False),
    (BackendType.BADGERDB, None, False),
    (BackendType.BOLTDB, None, False),
    (BackendType.SQLITE, "sqlite3", False),
)


def _module_installed(module: str) -> bool:
    return importlib.util.find_spec(module) is not None


def build_backend_set(enable_cleveldb: bool = False) -> BackendSet:
    """Build the backend capability set for this process.

    Args:
        enable_cleveldb: Make the gated cleveldb backend available (when its
            bindings are installed).

    Returns:
        Immutable BackendSet, in detection priority order.
    """
    descriptors = []
    for backend, module, gated in _BACKEND_MODULES:
        available = module is not None and _module_installed(module)
        if gated and not enable_cleveldb:
            available = False
        descriptors.append(
            BackendDescriptor(backend=backend, module=module, gated=gated, available=available)
        )

    backend_set = BackendSet(descriptors=tuple(descriptors))
    logger.debug(f"Available backends: {', '.join(backend_set.available_names())}")
    return backend_set


def open_store(
    backend: BackendType | str,
    name: str,
    directory: Path | str,
    *,
    create_if_missing: bool = True,
) -> "KVStore":
    """Open or create a key-value store.

    Args:
        backend: Backend identifier.
        name: Database name without the .db suffix.
        directory: Directory that holds the database directory.
        create_if_missing: Create the database if it does not exist. When
            False a missing database raises BackendError.

    Returns:
        An instance implementing the KVStore protocol.

    Raises:
        UnsupportedBackendError: If no store implementation exists for the backend.
        ImportError: If the backend's bindings are not installed.
        BackendError: If the store cannot be opened.

    Example:
        >>> store = open_store("goleveldb", "application", "/home/node/data")
        >>> store.close()
    """
    match BackendType(backend):
        case BackendType.GOLEVELDB | BackendType.CLEVELDB:
            try:
                from dbmigrate.backends.leveldb_store import LevelDBKVStore
            except ImportError as e:
                raise ImportError(
                    "LevelDB backends require plyvel. "
                    "Install with: pip install 'dbmigrate[leveldb]'"
                ) from e
            return LevelDBKVStore(name, directory, create_if_missing)

        case BackendType.ROCKSDB:
            try:
                from dbmigrate.backends.rocksdb_store import RocksDBKVStore
            except ImportError as e:
                raise ImportError(
                    "RocksDB backend requires rocksdict. "
                    "Install with: pip install 'dbmigrate[rocksdb]'"
                ) from e
            return RocksDBKVStore(name, directory, create_if_missing)

        case BackendType.SQLITE:
            from dbmigrate.backends.sqlite_store import SQLiteKVStore

            return SQLiteKVStore(name, directory, create_if_missing)

        case _:
            raise UnsupportedBackendError(
                f"no store implementation for backend {BackendType(backend).value!r}"
            )
