"""Key-value store protocol for pluggable backends.

This module defines the KVStore and KVBatch protocols that allow different
storage engines (LevelDB, RocksDB, sqlite) to be used interchangeably by the
batch converter.

API Contract:
    - iterate() -> Iterator[tuple[bytes, bytes | None]] - full forward scan
    - new_batch() -> KVBatch - pending writes flushed together
    - get/set - single key access
    - close() - release the store
"""

from typing import Iterator, Protocol, runtime_checkable

__all__ = ["KVStore", "KVBatch"]


@runtime_checkable
class KVBatch(Protocol):
    """Protocol for an in-memory batch of pending writes.

    A batch holds writes until write() is called. After write() the batch
    is empty and may be reused or closed.
    """

    def set(self, key: bytes, value: bytes) -> None:
        """Queue a key/value pair.

        Args:
            key: Key bytes. Must not be empty.
            value: Value bytes. May be empty, never None.
        """
        ...

    def write(self) -> None:
        """Durably write all queued pairs to the store.

        Raises:
            BackendError: If the write fails.
        """
        ...

    def close(self) -> None:
        """Discard queued pairs and release resources. Idempotent."""
        ...

    def __len__(self) -> int:
        """Number of queued pairs."""
        ...


@runtime_checkable
class KVStore(Protocol):
    """Protocol defining the interface for key-value stores.

    Required Methods:
        iterate: Forward iteration over the full key range
        get: Read a single key
        set: Write a single key
        new_batch: Create a write batch
        close: Release the store

    Example:
        >>> with open_store(BackendType.SQLITE, "application", data_dir) as store:
        ...     store.set(b"k", b"v")
        ...     for key, value in store.iterate():
        ...         ...
    """

    path: str

    def iterate(self) -> Iterator[tuple[bytes, bytes | None]]:
        """Iterate over every key/value pair in backend order.

        The returned iterator holds backend resources; call its close()
        method (or exhaust it) to release them.

        Yields:
            (key, value) tuples. value is None only when the backend stores
            a key without a value.
        """
        ...

    def get(self, key: bytes) -> bytes | None:
        ...

    def set(self, key: bytes, value: bytes) -> None:
        ...

    def new_batch(self) -> KVBatch:
        ...

    def close(self) -> None:
        """Release the store. Idempotent."""
        ...

    def __enter__(self) -> "KVStore":
        ...

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        ...
