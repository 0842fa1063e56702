"""Backend capability types for dbmigrate.

This module defines the closed set of key-value backend identifiers and the
immutable capability descriptors built once at process start:
- BackendType: Enum of every backend identifier dbmigrate knows about
- BackendDescriptor: What a backend needs and whether it can be opened here
- BackendSet: Immutable collection of descriptors passed to the detector
  and the migrator
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

__all__ = [
    "BackendType",
    "BackendDescriptor",
    "BackendSet",
    "BackendError",
    "UnsupportedBackendError",
    "UNKNOWN_BACKEND",
]

# Returned by detection when no signature matches. Never a valid backend.
UNKNOWN_BACKEND = "unknown"


class BackendError(Exception):
    """Raised when a key-value store cannot be opened or used."""

    pass


class UnsupportedBackendError(BackendError, ValueError):
    """Raised when a backend identifier is unknown or not available."""

    pass


class BackendType(str, Enum):
    """Backend identifiers.

    - GOLEVELDB: LevelDB on-disk format (default LevelDB flavor)
    - CLEVELDB: LevelDB on-disk format, gated behind a capability flag
    - ROCKSDB: RocksDB on-disk format
    - BADGERDB: Badger on-disk format (detection only)
    - BOLTDB: Single-file bolt format (detection only)
    - SQLITE: sqlite file holding a single key/value table
    """

    GOLEVELDB = "goleveldb"
    CLEVELDB = "cleveldb"
    ROCKSDB = "rocksdb"
    BADGERDB = "badgerdb"
    BOLTDB = "boltdb"
    SQLITE = "sqlite"


@dataclass(frozen=True, slots=True)
class BackendDescriptor:
    """Capability descriptor for one backend.

    Attributes:
        backend: The backend identifier
        module: Python module required to open stores (None if none exists)
        gated: True if the backend must be enabled explicitly
        available: True if stores of this backend can be opened in this process
    """

    backend: BackendType
    module: str | None
    gated: bool = False
    available: bool = False

    @property
    def name(self) -> str:
        return self.backend.value


@dataclass(frozen=True)
class BackendSet:
    """Immutable set of backend descriptors.

    Constructed once (see dbmigrate.backends.factory.build_backend_set) and
    passed by reference wherever backend availability matters.
    """

    descriptors: tuple[BackendDescriptor, ...]

    def __iter__(self) -> Iterator[BackendDescriptor]:
        return iter(self.descriptors)

    def __contains__(self, name: object) -> bool:
        return self.get(str(name)) is not None

    def get(self, name: str) -> BackendDescriptor | None:
        """Get the descriptor for a backend identifier, or None if unknown."""
        for descriptor in self.descriptors:
            if descriptor.name == name:
                return descriptor
        return None

    def is_available(self, name: str) -> bool:
        descriptor = self.get(name)
        return descriptor is not None and descriptor.available

    def available_names(self) -> list[str]:
        """Names of every backend that can be opened, in priority order."""
        return [d.name for d in self.descriptors if d.available]

    def require(self, name: str) -> BackendType:
        """Validate a backend identifier.

        Args:
            name: Backend identifier (case-insensitive)

        Returns:
            The matching BackendType

        Raises:
            UnsupportedBackendError: If the identifier is unknown or the
                backend cannot be opened in this process.
        """
        normalized = name.strip().lower()
        descriptor = self.get(normalized)
        valid = ", ".join(self.available_names())
        if descriptor is None:
            raise UnsupportedBackendError(
                f"invalid backend type: {name!r} - must be one of: {valid}"
            )
        if not descriptor.available:
            raise UnsupportedBackendError(
                f"backend type {normalized!r} is not available in this installation "
                f"- must be one of: {valid}"
            )
        return descriptor.backend
