"""Backend detection from on-disk file signatures.

Each backend leaves a recognizable set of files in its database directory.
Signatures are evaluated in priority order against `<dir>/<name>` and
`<dir>/<name>.db`:

1. KEYREGISTRY + MANIFEST        -> badgerdb
2. CURRENT + LOG + IDENTITY      -> rocksdb
3. CURRENT + LOG                 -> LevelDB (goleveldb, else cleveldb)
4. kv.sqlite3                    -> sqlite
5. `<dir>/<name>.db` is a file   -> boltdb

Detection is advisory. The declared source and target backends decide how
stores are actually opened.
"""

import logging
import os
from dataclasses import dataclass

from dbmigrate.backends.types import UNKNOWN_BACKEND, BackendSet, BackendType
from dbmigrate.constants import (
    CURRENT_FILE,
    DB_SUFFIX,
    IDENTITY_FILE,
    KEYREGISTRY_FILE,
    LOG_FILE,
    MANIFEST_FILE,
    SQLITE_FILE_NAME,
)
from dbmigrate.migration.utils import dir_exists, file_exists

logger = logging.getLogger(__name__)

__all__ = ["Signature", "SIGNATURES", "detect_db_type"]


@dataclass(frozen=True)
class Signature:
    """Files that must all be present for a backend to match.

    A signature with backend=None matches the LevelDB family, whose flavor is
    resolved against the available backends.
    """

    backend: BackendType | None
    files: tuple[str, ...]


SIGNATURES: tuple[Signature, ...] = (
    Signature(BackendType.BADGERDB, (KEYREGISTRY_FILE, MANIFEST_FILE)),
    Signature(BackendType.ROCKSDB, (CURRENT_FILE, LOG_FILE, IDENTITY_FILE)),
    Signature(None, (CURRENT_FILE, LOG_FILE)),
    Signature(BackendType.SQLITE, (SQLITE_FILE_NAME,)),
)


def _leveldb_flavor(backends: BackendSet | None) -> BackendType:
    # Anything cleveldb writes can be opened as goleveldb, so goleveldb wins
    # whenever both are available.
    if backends is not None:
        for flavor in (BackendType.GOLEVELDB, BackendType.CLEVELDB):
            if backends.is_available(flavor.value):
                return flavor
    return BackendType.GOLEVELDB


def detect_db_type(
    name: str, containing_dir: str | os.PathLike, backends: BackendSet | None = None
) -> tuple[str, bool]:
    """Detect the backend that created a database.

    Args:
        name: Database name, with or without the .db suffix
        containing_dir: Directory holding the database
        backends: Backend set used to resolve the LevelDB flavor

    Returns:
        Tuple of (backend identifier, found). When nothing matches the
        identifier is "unknown" and found is False.
    """
    name = name.removesuffix(DB_SUFFIX)
    candidates = [
        os.path.join(containing_dir, name),
        os.path.join(containing_dir, name + DB_SUFFIX),
    ]

    for candidate in candidates:
        if not dir_exists(candidate):
            continue
        for signature in SIGNATURES:
            if all(file_exists(os.path.join(candidate, f)) for f in signature.files):
                backend = signature.backend or _leveldb_flavor(backends)
                logger.debug(f"Detected {backend.value} at {candidate}")
                return backend.value, True

    if file_exists(os.path.join(containing_dir, name + DB_SUFFIX)):
        return BackendType.BOLTDB.value, True

    return UNKNOWN_BACKEND, False
