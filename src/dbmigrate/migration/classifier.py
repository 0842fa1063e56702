"""Data directory classification.

Splits a node data directory into database directories (to be converted) and
everything else (to be copied verbatim). Paths are relative to the data
directory, e.g.:

    databases: ["application.db", "blockstore.db", "snapshots/metadata.db", "state.db"]
    others:    ["cs.wal", "priv_validator_state.json", "wasm"]

Rules, applied to each directory's sorted listing:
- a directory ending in .db is a database (not descended into)
- a file starting with MANIFEST means the directory being scanned is itself a
  database (suffix-less backends such as badger); scanning stops there
- any other directory is descended into; if it holds no databases it is
  copied as a single entry
- any other file is copied
"""

import logging
import os
from dataclasses import dataclass, field

from dbmigrate.constants import DB_SUFFIX, MANIFEST_PREFIX

logger = logging.getLogger(__name__)

__all__ = [
    "ClassificationError",
    "Partitioned",
    "WholeDirectoryIsDatabase",
    "ClassifyResult",
    "classify_directory",
    "get_data_dir_contents",
]


class ClassificationError(Exception):
    """Raised when a data directory cannot be classified."""

    pass


@dataclass(frozen=True)
class WholeDirectoryIsDatabase:
    """The scanned directory is a single database."""


@dataclass(frozen=True)
class Partitioned:
    """The scanned directory split into database and non-database entries.

    Attributes:
        databases: Relative paths of database directories
        others: Relative paths of files/directories to copy
    """

    databases: list[str] = field(default_factory=list)
    others: list[str] = field(default_factory=list)


ClassifyResult = WholeDirectoryIsDatabase | Partitioned


def classify_directory(path: str | os.PathLike) -> ClassifyResult:
    """Classify the contents of one directory, recursively.

    Args:
        path: Directory to scan

    Returns:
        WholeDirectoryIsDatabase if the directory itself is a database,
        otherwise Partitioned with paths relative to the directory.

    Raises:
        ClassificationError: If any directory in the tree cannot be read.
    """
    try:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as e:
        raise ClassificationError(f"error reading {os.fspath(path)!r}: {e}") from e

    result = Partitioned()
    for entry in entries:
        if entry.is_dir():
            if entry.name.endswith(DB_SUFFIX):
                result.databases.append(entry.name)
                continue

            sub = classify_directory(entry.path)
            match sub:
                case WholeDirectoryIsDatabase():
                    result.databases.append(entry.name)
                case Partitioned(databases=[], others=_):
                    result.others.append(entry.name)
                case Partitioned(databases=sub_dbs, others=sub_others):
                    result.databases.extend(os.path.join(entry.name, d) for d in sub_dbs)
                    result.others.extend(os.path.join(entry.name, o) for o in sub_others)

        elif entry.name.startswith(MANIFEST_PREFIX):
            return WholeDirectoryIsDatabase()

        else:
            result.others.append(entry.name)

    return result


def get_data_dir_contents(data_dir: str | os.PathLike) -> tuple[list[str], list[str]]:
    """Get a data directory's database directories and non-database entries.

    Args:
        data_dir: The data directory to classify

    Returns:
        Tuple of (database paths, other paths), relative to data_dir

    Raises:
        ClassificationError: If the tree cannot be read, or if data_dir is
            itself a database rather than a directory of databases.
    """
    result = classify_directory(data_dir)
    if isinstance(result, WholeDirectoryIsDatabase):
        raise ClassificationError(
            f"{os.fspath(data_dir)!r} is itself a database, expected a directory of databases"
        )
    logger.debug(
        f"Classified {os.fspath(data_dir)}: {len(result.databases)} databases, "
        f"{len(result.others)} other entries"
    )
    return result.databases, result.others
