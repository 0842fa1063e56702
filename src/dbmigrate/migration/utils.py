"""Path and formatting helpers shared by the migration components."""

import os

from dbmigrate.constants import DB_SUFFIX


def split_db_path(*elem: str) -> tuple[str, str]:
    """Split a database path into its containing directory and db name.

    The elements are joined into a full path to a db directory, which is then
    broken into the directory holding it and the name of the db. Only a
    trailing ".db" is stripped from the name.

    Args:
        *elem: Path elements, e.g. a data directory and a relative db path

    Returns:
        Tuple of (containing directory, db name)

    Example:
        >>> split_db_path("/foo", "bar/baz.db")
        ('/foo/bar', 'baz')
        >>> split_db_path("/foo/bar", "baz.db2")
        ('/foo/bar', 'baz.db2')
    """
    base, name = os.path.split(os.path.join(*elem))
    return os.path.normpath(base) if base else ".", name.removesuffix(DB_SUFFIX)


def dir_exists(path: str | os.PathLike) -> bool:
    return os.path.isdir(path)


def file_exists(path: str | os.PathLike) -> bool:
    return os.path.isfile(path)


def comma_string(value: int) -> str:
    """Format a non-negative integer with thousands separators (1234 -> "1,234")."""
    return f"{value:,}"
