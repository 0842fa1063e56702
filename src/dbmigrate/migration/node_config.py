"""Read and update the db_backend setting in a node's config.toml.

The node config lives at `<home>/config/config.toml` and holds a top-level
`db_backend = "<type>"` line naming the backend of the data directory.
"""

import logging
import os
import re
import tomllib
from pathlib import Path

from dbmigrate.constants import DB_BACKEND_KEY, NODE_CONFIG_PATH

logger = logging.getLogger(__name__)

_DB_BACKEND_LINE = re.compile(
    rf'^(?P<prefix>\s*{DB_BACKEND_KEY}\s*=\s*)(?P<quote>["\'])[^"\']*(?P=quote)(?P<suffix>.*)$',
    re.MULTILINE,
)
_TABLE_HEADER = re.compile(r"^\s*\[", re.MULTILINE)


def node_config_path(home: str | os.PathLike) -> Path:
    return Path(home).joinpath(*NODE_CONFIG_PATH)


def read_db_backend(home: str | os.PathLike) -> str | None:
    """Read the configured db_backend.

    Args:
        home: Node home directory

    Returns:
        The lower-cased backend identifier, or None if the config file or
        the key does not exist.

    Raises:
        tomllib.TOMLDecodeError: If the config file is not valid TOML.
    """
    path = node_config_path(home)
    if not path.is_file():
        return None
    with open(path, "rb") as f:
        config = tomllib.load(f)
    value = config.get(DB_BACKEND_KEY)
    return str(value).strip().lower() if value else None


def update_db_backend(home: str | os.PathLike, backend: str) -> bool:
    """Set db_backend in the node config, leaving the rest of the file as is.

    Args:
        home: Node home directory
        backend: New backend identifier

    Returns:
        True if the file was updated, False if there was no config file or
        no db_backend line to update.
    """
    path = node_config_path(home)
    if not path.is_file():
        return False
    text = path.read_text(encoding="utf-8")
    # Only the top-level key is read, so only lines before the first table count
    header = _TABLE_HEADER.search(text)
    split = header.start() if header else len(text)
    top, rest = text[:split], text[split:]
    updated, count = _DB_BACKEND_LINE.subn(
        lambda m: f"{m['prefix']}{m['quote']}{backend}{m['quote']}{m['suffix']}",
        top,
        count=1,
    )
    if count == 0:
        return False
    path.write_text(updated + rest, encoding="utf-8")
    logger.info(f"Updated {DB_BACKEND_KEY} in {path} to {backend}")
    return True
