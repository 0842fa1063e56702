"""Tests for reading and updating db_backend in the node config."""

import tomllib
from pathlib import Path

import pytest

from dbmigrate.migration.node_config import node_config_path, read_db_backend, update_db_backend

CONFIG = """\
# This is a TOML config file.
proxy_app = "tcp://127.0.0.1:26658"
moniker = "node0"

# Database backend: goleveldb | cleveldb | boltdb | rocksdb | badgerdb
db_backend = "goleveldb"

db_dir = "data"

[rpc]
laddr = "tcp://127.0.0.1:26657"
"""


def write_config(home: Path, text: str) -> Path:
    path = node_config_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class TestReadDBBackend:
    """Test reading the configured backend."""

    def test_read(self, home: Path) -> None:
        write_config(home, CONFIG)
        assert read_db_backend(home) == "goleveldb"

    def test_lower_cased(self, home: Path) -> None:
        write_config(home, 'db_backend = "RocksDB"\n')
        assert read_db_backend(home) == "rocksdb"

    def test_missing_file(self, home: Path) -> None:
        assert read_db_backend(home) is None

    def test_missing_key(self, home: Path) -> None:
        write_config(home, 'moniker = "node0"\n')
        assert read_db_backend(home) is None

    def test_invalid_toml(self, home: Path) -> None:
        write_config(home, "db_backend = \n")
        with pytest.raises(tomllib.TOMLDecodeError):
            read_db_backend(home)


class TestUpdateDBBackend:
    """Test rewriting the db_backend line in place."""

    def test_update(self, home: Path) -> None:
        """Test only the db_backend value changes."""
        path = write_config(home, CONFIG)

        assert update_db_backend(home, "rocksdb")

        assert path.read_text() == CONFIG.replace('db_backend = "goleveldb"', 'db_backend = "rocksdb"')
        assert read_db_backend(home) == "rocksdb"

    def test_single_quotes_and_comment(self, home: Path) -> None:
        path = write_config(home, "db_backend   =   'goleveldb'  # set by init\n")

        assert update_db_backend(home, "sqlite")

        assert path.read_text() == "db_backend   =   'sqlite'  # set by init\n"

    def test_missing_file(self, home: Path) -> None:
        assert not update_db_backend(home, "rocksdb")
        assert not node_config_path(home).exists()

    def test_missing_key(self, home: Path) -> None:
        path = write_config(home, 'moniker = "node0"\n')

        assert not update_db_backend(home, "rocksdb")
        assert path.read_text() == 'moniker = "node0"\n'

    def test_key_only_in_table(self, home: Path) -> None:
        """Test a db_backend inside a table is neither read nor rewritten."""
        text = '[storage]\ndb_backend = "goleveldb"\n'
        path = write_config(home, text)

        assert read_db_backend(home) is None
        assert not update_db_backend(home, "rocksdb")
        assert path.read_text() == text

    def test_top_level_key_before_tables(self, home: Path) -> None:
        """Test only the top-level db_backend changes when a table has one too."""
        text = 'db_backend = "goleveldb"\n\n[storage]\ndb_backend = "goleveldb"\n'
        path = write_config(home, text)

        assert update_db_backend(home, "rocksdb")

        assert path.read_text() == (
            'db_backend = "rocksdb"\n\n[storage]\ndb_backend = "goleveldb"\n'
        )
        assert read_db_backend(home) == "rocksdb"
