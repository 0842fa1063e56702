"""Pytest configuration and shared fixtures for dbmigrate tests.

This module provides reusable fixtures for testing:
- env_setup: (autouse) Clears DBMIGRATE_* variables and runs in a temp cwd
- backends: Backend capability set for this process
- home: Node home directory with an empty data/ directory
- make_sqlite_db: Factory creating populated sqlite databases
- read_pairs: Reads every key/value pair of a store

Usage:
    def test_something(home, make_sqlite_db):
        make_sqlite_db(home / "data", "application", {b"k": b"v"})
"""

import os
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from dbmigrate.backends import BackendSet, build_backend_set, open_store
from dbmigrate.backends.sqlite_store import SQLiteKVStore


@pytest.fixture(autouse=True)
def env_setup(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Generator[None, None, None]:
    """Isolate every test from the caller's DBMIGRATE_* environment and .env file."""
    for key in list(os.environ):
        if key.startswith("DBMIGRATE_"):
            monkeypatch.delenv(key)
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    yield


@pytest.fixture
def backends() -> BackendSet:
    """Backend set with whatever bindings are installed (cleveldb disabled)."""
    return build_backend_set()


@pytest.fixture
def home(tmp_path: Path) -> Path:
    """Create a node home directory containing an empty data/ directory.

    Returns:
        Path: The home directory
    """
    home_dir = tmp_path / "home"
    (home_dir / "data").mkdir(parents=True)
    return home_dir


@pytest.fixture
def make_sqlite_db() -> Callable[..., Path]:
    """Factory creating a sqlite database populated with the given pairs.

    A None value is stored as NULL (key present, no value).

    Returns:
        Callable (directory, name, pairs) -> path of the `<name>.db` directory
    """

    def _make(directory: Path, name: str, pairs: dict[bytes, bytes | None]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        with SQLiteKVStore(name, directory) as store:
            for key, value in pairs.items():
                store.set(key, value)
        return directory / f"{name}.db"

    return _make


@pytest.fixture
def read_pairs() -> Callable[..., dict[bytes, bytes | None]]:
    """Read every pair of a store.

    Returns:
        Callable (backend, directory, name) -> {key: value}
    """

    def _read(backend: str, directory: Path, name: str) -> dict[bytes, bytes | None]:
        with open_store(backend, name, directory) as store:
            return dict(store.iterate())

    return _read


@pytest.fixture
def sample_pairs() -> dict[bytes, bytes | None]:
    """Ten key/value pairs, including an empty value and a missing value."""
    pairs: dict[bytes, bytes | None] = {
        f"key-{i:02d}".encode(): f"value-{i:02d}".encode() for i in range(8)
    }
    pairs[b"empty-value"] = b""
    pairs[b"no-value"] = None
    return pairs
