"""Tests for data directory classification."""

from pathlib import Path

import pytest

from dbmigrate.migration.classifier import (
    ClassificationError,
    Partitioned,
    WholeDirectoryIsDatabase,
    classify_directory,
    get_data_dir_contents,
)


def build_tree(root: Path, dirs: list[str], files: list[str]) -> Path:
    """Create the given directories and empty files under root."""
    root.mkdir(parents=True, exist_ok=True)
    for d in dirs:
        (root / d).mkdir(parents=True, exist_ok=True)
    for f in files:
        (root / f).parent.mkdir(parents=True, exist_ok=True)
        (root / f).write_bytes(b"")
    return root


@pytest.fixture
def standard_tree(tmp_path: Path) -> Path:
    """Data directory with databases, nested databases and plain entries.

    Layout:
        dbdir1.db/, dbdir2/MANIFEST, not-a-db-2.txt,
        subdir1/{dbdir3.db/, dbdir4/MANIFEST-000001, not-a-db-1.txt},
        subdir2/{empty, not-a-db.db-file}, subdir3/
    """
    return build_tree(
        tmp_path / "data",
        dirs=["dbdir1.db", "subdir1/dbdir3.db", "subdir3"],
        files=[
            "dbdir1.db/CURRENT",
            "dbdir2/MANIFEST",
            "dbdir2/000001.sst",
            "not-a-db-2.txt",
            "subdir1/dbdir4/MANIFEST-000001",
            "subdir1/not-a-db-1.txt",
            "subdir2/empty",
            "subdir2/not-a-db.db-file",
        ],
    )


class TestGetDataDirContents:
    """Test partitioning a data directory."""

    def test_standard_case(self, standard_tree: Path) -> None:
        """Test databases and other entries in sorted, nested order."""
        dbs, others = get_data_dir_contents(standard_tree)

        assert dbs == ["dbdir1.db", "dbdir2", "subdir1/dbdir3.db", "subdir1/dbdir4"]
        assert others == ["not-a-db-2.txt", "subdir1/not-a-db-1.txt", "subdir2", "subdir3"]

    def test_partition(self, standard_tree: Path) -> None:
        """Test no path is both a database and an other entry, or inside one."""
        dbs, others = get_data_dir_contents(standard_tree)

        assert not set(dbs) & set(others)
        for other in others:
            assert not any(other.startswith(db + "/") for db in dbs)

    def test_empty_dir(self, tmp_path: Path) -> None:
        data = build_tree(tmp_path / "data", [], [])
        assert get_data_dir_contents(data) == ([], [])

    def test_empty_db_dir(self, tmp_path: Path) -> None:
        """Test an empty .db directory is still a database."""
        data = build_tree(tmp_path / "data", ["application.db"], [])
        assert get_data_dir_contents(data) == (["application.db"], [])

    def test_db_file_is_not_a_database(self, tmp_path: Path) -> None:
        """Test only directories with the .db suffix are databases."""
        data = build_tree(tmp_path / "data", [], ["application.db"])
        assert get_data_dir_contents(data) == ([], ["application.db"])

    def test_no_descent_into_db_dir(self, tmp_path: Path) -> None:
        data = build_tree(
            tmp_path / "data", ["state.db/nested.db"], ["state.db/MANIFEST-000001"]
        )
        assert get_data_dir_contents(data) == (["state.db"], [])

    def test_subdir_without_databases(self, tmp_path: Path) -> None:
        """Test a directory holding no databases is copied as one entry."""
        data = build_tree(tmp_path / "data", ["wasm/cache"], ["wasm/code/a.wasm", "wasm/b.wasm"])
        assert get_data_dir_contents(data) == ([], ["wasm"])

    def test_root_is_database(self, tmp_path: Path) -> None:
        data = build_tree(tmp_path / "data", ["sub.db"], ["MANIFEST-000001"])
        with pytest.raises(ClassificationError, match="itself a database"):
            get_data_dir_contents(data)

    def test_missing_dir(self, tmp_path: Path) -> None:
        with pytest.raises(ClassificationError, match="error reading"):
            get_data_dir_contents(tmp_path / "missing")

    def test_not_a_directory(self, tmp_path: Path) -> None:
        path = tmp_path / "file"
        path.write_bytes(b"")
        with pytest.raises(ClassificationError):
            get_data_dir_contents(path)


class TestClassifyDirectory:
    """Test the tagged recursive result."""

    def test_whole_directory(self, tmp_path: Path) -> None:
        """Test a MANIFEST file marks the scanned directory as a database."""
        data = build_tree(tmp_path / "tx_index", [], ["000001.vlog", "KEYREGISTRY", "MANIFEST"])
        assert classify_directory(data) == WholeDirectoryIsDatabase()

    def test_manifest_discards_partial_results(self, tmp_path: Path) -> None:
        """Test entries seen before the MANIFEST file are not reported."""
        data = build_tree(tmp_path / "d", ["A.db"], ["CURRENT", "MANIFEST-000002"])
        assert isinstance(classify_directory(data), WholeDirectoryIsDatabase)

    def test_partitioned(self, tmp_path: Path) -> None:
        data = build_tree(tmp_path / "data", ["a.db"], ["b.txt"])
        assert classify_directory(data) == Partitioned(databases=["a.db"], others=["b.txt"])

    def test_deep_nesting(self, tmp_path: Path) -> None:
        data = build_tree(tmp_path / "data", ["x/y/z.db"], ["x/y/readme", "x/top"])
        assert classify_directory(data) == Partitioned(
            databases=["x/y/z.db"], others=["x/top", "x/y/readme"]
        )
