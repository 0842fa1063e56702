"""Data directory migration for dbmigrate.

This module provides the migration pipeline:
- Classifier: split a data directory into databases and other entries
- Detector: guess a database's backend from its files
- Converter: stream one database into another backend in bounded batches
- Migrator: plan, convert, copy and swap a whole data directory

Example:
    >>> from dbmigrate.backends import build_backend_set
    >>> from dbmigrate.migration import Migrator
    >>> migrator = Migrator(build_backend_set(), batch_size=256 * 1_048_576)
    >>> plan = migrator.plan("~/.node", "goleveldb", "rocksdb")
    >>> counts = migrator.execute(plan)
"""

from dbmigrate.migration.classifier import (
    ClassificationError,
    Partitioned,
    WholeDirectoryIsDatabase,
    classify_directory,
    get_data_dir_contents,
)
from dbmigrate.migration.converter import ConversionError, convert_database
from dbmigrate.migration.detector import detect_db_type
from dbmigrate.migration.migrator import (
    DatabaseEntry,
    MigrationError,
    MigrationPlan,
    MigrationState,
    Migrator,
    PlanError,
    SwapError,
)
from dbmigrate.migration.utils import split_db_path

__all__ = [
    "ClassificationError",
    "ConversionError",
    "DatabaseEntry",
    "MigrationError",
    "MigrationPlan",
    "MigrationState",
    "Migrator",
    "Partitioned",
    "PlanError",
    "SwapError",
    "WholeDirectoryIsDatabase",
    "classify_directory",
    "convert_database",
    "detect_db_type",
    "get_data_dir_contents",
    "split_db_path",
]
