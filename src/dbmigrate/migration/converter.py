"""Batch conversion of a single database between backends.

Streams every key/value pair of one source database into a target database
of a different backend, in batches bounded by the accumulated key+value byte
length. Keys present with no value are written with an empty value so that
presence is preserved.

Batches already written are not rolled back when a later step fails. The
target lives in the staging directory, which is never swapped into place
after a failure.
"""

import logging
import os
import time
from contextlib import ExitStack, closing
from typing import Any

from dbmigrate.backends.factory import open_store
from dbmigrate.backends.types import BackendError, BackendType
from dbmigrate.constants import BYTES_PER_MB, DEFAULT_STATUS_PERIOD_SECONDS
from dbmigrate.migration.utils import comma_string, split_db_path

logger = logging.getLogger(__name__)

__all__ = ["ConversionError", "DBLogAdapter", "convert_database"]


class ConversionError(Exception):
    """Raised when a database cannot be converted.

    Attributes:
        db_name: Name of the database being converted
        step: The step that failed (e.g. "open source", "write batch")
    """

    def __init__(self, db_name: str, step: str, message: str):
        self.db_name = db_name
        self.step = step
        super().__init__(f"{db_name}: {step}: {message}")


class DBLogAdapter(logging.LoggerAdapter):
    """Prefix log messages with the database progress marker ("2/6: state.db")."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return f"{self.extra['progress']}: {msg}", kwargs


class _Progress:
    """Counters used in status log lines."""

    def __init__(self, started: float):
        self.started = started
        self.written_entries = 0
        self.batch_entries = 0
        self.batch_bytes = 0
        self.batch_index = 1

    def describe(self) -> str:
        return (
            f"batch index={comma_string(self.batch_index)}, "
            f"batch size={comma_string(self.batch_bytes // BYTES_PER_MB)}MB, "
            f"batch entries={comma_string(self.batch_entries)}, "
            f"total entries={comma_string(self.written_entries + self.batch_entries)}, "
            f"run time={time.monotonic() - self.started:.1f}s"
        )


def convert_database(
    source_data_dir: str | os.PathLike,
    target_data_dir: str | os.PathLike,
    db_dir: str,
    source_backend: BackendType | str,
    target_backend: BackendType | str,
    batch_size: int = 0,
    *,
    status_period: float = DEFAULT_STATUS_PERIOD_SECONDS,
    log: logging.Logger | logging.LoggerAdapter | None = None,
) -> int:
    """Convert one database directory from one backend to another.

    Args:
        source_data_dir: Data directory holding the source database
        target_data_dir: Data directory to create the target database in
        db_dir: Database path relative to both data directories
            (e.g. "application.db" or "snapshots/metadata.db")
        source_backend: Backend of the source database
        target_backend: Backend to create the target database with
        batch_size: Byte threshold after which a batch is written and a new
            one started. 0 means unlimited (a single batch).
        status_period: Minimum seconds between status log lines
        log: Logger to report progress on (defaults to the module logger)

    Returns:
        Number of key/value pairs written

    Raises:
        ConversionError: If any open, iterate or write step fails.
    """
    log = log or logger
    source_dir, db_name = split_db_path(os.fspath(source_data_dir), db_dir)
    target_dir, _ = split_db_path(os.fspath(target_data_dir), db_dir)
    log.info(f"Individual DB Migration: Setting up. from={source_dir}, to={target_dir}")

    progress = _Progress(time.monotonic())

    with ExitStack() as stack:
        # Nested databases (e.g. snapshots/metadata.db) need their parent created
        if os.path.normpath(target_dir) != os.path.normpath(os.fspath(target_data_dir)):
            try:
                mode = os.stat(target_data_dir).st_mode & 0o7777
                os.makedirs(target_dir, mode=mode, exist_ok=True)
            except OSError as e:
                raise ConversionError(db_name, "create target dir", str(e)) from e

        try:
            source_db = stack.enter_context(
                open_store(source_backend, db_name, source_dir, create_if_missing=False)
            )
        except (BackendError, ImportError) as e:
            raise ConversionError(db_name, "open source", str(e)) from e

        try:
            target_db = stack.enter_context(open_store(target_backend, db_name, target_dir))
        except (BackendError, ImportError) as e:
            raise ConversionError(db_name, "open target", str(e)) from e

        # Closed before the stores (ExitStack unwinds in reverse)
        iterator = stack.enter_context(closing(source_db.iterate()))
        batch = target_db.new_batch()
        stack.callback(lambda: batch.close())

        def write_batch(label: str) -> None:
            log.info(f"{label} {progress.describe()}")
            try:
                batch.write()
            except BackendError as e:
                raise ConversionError(db_name, "write batch", str(e)) from e
            progress.written_entries += progress.batch_entries

        log.info("Individual DB Migration: Starting.")
        last_status = time.monotonic()
        try:
            for key, value in iterator:
                if value is None:
                    value = b""
                try:
                    batch.set(key, value)
                except BackendError as e:
                    raise ConversionError(db_name, "set", str(e)) from e
                progress.batch_entries += 1
                progress.batch_bytes += len(key) + len(value)

                if batch_size > 0 and progress.batch_bytes >= batch_size:
                    write_batch("Writing intermediate batch.")
                    batch.close()
                    batch = target_db.new_batch()
                    progress.batch_index += 1
                    progress.batch_bytes = 0
                    progress.batch_entries = 0
                    log.info(f"Starting new batch. {progress.describe()}")

                now = time.monotonic()
                if now - last_status >= status_period:
                    log.info(f"Status {progress.describe()}")
                    last_status = now
        except BackendError as e:
            raise ConversionError(db_name, "iterate", str(e)) from e

        if len(batch) > 0:
            write_batch("Writing final batch.")

    log.info(
        f"Individual DB Migration: Done. total entries={comma_string(progress.written_entries)}"
    )
    return progress.written_entries
