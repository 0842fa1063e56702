"""Migration orchestrator.

Drives a full data directory migration:

1. plan: validate backends, classify `<home>/data`, detect each database's
   backend, allocate the staging directory
2. execute:
   a. convert each database into the staging directory
   b. copy every non-database entry into the staging directory
   c. move `<home>/data` to the backup location, then move the staging
      directory to `<home>/data`

Nothing outside the staging directory is touched until step 2c. The two
renames in 2c are not atomic as a pair: if the second one fails the node has
no data directory until an operator moves one back (see SwapError).

States: planned -> converting -> copying -> swapping -> done, with failed
reachable from every state except done.
"""

import logging
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from dbmigrate.backends.types import UNKNOWN_BACKEND, BackendSet
from dbmigrate.constants import (
    BYTES_PER_MB,
    DATA_DIR_NAME,
    DB_SUFFIX,
    DEFAULT_DIR_DATE_FORMAT,
    DEFAULT_PERMISSIONS,
    DEFAULT_STATUS_PERIOD_SECONDS,
    STAGING_PREFIX,
)
from dbmigrate.migration.classifier import ClassificationError, get_data_dir_contents
from dbmigrate.migration.converter import ConversionError, DBLogAdapter, convert_database
from dbmigrate.migration.detector import detect_db_type
from dbmigrate.migration.utils import comma_string, dir_exists, split_db_path

logger = logging.getLogger(__name__)

__all__ = [
    "DatabaseEntry",
    "MigrationError",
    "MigrationPlan",
    "MigrationState",
    "Migrator",
    "PlanError",
    "SwapError",
]


class MigrationError(Exception):
    """Raised when a migration cannot be planned or executed."""

    pass


class PlanError(MigrationError):
    """Raised for invalid input, before anything on disk is changed."""

    pass


class SwapError(MigrationError):
    """Raised when the final directory swap fails half way.

    Attributes:
        backup_data_dir: Where the original data directory now lives
        staging_data_dir: Where the converted data directory now lives
    """

    def __init__(self, message: str, backup_data_dir: str, staging_data_dir: str):
        self.backup_data_dir = backup_data_dir
        self.staging_data_dir = staging_data_dir
        super().__init__(message)


class MigrationState(str, Enum):
    """Lifecycle of a MigrationPlan."""

    PLANNED = "planned"
    CONVERTING = "converting"
    COPYING = "copying"
    SWAPPING = "swapping"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class DatabaseEntry:
    """One database directory to convert.

    Attributes:
        path: Path relative to the data directory (e.g. "snapshots/metadata.db")
        backend: Declared source backend
        detected: Backend detected from the files on disk ("unknown" if none)
    """

    path: str
    backend: str
    detected: str = UNKNOWN_BACKEND

    @property
    def name(self) -> str:
        return self.path.removesuffix(DB_SUFFIX)


@dataclass
class MigrationPlan:
    """Everything needed to execute one migration run.

    Attributes:
        home_path: Node home directory
        source_backend: Backend of the existing databases
        target_backend: Backend to convert to
        source_data_dir: Existing data directory (`<home>/data`)
        staging_data_dir: Freshly allocated directory the conversion writes to
        backup_data_dir: Where the existing data directory is moved when done
        databases: Database directories to convert, in classifier order
        others: Non-database entries to copy
        batch_size: Batch threshold in bytes (0 = unlimited)
        permissions: Mode for directories created by the migration
        state: Current lifecycle state
        counts: Entries written per database path
    """

    home_path: str
    source_backend: str
    target_backend: str
    source_data_dir: str
    staging_data_dir: str
    backup_data_dir: str
    databases: list[DatabaseEntry]
    others: list[str]
    batch_size: int = 0
    permissions: int = DEFAULT_PERMISSIONS
    state: MigrationState = MigrationState.PLANNED
    counts: dict[str, int] = field(default_factory=dict)
    time_started: Optional[datetime] = None
    time_finished: Optional[datetime] = None


class Migrator:
    """Plans and executes data directory migrations.

    Args:
        backends: Backend capability set for this process
        batch_size: Batch threshold in bytes (0 = unlimited)
        status_period: Minimum seconds between status log lines
        dir_date_format: strftime format for dated directory names
        staging_dir: Directory to create the staging data directory in
            (defaults to the home path)
        permissions: Mode for created directories (defaults to the source
            data directory's mode)
        now: Clock used for dated directory names
    """

    def __init__(
        self,
        backends: BackendSet,
        *,
        batch_size: int = 0,
        status_period: float = DEFAULT_STATUS_PERIOD_SECONDS,
        dir_date_format: str = DEFAULT_DIR_DATE_FORMAT,
        staging_dir: Optional[str | os.PathLike] = None,
        permissions: Optional[int] = None,
        now: Callable[[], datetime] = datetime.now,
    ):
        if batch_size < 0:
            raise ValueError(f"batch_size cannot be negative, got {batch_size}")
        if status_period < 1:
            raise ValueError(f"status period {status_period}s cannot be less than 1s")
        if not dir_date_format:
            raise ValueError("dir_date_format cannot be empty")

        self.backends = backends
        self.batch_size = batch_size
        self.status_period = status_period
        self.dir_date_format = dir_date_format
        self.staging_dir = os.fspath(staging_dir) if staging_dir else None
        self.permissions = permissions
        self._now = now

    # =========================================================================
    # Planning
    # =========================================================================

    def plan(
        self,
        home_path: str | os.PathLike,
        source_backend: str,
        target_backend: str,
        backup_dir: Optional[str | os.PathLike] = None,
    ) -> MigrationPlan:
        """Build a migration plan.

        Args:
            home_path: Node home directory (contains data/)
            source_backend: Declared backend of the existing databases
            target_backend: Backend to convert to
            backup_dir: Explicit backup data directory. Defaults to
                `<home>/data-<timestamp>-<source backend>`.

        Returns:
            A MigrationPlan in the planned state, with its staging directory
            created.

        Raises:
            PlanError: If the input is invalid or there is nothing to migrate.
                Nothing on disk is changed in that case.
        """
        try:
            source = self.backends.require(source_backend).value
            target = self.backends.require(target_backend).value
        except ValueError as e:
            raise PlanError(str(e)) from e
        if source == target:
            raise PlanError(f"source and target backend are both {source!r}")

        home = os.path.abspath(os.fspath(home_path))
        source_data_dir = os.path.join(home, DATA_DIR_NAME)
        if not dir_exists(source_data_dir):
            raise PlanError(f"data directory {source_data_dir!r} does not exist")

        stamp = self._now().strftime(self.dir_date_format)
        if backup_dir:
            backup_data_dir = os.path.abspath(os.fspath(backup_dir))
        else:
            backup_data_dir = os.path.join(home, f"{DATA_DIR_NAME}-{stamp}-{source}")
        if os.path.exists(backup_data_dir):
            raise PlanError(f"backup directory {backup_data_dir!r} already exists")

        try:
            db_dirs, others = get_data_dir_contents(source_data_dir)
        except ClassificationError as e:
            raise PlanError(f"error reading {source_data_dir!r}: {e}") from e
        if not db_dirs:
            raise PlanError(f"no database directories found in {source_data_dir!r}")
        # Stores live at <name>.db, so a suffix-less database cannot be opened
        unopenable = [d for d in db_dirs if not d.endswith(DB_SUFFIX)]
        if unopenable:
            raise PlanError(
                f"database directories without a {DB_SUFFIX} suffix cannot be migrated "
                f"as {source}: {', '.join(unopenable)}"
            )

        databases = []
        for db_dir in db_dirs:
            containing_dir, db_name = split_db_path(source_data_dir, db_dir)
            detected, found = detect_db_type(db_name, containing_dir, self.backends)
            if found and detected != source:
                logger.warning(
                    f"{db_dir} looks like a {detected} database but will be read as {source}"
                )
            databases.append(DatabaseEntry(path=db_dir, backend=source, detected=detected))

        permissions = self.permissions
        if permissions is None:
            permissions = os.stat(source_data_dir).st_mode & 0o7777 or DEFAULT_PERMISSIONS

        staging_parent = self.staging_dir or home
        try:
            staging_data_dir = tempfile.mkdtemp(
                prefix=f"{STAGING_PREFIX}-{stamp}-{target}-", dir=staging_parent
            )
            os.chmod(staging_data_dir, permissions)
        except OSError as e:
            raise PlanError(f"could not create staging data directory: {e}") from e

        plan = MigrationPlan(
            home_path=home,
            source_backend=source,
            target_backend=target,
            source_data_dir=source_data_dir,
            staging_data_dir=staging_data_dir,
            backup_data_dir=backup_data_dir,
            databases=databases,
            others=others,
            batch_size=self.batch_size,
            permissions=permissions,
        )
        logger.info(self.make_summary(plan))
        return plan

    def discard(self, plan: MigrationPlan) -> None:
        """Remove the staging directory of a plan that will not be executed."""
        if plan.state is not MigrationState.PLANNED:
            raise MigrationError(f"cannot discard a plan in state {plan.state.value}")
        shutil.rmtree(plan.staging_data_dir, ignore_errors=True)
        logger.info(f"Removed staging directory {plan.staging_data_dir}")

    # =========================================================================
    # Execution
    # =========================================================================

    def execute(self, plan: MigrationPlan) -> dict[str, int]:
        """Execute a migration plan.

        Args:
            plan: A plan in the planned state

        Returns:
            Entries written per database path

        Raises:
            MigrationError: If any step fails. The source data directory is
                untouched unless the failure is a SwapError.
        """
        if plan.state is not MigrationState.PLANNED:
            raise MigrationError(f"cannot execute a plan in state {plan.state.value}")

        plan.time_started = self._now()
        started = time.monotonic()
        try:
            self._convert_all(plan)
            self._copy_all(plan)
            self._swap(plan)
        except BaseException:
            plan.state = MigrationState.FAILED
            if dir_exists(plan.staging_data_dir):
                logger.error(
                    f"The staging directory still exists due to error: {plan.staging_data_dir}"
                )
            raise

        plan.state = MigrationState.DONE
        plan.time_finished = self._now()
        logger.info(f"Migration finished in {time.monotonic() - started:.1f}s")
        logger.info(self.make_summary(plan))
        return dict(plan.counts)

    def _convert_all(self, plan: MigrationPlan) -> None:
        plan.state = MigrationState.CONVERTING
        total = len(plan.databases)
        logger.info(
            f"Converting {total} individual DBs from {plan.source_backend} "
            f"{plan.source_data_dir} to {plan.target_backend} {plan.staging_data_dir} "
            f"(batch size {comma_string(plan.batch_size // BYTES_PER_MB)}MB)"
        )
        for i, entry in enumerate(plan.databases, start=1):
            db_log = DBLogAdapter(logger, {"progress": f"{i}/{total}: {entry.path}"})
            try:
                plan.counts[entry.path] = convert_database(
                    plan.source_data_dir,
                    plan.staging_data_dir,
                    entry.path,
                    plan.source_backend,
                    plan.target_backend,
                    plan.batch_size,
                    status_period=self.status_period,
                    log=db_log,
                )
            except ConversionError as e:
                raise MigrationError(
                    f"could not convert {entry.path!r} from {plan.source_backend!r} "
                    f"to {plan.target_backend!r}: {e}"
                ) from e

    def _copy_all(self, plan: MigrationPlan) -> None:
        plan.state = MigrationState.COPYING
        total = len(plan.others)
        logger.info(f"Copying {total} items from {plan.source_data_dir} to {plan.staging_data_dir}")
        for i, entry in enumerate(plan.others, start=1):
            logger.info(f"{i}/{total}: Copying {entry}")
            source = os.path.join(plan.source_data_dir, entry)
            target = os.path.join(plan.staging_data_dir, entry)
            try:
                Path(target).parent.mkdir(parents=True, exist_ok=True)
                if os.path.isdir(source) and not os.path.islink(source):
                    shutil.copytree(source, target, symlinks=True)
                else:
                    shutil.copy2(source, target, follow_symlinks=False)
            except (OSError, shutil.Error) as e:
                raise MigrationError(f"could not copy {entry}: {e}") from e

    def _swap(self, plan: MigrationPlan) -> None:
        plan.state = MigrationState.SWAPPING
        logger.info(
            f"Moving existing data directory to backup location. "
            f"from={plan.source_data_dir}, to={plan.backup_data_dir}"
        )
        try:
            os.rename(plan.source_data_dir, plan.backup_data_dir)
        except OSError as e:
            raise MigrationError(f"could not back up existing data directory: {e}") from e

        logger.info(
            f"Moving new data directory into place. "
            f"from={plan.staging_data_dir}, to={plan.source_data_dir}"
        )
        try:
            os.rename(plan.staging_data_dir, plan.source_data_dir)
        except OSError as e:
            logger.critical(
                f"No data directory at {plan.source_data_dir}. Manual recovery required: "
                f"move either {plan.staging_data_dir} (converted) or "
                f"{plan.backup_data_dir} (original) to {plan.source_data_dir}"
            )
            raise SwapError(
                f"could not move new data directory into place: {e}",
                backup_data_dir=plan.backup_data_dir,
                staging_data_dir=plan.staging_data_dir,
            ) from e

    # =========================================================================
    # Reporting
    # =========================================================================

    def make_summary(self, plan: MigrationPlan) -> str:
        """Create a multi-line summary of a migration.

        Args:
            plan: The plan to summarize

        Returns:
            Summary text, one field per line
        """
        lines = ["Summary:"]
        copy_head, migrate_head = "To Copy", "To Migrate"
        run_time = 0.0
        match plan.state:
            case MigrationState.DONE:
                copy_head, migrate_head = "Copied", "Migrated"
                if plan.time_started and plan.time_finished:
                    run_time = (plan.time_finished - plan.time_started).total_seconds()
            case MigrationState.PLANNED:
                pass
            case _:
                copy_head, migrate_head = "Copying", "Migrating"
                if plan.time_started:
                    run_time = (self._now() - plan.time_started).total_seconds()

        def add(label: str, value: str = "") -> None:
            lines.append(f"{label:>16}: {value}".rstrip())

        add("Status", plan.state.value)
        add("Run Time", f"{run_time:.1f}s")
        add("Data Dir", plan.source_data_dir)
        add("Staging Dir", plan.staging_data_dir)
        add("Backup Dir", plan.backup_data_dir)
        add("Source DB Type", plan.source_backend)
        add("New DB Type", plan.target_backend)
        add(f"{copy_head} ({len(plan.others)})", "  ".join(plan.others))
        if not plan.counts:
            add(
                f"{migrate_head} ({len(plan.databases)})",
                "  ".join(entry.path for entry in plan.databases),
            )
        else:
            add(f"{migrate_head} ({len(plan.databases)})")
            for entry in plan.databases:
                count = comma_string(plan.counts.get(entry.path, 0))
                lines.append(f"{entry.name:>22}: {count:>11} entries")
        return "\n".join(lines)
