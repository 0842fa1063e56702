"""Command line entry point for dbmigrate.

Converts an existing node data directory to a new key-value backend.

Usage:
    python -m dbmigrate <target type> [options]

    Options:
        --home PATH             Node home directory (contains config/ and data/)
        --source-type TYPE      Backend of the existing data (default: db_backend from config.toml)
        --backup-dir PATH       Backup data directory (default: {home}/data-{timestamp}-{source type})
        --staging-dir PATH      Directory to create the staging data directory in (default: {home})
        --batch-size MB         Batch threshold in megabytes, 0 for unlimited
        --status-period SECS    Minimum seconds between status log lines
        --enable-cleveldb       Make the cleveldb backend available
        --no-update-config      Leave db_backend in config.toml unchanged
        --dry-run               Plan and print the summary without migrating
        --log-level LEVEL       Logging level (default: INFO)

All defaults can be set with DBMIGRATE_* environment variables or a .env file.
Logging goes to stderr.
"""

import argparse
import logging
import sys
import tomllib
from typing import Optional

from dotenv import load_dotenv

# Load .env file - must be done before any config access
load_dotenv()

logger = logging.getLogger(__name__)


def setup_logging(log_level: str) -> None:
    """Configure logging to stderr.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )

    logger.debug(f"Logging initialized at {log_level.upper()} level")


def parse_arguments(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse CLI arguments, with defaults taken from MigrateSettings.

    Args:
        argv: Arguments to parse (defaults to sys.argv[1:])

    Returns:
        Parsed arguments namespace
    """
    from dbmigrate.backends.types import BackendType
    from dbmigrate.config import MigrateSettings

    settings = MigrateSettings()
    types = ", ".join(b.value for b in BackendType)

    parser = argparse.ArgumentParser(
        prog="dbmigrate",
        description=(
            "Node Database Migration Tool\n"
            "Converts an existing node data directory to a new backend type.\n\n"
            f"Known <target type> values: {types}\n\n"
            "Default backup directory: {home}/data-{timestamp}-{old type}"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("target_type", metavar="<target type>", help="Backend to convert to")
    parser.add_argument(
        "--home",
        default=settings.get_home(),
        help="Node home directory (from DBMIGRATE_HOME)",
    )
    parser.add_argument(
        "--source-type",
        default=None,
        help="Backend of the existing data (default: db_backend from config/config.toml)",
    )
    parser.add_argument(
        "--backup-dir",
        default=settings.backup_dir,
        help="Backup data directory (from DBMIGRATE_BACKUP_DIR)",
    )
    parser.add_argument(
        "--staging-dir",
        default=settings.staging_dir,
        help="Directory to create the staging data directory in (from DBMIGRATE_STAGING_DIR)",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=settings.batch_size_mb,
        metavar="MB",
        help="Batch threshold in megabytes, 0 for unlimited (from DBMIGRATE_BATCH_SIZE_MB)",
    )
    parser.add_argument(
        "--status-period",
        type=float,
        default=settings.status_period_seconds,
        metavar="SECONDS",
        help="Minimum seconds between status log lines (from DBMIGRATE_STATUS_PERIOD_SECONDS)",
    )
    parser.add_argument(
        "--dir-date-format",
        default=settings.dir_date_format,
        help="strftime format for dated directory names (from DBMIGRATE_DIR_DATE_FORMAT)",
    )
    parser.add_argument(
        "--enable-cleveldb",
        action="store_true",
        default=settings.enable_cleveldb,
        help="Make the cleveldb backend available (from DBMIGRATE_ENABLE_CLEVELDB)",
    )
    parser.add_argument(
        "--no-update-config",
        dest="update_config",
        action="store_false",
        default=settings.update_config,
        help="Leave db_backend in config/config.toml unchanged",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan and print the summary without migrating",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        default=settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (from DBMIGRATE_LOG_LEVEL)",
    )

    args = parser.parse_args(argv)
    if args.batch_size < 0:
        parser.error(f"--batch-size cannot be negative, got {args.batch_size}")
    if args.status_period < 1:
        parser.error(f"--status-period cannot be less than 1, got {args.status_period}")
    return args


def run_migration(args: argparse.Namespace) -> None:
    """Plan and execute a migration from parsed arguments.

    Raises:
        MigrationError: If planning or execution fails
        UnsupportedBackendError: If a backend identifier is invalid
    """
    from dbmigrate.backends import build_backend_set
    from dbmigrate.constants import BYTES_PER_MB
    from dbmigrate.migration import MigrationError, Migrator
    from dbmigrate.migration.node_config import read_db_backend, update_db_backend

    backends = build_backend_set(enable_cleveldb=args.enable_cleveldb)
    target = backends.require(args.target_type).value

    source_type = args.source_type
    if not source_type:
        try:
            source_type = read_db_backend(args.home)
        except tomllib.TOMLDecodeError as e:
            raise MigrationError(f"could not read node config: {e}") from e
    if not source_type:
        raise MigrationError(
            "could not determine the source backend: pass --source-type "
            "or set db_backend in config/config.toml"
        )
    source = backends.require(source_type).value

    if source == target:
        logger.info(f"Database already has type {target!r}. Nothing to do.")
        return

    logger.info(
        f"Setting up database migration. home={args.home}, "
        f"source type={source}, target type={target}"
    )
    migrator = Migrator(
        backends,
        batch_size=args.batch_size * BYTES_PER_MB,
        status_period=args.status_period,
        dir_date_format=args.dir_date_format,
        staging_dir=args.staging_dir,
    )
    plan = migrator.plan(args.home, source, target, backup_dir=args.backup_dir)

    if args.dry_run:
        migrator.discard(plan)
        logger.info("Dry run complete. Nothing was migrated.")
        return

    migrator.execute(plan)

    if args.update_config:
        if update_db_backend(args.home, target):
            logger.info(f"db_backend Was: {source}, Is Now: {target}")
        else:
            logger.warning(f"No db_backend setting found to update. Set it to {target!r}.")

    logger.info("Done migrating database.")


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Workflow:
    1. Parse CLI arguments (defaults from DBMIGRATE_* settings)
    2. Setup logging to stderr
    3. Run the migration

    Returns:
        Process exit code (0 on success, 1 on any error)
    """
    from dbmigrate.backends import UnsupportedBackendError
    from dbmigrate.migration import MigrationError

    args = parse_arguments(argv)
    setup_logging(args.log_level)

    try:
        run_migration(args)
    except (MigrationError, UnsupportedBackendError) as e:
        logger.error(str(e))
        return 1
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
