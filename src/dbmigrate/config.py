"""Configuration settings for dbmigrate.

This module provides Pydantic Settings for configuration management.
All settings are loaded from environment variables with the DBMIGRATE_
prefix (or a .env file) and act as defaults for the command line flags.
"""

from pathlib import Path
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from dbmigrate.constants import (
    BYTES_PER_MB,
    DEFAULT_BATCH_SIZE_MB,
    DEFAULT_DIR_DATE_FORMAT,
    DEFAULT_STATUS_PERIOD_SECONDS,
)

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class MigrateSettings(BaseSettings):
    """Configuration settings for dbmigrate.

    Attributes:
        home: Node home directory (contains config/ and data/)
        log_level: Logging level
        batch_size_mb: Batch threshold in megabytes (0 = unlimited)
        status_period_seconds: Minimum seconds between status log lines
        dir_date_format: strftime format for dated directory names
        enable_cleveldb: Make the cleveldb backend available
        staging_dir: Directory to create the staging data directory in
        backup_dir: Explicit backup data directory
        update_config: Update db_backend in the node config after migrating
    """

    model_config = SettingsConfigDict(
        env_prefix="DBMIGRATE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # Allow extra env vars without error
    )

    home: Path = Field(
        default=Path.home() / ".node",
        description="Node home directory (contains config/ and data/)",
    )
    log_level: LogLevel = Field(default="INFO", description="Logging level")

    batch_size_mb: int = Field(
        default=DEFAULT_BATCH_SIZE_MB,
        ge=0,
        description="Batch threshold in megabytes (0 = unlimited)",
    )
    status_period_seconds: float = Field(
        default=DEFAULT_STATUS_PERIOD_SECONDS,
        ge=1.0,
        description="Minimum seconds between status log lines",
    )
    dir_date_format: str = Field(
        default=DEFAULT_DIR_DATE_FORMAT,
        min_length=1,
        description="strftime format for dated directory names",
    )

    enable_cleveldb: bool = Field(
        default=False, description="Make the cleveldb backend available"
    )

    staging_dir: Optional[Path] = Field(
        default=None, description="Directory to create the staging data directory in"
    )
    backup_dir: Optional[Path] = Field(default=None, description="Backup data directory")
    update_config: bool = Field(
        default=True, description="Update db_backend in the node config after migrating"
    )

    def get_home(self) -> Path:
        """Get the home path, expanding user home."""
        return self.home.expanduser().resolve()

    def get_batch_size_bytes(self) -> int:
        return self.batch_size_mb * BYTES_PER_MB
