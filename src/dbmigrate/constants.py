"""dbmigrate constants.

Implementation details that don't change between runs. User-facing settings
live in dbmigrate.config.
"""

# =============================================================================
# Sizes
# =============================================================================

BYTES_PER_MB = 1_048_576

# =============================================================================
# On-disk layout
# =============================================================================

# Backend-agnostic suffix used by LevelDB, RocksDB and sqlite db directories
DB_SUFFIX = ".db"

# Files whose presence marks a directory as a self-contained database
MANIFEST_PREFIX = "MANIFEST"

# Name of the data directory inside a node home
DATA_DIR_NAME = "data"

# Node config file holding the db_backend setting, relative to the home
NODE_CONFIG_PATH = ("config", "config.toml")
DB_BACKEND_KEY = "db_backend"

# Prefix of the staging (temporary target) data directory
STAGING_PREFIX = "data-dbmigrate-tmp"

# File created by the sqlite backend inside its db directory
SQLITE_FILE_NAME = "kv.sqlite3"

# =============================================================================
# Detection signatures
# =============================================================================

KEYREGISTRY_FILE = "KEYREGISTRY"
MANIFEST_FILE = "MANIFEST"
CURRENT_FILE = "CURRENT"
LOG_FILE = "LOG"
IDENTITY_FILE = "IDENTITY"

# =============================================================================
# Defaults
# =============================================================================

DEFAULT_PERMISSIONS = 0o700
DEFAULT_STATUS_PERIOD_SECONDS = 5.0
DEFAULT_BATCH_SIZE_MB = 256
# strftime version of the "2006-01-02-15-04-05" directory date layout
DEFAULT_DIR_DATE_FORMAT = "%Y-%m-%d-%H-%M-%S"
