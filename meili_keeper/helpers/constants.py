################################################################################
# MEILI-KEEPER
#
# @file:        constants.py
# @module:      meili_keeper.helpers.constants
# @description: Defaults, paths, timeouts and file names shared across modules.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Constants used throughout the Meili-Keeper application.

This module defines all constant values used across different modules
to ensure consistency and ease of maintenance.
"""

from pathlib import Path

# Version information
VERSION = "1.0.0"

# Service instance
SERVICE_NAME = "meilisearch"
DEFAULT_IMAGE = "getmeili/meilisearch:latest"
CONFIG_HASH_LABEL = "meili-keeper.config-hash"
CONTAINER_DATA_PATH = "/meili_data"
CONTAINER_CONFIG_FILE = "/etc/meili/config.env"
DOCKER_SERVICE = "docker"

# Default settings (overridable via environment)
DEFAULT_HTTP_ADDR = "0.0.0.0:7700"
DEFAULT_DATA_PATH = Path("/meilisearch/data")
DEFAULT_BACKUP_PATH = Path("/meilisearch/backups")
DEFAULT_LOG_PATH = Path("/var/log/meilisearch")
DEFAULT_CONFIG_PATH = Path("/etc/meilisearch")
DEFAULT_BLOCK_DEVICE = Path("/dev/sdf")

# Environment variable names
ENV_MASTER_KEY = "MEILI_MASTER_KEY"
ENV_HTTP_ADDR = "MEILI_HTTP_ADDR"
ENV_DATA_PATH = "MEILI_DATA_PATH"
ENV_BACKUP_PATH = "MEILI_BACKUP_PATH"
ENV_LOG_PATH = "MEILI_LOG_PATH"
ENV_CONFIG_PATH = "MEILI_CONFIG_PATH"
ENV_BLOCK_DEVICE = "MEILI_EBS_DEVICE"
ENV_IMAGE = "MEILI_IMAGE"
ENV_RETENTION_DAYS = "MEILI_BACKUP_RETENTION_DAYS"
ENV_KEEP_LAST = "MEILI_BACKUP_KEEP_LAST"
ENV_LOCK_PATH = "MEILI_LOCK_PATH"

# Values that switch the block device off entirely
DISABLED_DEVICE_VALUES = {"", "none", "off", "false"}

# Files inside the config / log directories
CONFIG_ENV_FILENAME = "config.env"
MASTER_KEY_FILENAME = "master_key.txt"
HEALTH_LOG_FILENAME = "health.log"
BACKUP_LOG_FILENAME = "backup.log"
PROVISION_LOG_FILENAME = "provision.log"

# Static entries written into config.env next to key and address
SERVICE_ENVIRONMENT = {
    "MEILI_ENV": "production",
    "MEILI_NO_ANALYTICS": "true",
    "MEILI_DB_PATH": CONTAINER_DATA_PATH,
    "MEILI_MAX_INDEX_SIZE": "107374182400",
}

# Volume handling
DEFAULT_FS_TYPE = "xfs"
FSTAB_PATH = Path("/etc/fstab")
FSTAB_OPTIONS = "defaults,nofail 0 2"

# Backups
ARCHIVE_SUFFIX = ".tar.gz"
ARCHIVE_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"
DEFAULT_RETENTION_DAYS = 7
DEFAULT_KEEP_LAST = 0

# Scheduling
CRON_FILE = Path("/etc/cron.d/meilisearch")
CRON_PATH_LINE = "PATH=/usr/local/sbin:/usr/local/bin:/usr/sbin:/usr/bin:/sbin:/bin"
HEALTH_CHECK_SCHEDULE = "*/15 * * * *"
BACKUP_SCHEDULE = "0 2 * * *"

# Locking
DEFAULT_LOCK_PATH = "/run/meili-keeper.lock"
FALLBACK_LOCK_PATH = "/tmp/meili-keeper.lock"

# Timeouts and grace periods (in seconds)
RUNTIME_GRACE_PERIOD = 5
CONTAINER_START_GRACE_PERIOD = 10
POST_LAUNCH_GRACE_PERIOD = 10
HEALTH_PROBE_TIMEOUT = 5
CONTAINER_STOP_TIMEOUT = 30
DOCKER_COMMAND_TIMEOUT = 120
IMAGE_PULL_TIMEOUT = 900

# Exit codes
EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NO_ROOT = 13  # EACCES

# Logging
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
