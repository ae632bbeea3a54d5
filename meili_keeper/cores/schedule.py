################################################################################
# MEILI-KEEPER
#
# @file:        schedule.py
# @module:      meili_keeper.cores.schedule
# @description: cron.d entries for the health-check and backup ticks.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Schedule entries for Meili-Keeper.

Only the entry file is written; cron picks it up on its own.
"""

import shutil
import sys
from pathlib import Path
from typing import Optional

from ..helpers.constants import (
    BACKUP_SCHEDULE,
    CRON_FILE,
    CRON_PATH_LINE,
    HEALTH_CHECK_SCHEDULE,
)
from ..helpers.logging import get_logger

logger = get_logger(__name__)


def default_executable() -> str:
    """Installed console script, else `python -m meili_keeper`."""
    found = shutil.which('meili-keeper')
    if found:
        return found
    return f"{sys.executable} -m meili_keeper"


def render_cron_entries(executable: Optional[str] = None, user: str = "root") -> str:
    exe = executable or default_executable()
    return (
        f"{CRON_PATH_LINE}\n"
        "\n"
        f"{HEALTH_CHECK_SCHEDULE} {user} {exe} health-check > /dev/null 2>&1\n"
        f"{BACKUP_SCHEDULE} {user} {exe} backup > /dev/null 2>&1\n"
    )


def write_cron_file(path: Path = CRON_FILE, executable: Optional[str] = None) -> bool:
    """
    Write the cron.d file if its content differs.

    Returns:
        True if the file was (re)written
    """
    path = Path(path)
    content = render_cron_entries(executable)
    if path.exists() and path.read_text() == content:
        logger.debug(f"{path} is up to date")
        return False

    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    # cron ignores group/world-writable files in cron.d
    path.chmod(0o644)
    logger.info(f"Schedule written to {path}", extra={'operation': 'schedule'})
    return True
