################################################################################
# MEILI-KEEPER
#
# @file:        system_utils.py
# @module:      meili_keeper.helpers.system_utils
# @description: Subprocess wrapper, privilege check and mount-table helpers.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
System utilities module for Meili-Keeper.

Thin wrappers around subprocess and psutil so the cores can be tested
by patching a single call site.
"""

import os
import subprocess
from pathlib import Path
from typing import List, Optional, Set

import psutil

from .logging import get_logger
from ..errors import PrivilegeError

logger = get_logger(__name__)


def run_command(
    cmd: List[str],
    description: str,
    timeout: Optional[int] = None,
    check: bool = True,
) -> subprocess.CompletedProcess:
    """
    Run an external command with captured text output.

    Args:
        cmd: Command and arguments
        description: Human readable action for the debug log
        timeout: Seconds before subprocess.TimeoutExpired is raised
        check: Raise subprocess.CalledProcessError on non-zero exit

    Returns:
        The completed process
    """
    logger.debug(f"{description}: {' '.join(cmd)}")
    result = subprocess.run(
        cmd,
        capture_output=True,
        text=True,
        timeout=timeout,
        check=False,
    )
    if check and result.returncode != 0:
        raise subprocess.CalledProcessError(
            result.returncode, cmd, output=result.stdout, stderr=result.stderr
        )
    return result


def is_root() -> bool:
    return os.geteuid() == 0


def require_root(action: str = "this command") -> None:
    """Raise PrivilegeError unless running as root."""
    if not is_root():
        raise PrivilegeError(f"Root privileges required for {action}")


def mounted_paths() -> Set[Path]:
    """Mount points currently listed in the live mount table."""
    return {
        Path(partition.mountpoint)
        for partition in psutil.disk_partitions(all=True)
    }


def is_mount_point(path: Path) -> bool:
    """
    Check the live mount table (not a cached value) for path.

    Symlinks are resolved on both sides so /meilisearch/data and a
    symlinked alias compare equal.
    """
    target = Path(os.path.realpath(path))
    for mountpoint in mounted_paths():
        if Path(os.path.realpath(mountpoint)) == target:
            return True
    return False


def free_space_gb(path: Path) -> float:
    """Free space on the filesystem holding path, in GB (0.0 if unknown)."""
    try:
        return psutil.disk_usage(str(path)).free / (1024 ** 3)
    except OSError as e:
        logger.debug(f"Failed to get disk space for {path}: {e}")
        return 0.0
