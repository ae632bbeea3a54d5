################################################################################
# MEILI-KEEPER
#
# @file:        process_lock.py
# @module:      meili_keeper.helpers.process_lock
# @description: flock-based lock so provisioning and ticks never overlap.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Process lock shared by provisioning, health-check and backup runs.

Only one of them may touch the service container at a time. A slow backup
holds the lock while the container is stopped, so a health tick started by
cron in the meantime skips instead of "repairing" the intentional stop.
"""

import fcntl
import os
from pathlib import Path
from typing import Optional

from .constants import DEFAULT_LOCK_PATH, FALLBACK_LOCK_PATH
from .logging import get_logger
from ..errors import LockError, LockFileError

logger = get_logger(__name__)


class ProcessLock:
    """
    Non-blocking exclusive lock on a PID file.

    The kernel drops the flock when the process dies, so a stale file left
    behind by a crash never blocks the next run.
    """

    def __init__(self, lock_path: Optional[str] = None):
        """
        Initialize lock.

        Args:
            lock_path: Path to lock file (default: /run, or /tmp if /run is not writable)
        """
        self._fd = None
        if lock_path:
            self.lock_path = Path(lock_path)
        elif os.access(os.path.dirname(DEFAULT_LOCK_PATH), os.W_OK):
            self.lock_path = Path(DEFAULT_LOCK_PATH)
        else:
            self.lock_path = Path(FALLBACK_LOCK_PATH)

    def acquire(self) -> bool:
        """
        Try to acquire lock.

        Returns:
            True if lock acquired, False if another process holds it

        Raises:
            LockFileError: The lock file cannot be created or opened
        """
        if self._fd is not None:
            return True
        try:
            self.lock_path.parent.mkdir(parents=True, exist_ok=True)
            fd = open(self.lock_path, 'a+')
        except OSError as e:
            raise LockFileError(f"Cannot open lock file {self.lock_path}: {e}") from e

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            fd.close()
            return False
        except OSError as e:
            fd.close()
            raise LockFileError(f"Cannot lock {self.lock_path}: {e}") from e

        fd.seek(0)
        fd.truncate()
        fd.write(str(os.getpid()))
        fd.flush()
        self._fd = fd
        logger.debug(f"Lock acquired: {self.lock_path}")
        return True

    def release(self) -> None:
        """Release the lock (safe to call more than once)."""
        if self._fd is None:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        except OSError as e:
            logger.debug(f"Unlock failed for {self.lock_path}: {e}")
        finally:
            self._fd.close()
            self._fd = None
        logger.debug(f"Lock released: {self.lock_path}")

    def is_locked(self) -> bool:
        """True while this instance holds the lock."""
        return self._fd is not None

    def get_holder_pid(self) -> Optional[int]:
        """Read the PID written by the current (or last) holder."""
        try:
            return int(self.lock_path.read_text().strip())
        except (OSError, ValueError):
            return None

    def __enter__(self):
        if not self.acquire():
            holder = self.get_holder_pid()
            raise LockError(
                f"Lock held by another process (PID {holder or 'unknown'}): {self.lock_path}",
                holder_pid=holder,
            )
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()

    def __del__(self):
        self.release()
