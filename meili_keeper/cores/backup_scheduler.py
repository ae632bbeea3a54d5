################################################################################
# MEILI-KEEPER
#
# @file:        backup_scheduler.py
# @module:      meili_keeper.cores.backup_scheduler
# @description: Cold backup tick: stop, archive data dir, start, prune.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - The container is restarted on every exit path of the archive step
# - Archives are written as .partial and renamed once complete
# - Retention is judged on file mtime, not on the timestamp in the name
################################################################################

"""
Backup management module for Meili-Keeper.

This module implements the "cold backup" tick:
1. Stop the service container (best-effort)
2. Archive the data directory into <name>_<timestamp>.tar.gz
3. Start the service container (best-effort, always attempted)
4. Delete archives older than the retention window
"""

from __future__ import annotations

import tarfile
import time
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

from ..errors import BackupIOError, ContainerRuntimeError
from ..helpers.config import Configuration
from ..helpers.constants import ARCHIVE_SUFFIX, ARCHIVE_TIMESTAMP_FORMAT
from ..helpers.logging import get_logger
from ..helpers.system_utils import free_space_gb
from ..types import BackupArchive, BackupReport
from .docker_runtime import DockerRuntime

logger = get_logger(__name__)


class BackupScheduler:
    """
    Runs one backup tick against the service container and data directory.
    """

    def __init__(self, runtime: DockerRuntime):
        self.runtime = runtime

    # --------------- Tick ---------------

    def tick(self, config: Configuration, now: Optional[datetime] = None) -> BackupReport:
        """
        Perform one complete backup cycle.

        Args:
            config: Resolved configuration
            now: Clock override (archive name and retention reference)

        Returns:
            BackupReport; report.success is False if the archive failed
        """
        started = now or datetime.now()
        report = BackupReport(started_at=started)
        start_time = time.time()
        logger.info("Starting backup...", extra={'operation': 'backup'})
        logger.debug(f"{free_space_gb(config.backup_path):.1f} GB free in {config.backup_path}")

        try:
            with self.paused_service(config.container_name):
                report.archive = self.create_archive(config, started)
        except BackupIOError as e:
            report.errors.append(str(e))
            logger.error(f"Backup failed: {e}", extra={'operation': 'backup'})

        if report.archive is not None:
            report.pruned = self.prune(config, now=now)
        else:
            logger.warning("Skipping retention cleanup because no new archive was written",
                           extra={'operation': 'backup'})

        report.duration_seconds = time.time() - start_time
        if report.success:
            logger.info(f"Backup completed: {report.archive.name}",
                        extra={'operation': 'backup', 'duration': f"{report.duration_seconds:.2f}s"})
        return report

    @contextmanager
    def paused_service(self, name: str) -> Iterator[None]:
        """
        Keep the container stopped for the duration of the block.

        The restart in `finally` runs on success, error and interrupt alike.
        """
        self._stop_best_effort(name)
        try:
            yield
        finally:
            self._start_best_effort(name)

    def _stop_best_effort(self, name: str) -> None:
        try:
            self.runtime.stop(name)
            logger.info(f"Stopped container {name}", extra={'operation': 'backup'})
        except ContainerRuntimeError as e:
            logger.warning(f"Could not stop {name} (continuing): {e}", extra={'operation': 'backup'})

    def _start_best_effort(self, name: str) -> None:
        try:
            self.runtime.start(name)
            logger.info(f"Started container {name}", extra={'operation': 'backup'})
        except ContainerRuntimeError as e:
            logger.error(f"Could not start {name}: {e}", extra={'operation': 'backup'})

    # --------------- Archive ---------------

    def archive_path_for(self, config: Configuration, moment: datetime) -> Path:
        """
        First free <name>_<YYYYmmdd_HHMMSS>[_n].tar.gz in the backup directory.
        """
        stem = f"{config.container_name}_{moment.strftime(ARCHIVE_TIMESTAMP_FORMAT)}"
        candidate = config.backup_path / f"{stem}{ARCHIVE_SUFFIX}"
        counter = 1
        while candidate.exists():
            candidate = config.backup_path / f"{stem}_{counter}{ARCHIVE_SUFFIX}"
            counter += 1
        return candidate

    def create_archive(self, config: Configuration, moment: datetime) -> BackupArchive:
        """
        Write the whole data directory into one gzip-compressed tar.

        Raises:
            BackupIOError: Data directory missing or any I/O failure
        """
        data_path = config.data_path
        if not data_path.is_dir():
            raise BackupIOError(f"Data directory {data_path} does not exist")

        try:
            config.backup_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise BackupIOError(f"Cannot create backup directory {config.backup_path}: {e}") from e

        target = self.archive_path_for(config, moment)
        partial = target.with_name(target.name + ".partial")
        try:
            with tarfile.open(partial, "w:gz") as tar:
                tar.add(str(data_path), arcname=str(data_path).lstrip('/'))
            partial.rename(target)
            stat = target.stat()
        except (OSError, tarfile.TarError) as e:
            partial.unlink(missing_ok=True)
            raise BackupIOError(f"Archiving {data_path} failed: {e}") from e

        logger.info(f"Created {target.name} ({stat.st_size} bytes)", extra={'operation': 'backup'})
        return BackupArchive(
            path=target,
            timestamp=moment.replace(microsecond=0),
            mtime=datetime.fromtimestamp(stat.st_mtime),
            size_bytes=stat.st_size,
        )

    # --------------- Retention ---------------

    def list_archives(self, config: Configuration) -> List[BackupArchive]:
        """Archives of this service, oldest first (by mtime)."""
        if not config.backup_path.is_dir():
            return []

        archives = []
        prefix = f"{config.container_name}_"
        for path in config.backup_path.glob(f"{prefix}*{ARCHIVE_SUFFIX}"):
            if not path.is_file():
                continue
            stat = path.stat()
            archives.append(BackupArchive(
                path=path,
                timestamp=self._parse_timestamp(path.name, prefix),
                mtime=datetime.fromtimestamp(stat.st_mtime),
                size_bytes=stat.st_size,
            ))
        archives.sort(key=lambda a: a.mtime)
        return archives

    @staticmethod
    def _parse_timestamp(filename: str, prefix: str) -> Optional[datetime]:
        stamp = filename[len(prefix):-len(ARCHIVE_SUFFIX)]
        try:
            return datetime.strptime(stamp[:15], ARCHIVE_TIMESTAMP_FORMAT)
        except ValueError:
            return None

    def prune(self, config: Configuration, now: Optional[datetime] = None) -> List[BackupArchive]:
        """
        Delete archives older than the retention window.

        An archive qualifies when its whole-day age exceeds retention_days
        (find -mtime +N semantics). The newest keep_last archives are never
        deleted; keep_last=0 applies no floor.

        Returns:
            Deleted archives
        """
        now = now or datetime.now()
        archives = self.list_archives(config)
        protected = set()
        if config.keep_last > 0:
            protected = {a.path for a in archives[-config.keep_last:]}

        deleted = []
        for archive in archives:
            if archive.path in protected:
                continue
            if archive.age_days(now) <= config.retention_days:
                continue
            try:
                archive.path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                logger.error(f"Could not delete {archive.name}: {e}", extra={'operation': 'prune'})
                continue
            deleted.append(archive)
            logger.info(f"Deleted expired backup {archive.name}", extra={'operation': 'prune'})

        if not deleted:
            logger.debug("No expired backups to delete")
        return deleted
