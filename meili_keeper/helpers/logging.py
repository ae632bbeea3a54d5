################################################################################
# MEILI-KEEPER
#
# @file:        logging.py
# @module:      meili_keeper.helpers.logging
# @description: Logger factory, structured formatter and per-run log files.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Logging setup for Meili-Keeper.

All modules get their logger through get_logger(). The CLI calls
log_manager.configure() once per process, optionally attaching the
append-only log file of the current run (health.log, backup.log, ...).
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional, Union

from .constants import LOG_FORMAT, LOG_DATE_FORMAT

ROOT_LOGGER_NAME = "meili_keeper"

# Attributes every LogRecord carries; anything else came in via extra={...}
_STANDARD_ATTRS = set(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__.keys()
) | {"message", "asctime"}


class StructuredFormatter(logging.Formatter):
    """
    Formatter that appends extra={...} context to the message.

    Example:
        2025-01-01 02:00:00 - meili_keeper.cores.backup_scheduler - INFO -
        Backup completed [operation=backup archive=meilisearch_20250101_020000.tar.gz]
    """

    def __init__(self, fmt: str = LOG_FORMAT, datefmt: str = LOG_DATE_FORMAT):
        super().__init__(fmt=fmt, datefmt=datefmt)

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith('_')
        }
        if not context:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{base} [{rendered}]"


class LogManager:
    """Owns the handlers of the package root logger."""

    def __init__(self):
        self._logger = logging.getLogger(ROOT_LOGGER_NAME)
        self._console_handler: Optional[logging.Handler] = None
        self._file_handler: Optional[logging.FileHandler] = None
        self.log_file: Optional[Path] = None

    def configure(
        self,
        level: Union[str, int] = "INFO",
        log_file: Optional[Path] = None,
        console: bool = True,
    ) -> None:
        """
        (Re)configure package logging.

        Args:
            level: Log level name or number
            log_file: Optional append-only file for this run
            console: Attach a stderr handler
        """
        if isinstance(level, str):
            level = getattr(logging, level.upper(), logging.INFO)
        self._logger.setLevel(level)
        self._logger.propagate = True

        formatter = StructuredFormatter()

        # Rebind to the current sys.stderr on every call
        if self._console_handler is not None:
            self._logger.removeHandler(self._console_handler)
            self._console_handler = None
        if console:
            self._console_handler = logging.StreamHandler()
            self._console_handler.setFormatter(formatter)
            self._logger.addHandler(self._console_handler)

        if log_file is not None:
            self.attach_file(log_file)

    def attach_file(self, log_file: Path) -> None:
        """Send package logs to log_file as well (replaces a previous file)."""
        log_file = Path(log_file)
        self.detach_file()
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        except OSError as e:
            self._logger.warning(f"Could not open log file {log_file}: {e}")
            return
        handler.setFormatter(StructuredFormatter())
        self._logger.addHandler(handler)
        self._file_handler = handler
        self.log_file = log_file

    def detach_file(self) -> None:
        if self._file_handler is not None:
            self._logger.removeHandler(self._file_handler)
            self._file_handler.close()
            self._file_handler = None
            self.log_file = None


log_manager = LogManager()


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package root logger."""
    if name == ROOT_LOGGER_NAME or name.startswith(ROOT_LOGGER_NAME + "."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
