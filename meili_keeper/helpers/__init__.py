"""Helper modules and utilities for Meili-Keeper."""

from .config import Configuration, resolve_config
from .constants import VERSION
from .logging import get_logger, log_manager
from .process_lock import ProcessLock

__all__ = [
    'Configuration',
    'resolve_config',
    'VERSION',
    'get_logger',
    'log_manager',
    'ProcessLock',
]
