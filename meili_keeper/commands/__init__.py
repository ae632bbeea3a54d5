"""CLI command modules for Meili-Keeper."""

from . import (
    config_commands,
    provision_commands,
    tick_commands,
)

__all__ = [
    'config_commands',
    'provision_commands',
    'tick_commands',
]
