################################################################################
# MEILI-KEEPER
#
# @file:        config_commands.py
# @module:      meili_keeper.commands
# @description: Configuration display commands
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""Configuration commands."""

from typing import Optional

import typer

from ..cores import SecretStore
from ..errors import SecretStoreError
from ..helpers import Configuration, get_logger
from ..helpers import ui_utils as ui

logger = get_logger(__name__)


def get_config(ctx: typer.Context) -> Optional[Configuration]:
    """Get config from context."""
    return (ctx.obj or {}).get("config")


def ensure_config(ctx: typer.Context) -> Configuration:
    """Ensure config was resolved or exit."""
    cfg = get_config(ctx)
    if not cfg:
        ui.print_error("No valid configuration (check the MEILI_* environment variables)")
        raise typer.Exit(code=1)
    return cfg


# -------------------------
# Commands
# -------------------------

def cmd_show_config(ctx: typer.Context):
    """Show the resolved configuration (master key masked)."""
    cfg = ensure_config(ctx)

    if cfg.master_key is None:
        # Show the persisted key if provisioning already ran
        try:
            persisted = SecretStore(cfg.master_key_file).load()
        except SecretStoreError as e:
            ui.print_warning(str(e))
            persisted = None
        if persisted:
            cfg = cfg.with_master_key(persisted)

    ui.print_key_values("Meili-Keeper Configuration", cfg.masked_summary())
    ui.print_info(f"Health URL: {cfg.health_url}")
    ui.print_info(f"Master key file: {cfg.master_key_file}")


# -------------------------
# Registration
# -------------------------

def register(app: typer.Typer):
    """Register all configuration commands."""

    @app.command("show-config")
    def _show_config_cmd(ctx: typer.Context):
        """Show the resolved configuration."""
        cmd_show_config(ctx)
