#!/usr/bin/env python3
################################################################################
# MEILI-KEEPER
#
# @file:        __main__.py
# @module:      meili_keeper.__main__
# @description: Typer-based CLI entry point orchestrating Meili-Keeper operations.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Meili-Keeper main CLI

Typer-based CLI following the "tool bench" pattern:
- Configuration is resolved once at startup from the environment
- Commands retrieve it from the context instead of parameters
"""

from __future__ import annotations

import sys

import typer
from rich.console import Console
from rich.markup import escape

from .commands import config_commands, provision_commands, tick_commands
from .errors import ConfigError
from .helpers import log_manager, resolve_config
from .helpers.constants import VERSION

app = typer.Typer(
    add_completion=False,
    help="Meili-Keeper: provision, supervise and back up a Meilisearch container.",
)
console = Console()


# -------------------------
# Application Context
# -------------------------

@app.callback()
def initialize_context(
    ctx: typer.Context,
    log_level: str = typer.Option(
        "INFO", "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR)."
    ),
):
    """
    Initialize application context before any command runs.
    Sets up logging and resolves configuration once.
    """
    log_manager.configure(level=log_level)
    ctx.ensure_object(dict)

    try:
        ctx.obj["config"] = resolve_config()
    except ConfigError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        ctx.obj["config"] = None


# -------------------------
# Top-level Commands
# -------------------------

@app.command("version")
def cmd_version():
    """Show Meili-Keeper version."""
    typer.echo(f"Meili-Keeper {VERSION}")


config_commands.register(app)
provision_commands.register(app)
tick_commands.register(app)


def main():
    """Console script entry point."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Cancelled by user[/yellow]")
        sys.exit(1)


if __name__ == "__main__":
    main()
