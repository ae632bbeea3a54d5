################################################################################
# MEILI-KEEPER
#
# @file:        provision_commands.py
# @module:      meili_keeper.commands
# @description: Provisioning and schedule commands
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""Provisioning commands."""

from pathlib import Path
from typing import Optional

import typer

from ..cores import Provisioner, write_cron_file
from ..errors import LockError, MeiliKeeperError, PrivilegeError
from ..helpers import get_logger, log_manager
from ..helpers import ui_utils as ui
from ..helpers.constants import CRON_FILE, EXIT_FAILURE, EXIT_NO_ROOT
from ..types import HealthProbeResult, VolumeStatus
from .config_commands import ensure_config

logger = get_logger(__name__)


# -------------------------
# Commands
# -------------------------

def cmd_provision(
    ctx: typer.Context,
    force_recreate: bool = False,
    schedule: bool = True,
    cron_file: Path = CRON_FILE,
):
    """Provision volume, master key, schedule and service container."""
    cfg = ensure_config(ctx)
    log_manager.attach_file(cfg.provision_log_file)
    ui.print_header("Meili-Keeper Provisioning", f"Service: {cfg.container_name}")

    provisioner = Provisioner(cron_file=cron_file if schedule else None)
    try:
        report = provisioner.run(cfg, force_recreate=force_recreate)
    except LockError as e:
        ui.print_error(str(e))
        raise typer.Exit(code=EXIT_FAILURE)
    except PrivilegeError as e:
        ui.print_error(str(e))
        raise typer.Exit(code=EXIT_NO_ROOT)
    except MeiliKeeperError as e:
        logger.error(f"Provisioning failed: {e}", extra={'operation': 'provision'})
        ui.print_error(f"Provisioning failed: {e}")
        raise typer.Exit(code=EXIT_FAILURE)

    if report.volume.status is VolumeStatus.UNAVAILABLE:
        ui.print_warning("Block device not available, data lives on the root volume")
    else:
        ui.print_success(f"Data volume mounted at {cfg.data_path}")
    ui.print_success(f"Container {report.launch.action}: {cfg.container_name}")
    if report.launch.health is HealthProbeResult.HEALTHY:
        ui.print_success(f"Health endpoint OK: {cfg.health_url}")
    else:
        ui.print_warning(f"Health endpoint not answering yet: {cfg.health_url}")
    ui.print_info(f"Master key stored in: {report.master_key_file}")


def cmd_write_schedule(cron_file: Path = CRON_FILE, executable: Optional[str] = None):
    """Write the cron.d entries for health-check and backup ticks."""
    try:
        written = write_cron_file(cron_file, executable)
    except OSError as e:
        ui.print_error(f"Failed to write {cron_file}: {e}")
        raise typer.Exit(code=EXIT_FAILURE)
    if written:
        ui.print_success(f"Schedule written to: {cron_file}")
    else:
        ui.print_info(f"Schedule already up to date: {cron_file}")


# -------------------------
# Registration
# -------------------------

def register(app: typer.Typer):
    """Register all provisioning commands."""

    @app.command("provision")
    def _provision_cmd(
        ctx: typer.Context,
        force_recreate: bool = typer.Option(
            False, "--force-recreate", help="Recreate the container even if its configuration is unchanged"
        ),
        schedule: bool = typer.Option(True, "--schedule/--no-schedule", help="Write the cron.d entries"),
        cron_file: Path = typer.Option(CRON_FILE, "--cron-file", help="cron.d file to write"),
    ):
        """Provision the host and launch Meilisearch (requires root)."""
        cmd_provision(ctx, force_recreate, schedule, cron_file)

    @app.command("write-schedule")
    def _write_schedule_cmd(
        cron_file: Path = typer.Option(CRON_FILE, "--cron-file", help="cron.d file to write"),
        executable: Optional[str] = typer.Option(None, "--executable", help="Command cron should run"),
    ):
        """Write the cron.d entries for the periodic ticks."""
        cmd_write_schedule(cron_file, executable)
