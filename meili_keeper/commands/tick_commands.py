################################################################################
# MEILI-KEEPER
#
# @file:        tick_commands.py
# @module:      meili_keeper.commands
# @description: Scheduled tick commands (health-check, backup) and helpers
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Tick commands.

Ticks share one process lock with provisioning. A tick that finds the
lock taken logs the holder and exits 0: the other run owns the container.
"""

from contextlib import contextmanager

import typer

from ..cores import BackupScheduler, DockerRuntime, HealthSupervisor, VolumeProvisioner
from ..errors import ContainerAbsentError, LockError, LockFileError, MeiliKeeperError, VolumeError
from ..helpers import Configuration, ProcessLock, get_logger, log_manager
from ..helpers import ui_utils as ui
from ..helpers.constants import EXIT_FAILURE, EXIT_OK
from ..types import HealthProbeResult
from .config_commands import ensure_config

logger = get_logger(__name__)


@contextmanager
def tick_lock(cfg: Configuration, operation: str):
    """
    Hold the shared lock for the tick.

    Exits 0 if another run holds it, 1 if the lock file is unusable.
    """
    lock = ProcessLock(str(cfg.lock_path) if cfg.lock_path else None)
    try:
        with lock:
            yield lock
    except LockError as e:
        logger.warning(f"Skipping {operation}: {e}", extra={'operation': operation})
        ui.print_warning(f"Skipping {operation}: another run is in progress (PID {e.holder_pid})")
        raise typer.Exit(code=EXIT_OK)
    except LockFileError as e:
        logger.error(f"Cannot run {operation}: {e}", extra={'operation': operation})
        ui.print_error(str(e))
        raise typer.Exit(code=EXIT_FAILURE)


# -------------------------
# Commands
# -------------------------

def cmd_health_check(ctx: typer.Context):
    """One health-check tick."""
    cfg = ensure_config(ctx)
    log_manager.attach_file(cfg.health_log_file)
    supervisor = HealthSupervisor(DockerRuntime())

    with tick_lock(cfg, "health"):
        try:
            report = supervisor.tick(cfg)
        except ContainerAbsentError as e:
            ui.print_error(f"{e}. Run 'meili-keeper provision' first.")
            raise typer.Exit(code=EXIT_FAILURE)
        except MeiliKeeperError as e:
            logger.error(f"Health check failed: {e}", extra={'operation': 'health'})
            ui.print_error(f"Health check failed: {e}")
            raise typer.Exit(code=EXIT_FAILURE)

    if report.actions:
        ui.print_warning(f"Actions taken: {', '.join(report.actions)}")
    if report.result is HealthProbeResult.HEALTHY:
        ui.print_success(f"{cfg.container_name} is healthy")


def cmd_backup(ctx: typer.Context):
    """One backup tick."""
    cfg = ensure_config(ctx)
    log_manager.attach_file(cfg.backup_log_file)
    scheduler = BackupScheduler(DockerRuntime())

    with tick_lock(cfg, "backup"):
        report = scheduler.tick(cfg)

    for archive in report.pruned:
        ui.print_info(f"Deleted expired backup: {archive.name}")
    if not report.success:
        for error in report.errors:
            ui.print_error(error)
        raise typer.Exit(code=EXIT_FAILURE)
    ui.print_success(f"Backup completed: {report.archive.path}")


def cmd_prune(ctx: typer.Context):
    """Apply the retention window without taking a new backup."""
    cfg = ensure_config(ctx)
    log_manager.attach_file(cfg.backup_log_file)
    scheduler = BackupScheduler(DockerRuntime())

    with tick_lock(cfg, "prune"):
        deleted = scheduler.prune(cfg)

    if not deleted:
        ui.print_info("No expired backups")
    for archive in deleted:
        ui.print_info(f"Deleted expired backup: {archive.name}")


def cmd_status(ctx: typer.Context):
    """Show container health and the archive set (read-only)."""
    cfg = ensure_config(ctx)
    runtime = DockerRuntime()
    supervisor = HealthSupervisor(runtime)
    scheduler = BackupScheduler(runtime)

    try:
        result = supervisor.observe(cfg)
    except MeiliKeeperError as e:
        ui.print_error(f"Cannot query container state: {e}")
        raise typer.Exit(code=EXIT_FAILURE)

    if result is HealthProbeResult.HEALTHY:
        ui.print_success(f"{cfg.container_name}: {result.value}")
    else:
        ui.print_warning(f"{cfg.container_name}: {result.value}")

    try:
        volume = VolumeProvisioner().probe(cfg.block_device, cfg.data_path)
    except VolumeError as e:
        ui.print_warning(f"Cannot probe data volume: {e}")
    else:
        ui.print_info(f"Data volume ({cfg.block_device or 'none'}): {volume.status.value}")

    archives = scheduler.list_archives(cfg)
    table = ui.create_table(
        f"Backups in {cfg.backup_path}",
        [("Archive", "cyan", 40), ("Modified", "white", 20), ("Size", "green", 12)],
    )
    for archive in reversed(archives):
        table.add_row(
            archive.name,
            archive.mtime.strftime("%Y-%m-%d %H:%M:%S"),
            f"{archive.size_bytes / (1024 ** 2):.1f} MB",
        )
    ui.console.print(table)


# -------------------------
# Registration
# -------------------------

def register(app: typer.Typer):
    """Register all tick commands."""

    @app.command("health-check")
    def _health_check_cmd(ctx: typer.Context):
        """Probe the service and repair it (one scheduled tick)."""
        cmd_health_check(ctx)

    @app.command("backup")
    def _backup_cmd(ctx: typer.Context):
        """Stop, archive, restart and prune (one scheduled tick)."""
        cmd_backup(ctx)

    @app.command("prune")
    def _prune_cmd(ctx: typer.Context):
        """Delete backups older than the retention window."""
        cmd_prune(ctx)

    @app.command("status")
    def _status_cmd(ctx: typer.Context):
        """Show container health and existing backups."""
        cmd_status(ctx)
