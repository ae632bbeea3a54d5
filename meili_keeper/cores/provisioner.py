################################################################################
# MEILI-KEEPER
#
# @file:        provisioner.py
# @module:      meili_keeper.cores.provisioner
# @description: One provisioning run from directories to a verified container.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Provisioning orchestration for Meili-Keeper.

Any error raised here aborts the run; there is no partial-success
continuation for the volume or launch steps.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from ..helpers.config import Configuration
from ..helpers.constants import CRON_FILE
from ..helpers.logging import get_logger
from ..helpers.process_lock import ProcessLock
from ..helpers.system_utils import require_root
from ..types import ProvisionReport
from .docker_runtime import DockerRuntime
from .health_probe import HealthProbe
from .schedule import write_cron_file
from .secret_store import SecretStore
from .service_launcher import ServiceLauncher
from .volume_provisioner import VolumeProvisioner

logger = get_logger(__name__)


class Provisioner:
    """
    Wires the provisioning components together.

    Every collaborator can be injected, which is how tests replace docker,
    mount and the health endpoint.
    """

    def __init__(
        self,
        runtime: Optional[DockerRuntime] = None,
        volumes: Optional[VolumeProvisioner] = None,
        launcher: Optional[ServiceLauncher] = None,
        cron_file: Optional[Path] = CRON_FILE,
        cron_executable: Optional[str] = None,
    ):
        """
        Args:
            runtime: Container runtime wrapper
            volumes: Volume provisioner
            launcher: Service launcher (defaults to one using runtime)
            cron_file: cron.d file to write (None skips scheduling)
            cron_executable: Command cron should run
        """
        self.runtime = runtime or DockerRuntime()
        self.volumes = volumes or VolumeProvisioner()
        self.launcher = launcher or ServiceLauncher(self.runtime, HealthProbe())
        self.cron_file = cron_file
        self.cron_executable = cron_executable

    def run(self, config: Configuration, force_recreate: bool = False) -> ProvisionReport:
        """
        Provision the host.

        Raises:
            PrivilegeError: Not running as root
            VolumeError: Format or mount failed
            SecretStoreError: Master key could not be persisted
            LaunchError: Image pull or container creation failed
            ContainerRuntimeError: Docker service could not be started
            LockError: Another provisioning run or tick holds the lock
        """
        require_root("provisioning")
        with ProcessLock(str(config.lock_path) if config.lock_path else None):
            return self._provision(config, force_recreate)

    def _provision(self, config: Configuration, force_recreate: bool) -> ProvisionReport:
        logger.info("Starting Meilisearch provisioning", extra={'operation': 'provision'})
        for label, value in config.masked_summary().items():
            logger.info(f"  - {label}: {value}")

        if not self.runtime.is_daemon_active():
            logger.info("Enabling and starting Docker service...", extra={'operation': 'provision'})
            self.runtime.start_daemon(enable=True)

        self._create_directories(config)

        volume = self.volumes.ensure(config.block_device, config.data_path)

        store = SecretStore(config.master_key_file)
        config = store.resolve(config)

        cron_written = False
        if self.cron_file is not None:
            cron_written = write_cron_file(self.cron_file, self.cron_executable)

        launch = self.launcher.launch(config, force_recreate=force_recreate)

        logger.info("Installation completed successfully!", extra={'operation': 'provision'})
        logger.info(f"Access Meilisearch at: http://{config.http_addr}")
        logger.info(f"Master key stored in: {config.master_key_file}")
        return ProvisionReport(
            volume=volume,
            launch=launch,
            master_key_file=config.master_key_file,
            cron_file_written=cron_written,
        )

    @staticmethod
    def _create_directories(config: Configuration) -> None:
        logger.info("Creating directories...", extra={'operation': 'provision'})
        for path in (config.data_path, config.backup_path, config.log_path, config.config_path):
            path.mkdir(parents=True, exist_ok=True)
            path.chmod(0o755)
