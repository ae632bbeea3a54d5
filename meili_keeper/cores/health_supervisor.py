################################################################################
# MEILI-KEEPER
#
# @file:        health_supervisor.py
# @module:      meili_keeper.cores.health_supervisor
# @description: One health-check tick: observe runtime and container, repair.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Health supervisor for Meili-Keeper.

Each tick walks the same ladder and keeps nothing between invocations;
whatever the supervisor needs to know it reads back from the runtime:

    RUNTIME_DOWN                → start runtime, wait, re-check
    CONTAINER_MISSING           → ContainerAbsentError (no self-heal)
    CONTAINER_STOPPED           → start container, wait
    CONTAINER_RUNNING_UNHEALTHY → restart container
    HEALTHY                     → nothing
"""

import time
from typing import Optional

from ..errors import ContainerAbsentError, ProbeError, ProbeTimeoutError, RuntimeUnavailableError
from ..helpers.config import Configuration
from ..helpers.constants import CONTAINER_START_GRACE_PERIOD, RUNTIME_GRACE_PERIOD
from ..helpers.logging import get_logger
from ..types import HealthProbeResult, HealthTickReport, SupervisorState
from .docker_runtime import DockerRuntime
from .health_probe import HealthProbe

logger = get_logger(__name__)


class HealthSupervisor:
    """Stateless state machine driven once per scheduled tick."""

    def __init__(
        self,
        runtime: DockerRuntime,
        probe: Optional[HealthProbe] = None,
        runtime_grace: float = RUNTIME_GRACE_PERIOD,
        start_grace: float = CONTAINER_START_GRACE_PERIOD,
    ):
        self.runtime = runtime
        self.probe = probe or HealthProbe()
        self.runtime_grace = runtime_grace
        self.start_grace = start_grace

    def tick(self, config: Configuration) -> HealthTickReport:
        """
        Run one health check.

        Returns:
            Report with observed states and actions taken

        Raises:
            RuntimeUnavailableError: Runtime still inactive after a start attempt
            ContainerAbsentError: The service container does not exist
        """
        report = HealthTickReport()
        name = config.container_name
        logger.info("Running health check...", extra={'operation': 'health'})

        if not self.runtime.is_daemon_active():
            report.states.append(SupervisorState.RUNTIME_DOWN)
            logger.warning("Starting Docker service...", extra={'operation': 'health'})
            self.runtime.start_daemon()
            report.actions.append("start_runtime")
            self._wait(self.runtime_grace)
            if not self.runtime.is_daemon_active():
                logger.error("Docker service did not come up", extra={'operation': 'health'})
                raise RuntimeUnavailableError("Container runtime is not active after start")

        if not self.runtime.container_exists(name):
            report.states.append(SupervisorState.CONTAINER_MISSING)
            report.result = HealthProbeResult.CONTAINER_ABSENT
            logger.error(f"ERROR: {name} container does not exist.", extra={'operation': 'health'})
            raise ContainerAbsentError(name)

        if not self.runtime.is_running(name):
            report.states.append(SupervisorState.CONTAINER_STOPPED)
            logger.warning(f"Starting {name} container...", extra={'operation': 'health'})
            self.runtime.start(name)
            report.actions.append("start_container")
            self._wait(self.start_grace)

        try:
            self.probe.probe(config.health_url)
        except ProbeError as e:
            report.states.append(SupervisorState.CONTAINER_RUNNING_UNHEALTHY)
            kind = "timed out" if isinstance(e, ProbeTimeoutError) else "failed"
            logger.warning(f"Health probe {kind}: {e}", extra={'operation': 'health'})
            logger.warning(f"Restarting {name} container...", extra={'operation': 'health'})
            self.runtime.restart(name)
            report.actions.append("restart_container")
            report.result = HealthProbeResult.UNREACHABLE
            return report

        report.states.append(SupervisorState.HEALTHY)
        report.result = HealthProbeResult.HEALTHY
        logger.info(f"{name} is healthy", extra={'operation': 'health'})
        return report

    def observe(self, config: Configuration) -> HealthProbeResult:
        """Read-only status (no repair actions)."""
        name = config.container_name
        if not self.runtime.container_exists(name):
            return HealthProbeResult.CONTAINER_ABSENT
        if not self.runtime.is_running(name):
            return HealthProbeResult.CONTAINER_STOPPED
        return self.probe.check(config.health_url)

    @staticmethod
    def _wait(seconds: float) -> None:
        if seconds:
            time.sleep(seconds)
