################################################################################
# MEILI-KEEPER
#
# @file:        docker_runtime.py
# @module:      meili_keeper.cores.docker_runtime
# @description: Container control surface backed by the docker CLI and systemctl.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Docker runtime module for Meili-Keeper.

Everything the cores need from the container runtime goes through
DockerRuntime: daemon state, container lookup by exact name, pull, run,
start/stop/restart and removal.
"""

import json
import subprocess
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import ContainerRuntimeError
from ..helpers.constants import (
    CONFIG_HASH_LABEL,
    CONTAINER_STOP_TIMEOUT,
    DOCKER_COMMAND_TIMEOUT,
    DOCKER_SERVICE,
    IMAGE_PULL_TIMEOUT,
)
from ..helpers.logging import get_logger
from ..helpers.system_utils import run_command
from ..types import ServiceInstance

logger = get_logger(__name__)


class DockerRuntime:
    """
    Wraps the docker CLI for a single host.

    Failures surface as ContainerRuntimeError carrying docker's stderr.
    """

    def __init__(self, service_unit: str = DOCKER_SERVICE):
        """
        Initialize runtime wrapper.

        Args:
            service_unit: systemd unit of the container runtime
        """
        self.service_unit = service_unit

    def _run_docker_command(
        self,
        args: List[str],
        description: str,
        timeout: int = DOCKER_COMMAND_TIMEOUT,
    ) -> str:
        """
        Run a Docker command and return its stdout.

        Raises:
            ContainerRuntimeError: On non-zero exit, timeout or missing binary
        """
        cmd = ['docker'] + args
        try:
            result = run_command(cmd, description, timeout=timeout)
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or '').strip()
            raise ContainerRuntimeError(f"{description} failed: {stderr or e}") from e
        except subprocess.TimeoutExpired as e:
            raise ContainerRuntimeError(f"{description} timed out after {timeout}s") from e
        except FileNotFoundError as e:
            raise ContainerRuntimeError("docker binary not found") from e
        return result.stdout

    # --------------- Runtime service ---------------

    def is_daemon_active(self) -> bool:
        """True if systemd reports the runtime unit as active."""
        try:
            result = run_command(
                ['systemctl', 'is-active', '--quiet', self.service_unit],
                f"Checking {self.service_unit} service",
                timeout=10,
                check=False,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            logger.warning(f"Could not query {self.service_unit} state: {e}")
            return False
        return result.returncode == 0

    def start_daemon(self, enable: bool = False) -> None:
        """Start (and optionally enable) the runtime unit."""
        cmd = ['systemctl', 'enable', '--now', self.service_unit] if enable \
            else ['systemctl', 'start', self.service_unit]
        try:
            run_command(cmd, f"Starting {self.service_unit} service", timeout=60)
        except subprocess.CalledProcessError as e:
            stderr = (e.stderr or '').strip()
            raise ContainerRuntimeError(
                f"Failed to start {self.service_unit}: {stderr or e}"
            ) from e
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise ContainerRuntimeError(f"Failed to start {self.service_unit}: {e}") from e

    # --------------- Container state ---------------

    def container_exists(self, name: str) -> bool:
        """Exact-name match over running and stopped containers."""
        output = self._run_docker_command(
            ['ps', '-a', '--filter', f'name=^/{name}$', '--format', '{{.Names}}'],
            f"Looking up container {name}",
        )
        return name in output.split()

    def is_running(self, name: str) -> bool:
        output = self._run_docker_command(
            ['ps', '--filter', f'name=^/{name}$', '--format', '{{.Names}}'],
            f"Checking whether {name} is running",
        )
        return name in output.split()

    def inspect(self, name: str) -> ServiceInstance:
        """Snapshot of the named container (exists=False if absent)."""
        if not self.container_exists(name):
            return ServiceInstance(name=name)

        output = self._run_docker_command(['inspect', name], f"Inspecting container {name}")
        try:
            data = json.loads(output)[0]
        except (ValueError, IndexError) as e:
            raise ContainerRuntimeError(f"Unexpected inspect output for {name}") from e

        labels = (data.get('Config') or {}).get('Labels') or {}
        return ServiceInstance(
            name=name,
            exists=True,
            running=bool((data.get('State') or {}).get('Running')),
            image=(data.get('Config') or {}).get('Image'),
            config_hash=labels.get(CONFIG_HASH_LABEL),
        )

    # --------------- Container actions ---------------

    def pull(self, image: str) -> None:
        logger.info(f"Pulling image {image}...")
        self._run_docker_command(['pull', '-q', image], f"Pulling {image}", timeout=IMAGE_PULL_TIMEOUT)

    def run(
        self,
        name: str,
        image: str,
        ports: Optional[Dict[str, int]] = None,
        volumes: Optional[Dict[Path, str]] = None,
        env_file: Optional[Path] = None,
        labels: Optional[Dict[str, str]] = None,
        restart_policy: str = 'always',
    ) -> str:
        """
        Create and start a detached container.

        Returns:
            Container id
        """
        args = ['run', '-d', '--name', name, '--restart', restart_policy]
        for host_port, container_port in (ports or {}).items():
            args += ['-p', f'{host_port}:{container_port}']
        for source, target in (volumes or {}).items():
            args += ['-v', f'{source}:{target}']
        if env_file:
            args += ['--env-file', str(env_file)]
        for key, value in (labels or {}).items():
            args += ['--label', f'{key}={value}']
        args.append(image)
        return self._run_docker_command(args, f"Creating container {name}").strip()

    def start(self, name: str) -> None:
        self._run_docker_command(['start', name], f"Starting container {name}")

    def stop(self, name: str, timeout: int = CONTAINER_STOP_TIMEOUT) -> None:
        self._run_docker_command(
            ['stop', '-t', str(timeout), name],
            f"Stopping container {name}",
            timeout=timeout + DOCKER_COMMAND_TIMEOUT,
        )

    def restart(self, name: str, timeout: int = CONTAINER_STOP_TIMEOUT) -> None:
        self._run_docker_command(
            ['restart', '-t', str(timeout), name],
            f"Restarting container {name}",
            timeout=timeout + DOCKER_COMMAND_TIMEOUT,
        )

    def remove(self, name: str) -> None:
        self._run_docker_command(['rm', '-f', name], f"Removing container {name}")
