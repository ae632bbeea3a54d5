################################################################################
# MEILI-KEEPER
#
# @file:        service_launcher.py
# @module:      meili_keeper.cores.service_launcher
# @description: Writes config.env and keeps exactly one current service container.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - The container carries a label with the hash of its config.env and image
# - A changed hash means stop + remove + recreate; same hash keeps the container
# - The post-launch health probe only warns, it never fails the run
################################################################################

"""
Service container launch for Meili-Keeper.
"""

from __future__ import annotations

import hashlib
import os
import tempfile
import time
from pathlib import Path
from typing import Optional

from ..errors import ContainerRuntimeError, LaunchError
from ..helpers.config import Configuration
from ..helpers.constants import (
    CONFIG_HASH_LABEL,
    CONTAINER_CONFIG_FILE,
    CONTAINER_DATA_PATH,
    ENV_HTTP_ADDR,
    ENV_MASTER_KEY,
    POST_LAUNCH_GRACE_PERIOD,
    SERVICE_ENVIRONMENT,
)
from ..helpers.logging import get_logger
from ..types import HealthProbeResult, LaunchOutcome, ServiceInstance
from .docker_runtime import DockerRuntime
from .health_probe import HealthProbe

logger = get_logger(__name__)


def render_config_env(config: Configuration) -> str:
    """Content of config.env (key=value lines read by docker --env-file)."""
    if not config.master_key:
        raise LaunchError("Master key must be resolved before writing config.env")
    lines = [
        "# Meilisearch Configuration",
        f"MEILI_ENV={SERVICE_ENVIRONMENT['MEILI_ENV']}",
        f"{ENV_MASTER_KEY}={config.master_key}",
        f"{ENV_HTTP_ADDR}={config.container_http_addr}",
        f"MEILI_NO_ANALYTICS={SERVICE_ENVIRONMENT['MEILI_NO_ANALYTICS']}",
        f"MEILI_DB_PATH={SERVICE_ENVIRONMENT['MEILI_DB_PATH']}",
        f"MEILI_MAX_INDEX_SIZE={SERVICE_ENVIRONMENT['MEILI_MAX_INDEX_SIZE']}",
    ]
    return "\n".join(lines) + "\n"


def config_fingerprint(config: Configuration) -> str:
    """Hash over everything that ends up baked into the container."""
    digest = hashlib.sha256()
    for part in (
        render_config_env(config),
        config.image,
        config.published_port,
        str(config.data_path),
        str(config.config_env_file),
    ):
        digest.update(part.encode('utf-8'))
        digest.update(b'\0')
    return digest.hexdigest()[:16]


def write_config_env(config: Configuration) -> Path:
    """Atomically write config.env with mode 600 (it holds the master key)."""
    path = config.config_env_file
    path.parent.mkdir(parents=True, exist_ok=True)
    temp_fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix='.config-env-', suffix='.tmp')
    try:
        os.fchmod(temp_fd, 0o600)
        with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
            f.write(render_config_env(config))
        os.replace(temp_path, path)
    except OSError as e:
        Path(temp_path).unlink(missing_ok=True)
        raise LaunchError(f"Cannot write {path}: {e}") from e
    logger.info(f"Configuration written to {path}", extra={'operation': 'launch'})
    return path


class ServiceLauncher:
    """
    Ensures one running service container built from the current config.
    """

    def __init__(
        self,
        runtime: DockerRuntime,
        probe: Optional[HealthProbe] = None,
        grace_period: float = POST_LAUNCH_GRACE_PERIOD,
    ):
        self.runtime = runtime
        self.probe = probe or HealthProbe()
        self.grace_period = grace_period

    def launch(self, config: Configuration, force_recreate: bool = False) -> LaunchOutcome:
        """
        Write config.env, pull the image and create/recreate/start the container.

        Args:
            config: Configuration with a resolved master key
            force_recreate: Recreate even if the fingerprint matches

        Raises:
            LaunchError: Writing config, pulling or creating failed
        """
        name = config.container_name
        write_config_env(config)
        fingerprint = config_fingerprint(config)

        try:
            self.runtime.pull(config.image)
            instance = self.runtime.inspect(name)

            if not instance.exists:
                logger.info(f"Creating container {name}...", extra={'operation': 'launch'})
                self._create(config, fingerprint)
                action = "created"
            elif force_recreate or instance.config_hash != fingerprint:
                reason = "forced" if force_recreate else "configuration changed"
                logger.info(f"Recreating container {name} ({reason})...",
                            extra={'operation': 'launch'})
                if instance.running:
                    self.runtime.stop(name)
                self.runtime.remove(name)
                self._create(config, fingerprint)
                action = "recreated"
            elif not instance.running:
                logger.info(f"Starting existing container {name}...", extra={'operation': 'launch'})
                self.runtime.start(name)
                action = "started"
            else:
                logger.info(f"Container {name} is up to date", extra={'operation': 'launch'})
                action = "unchanged"
        except ContainerRuntimeError as e:
            raise LaunchError(str(e)) from e

        container = ServiceInstance(
            name=name, exists=True, running=True, image=config.image, config_hash=fingerprint
        )
        outcome = LaunchOutcome(action=action, container=container)
        outcome.health = self.verify(config)
        return outcome

    def _create(self, config: Configuration, fingerprint: str) -> None:
        self.runtime.run(
            name=config.container_name,
            image=config.image,
            ports={config.published_port: config.port},
            volumes={
                config.data_path: CONTAINER_DATA_PATH,
                config.config_env_file: CONTAINER_CONFIG_FILE,
            },
            env_file=config.config_env_file,
            labels={CONFIG_HASH_LABEL: fingerprint},
        )

    def verify(self, config: Configuration) -> HealthProbeResult:
        """Wait the grace period and probe once; failure is only a warning."""
        logger.info("Verifying installation...", extra={'operation': 'launch'})
        if self.grace_period:
            time.sleep(self.grace_period)
        result = self.probe.check(config.health_url)
        if result is HealthProbeResult.HEALTHY:
            logger.info("Meilisearch is running successfully!", extra={'operation': 'launch'})
        else:
            logger.warning(
                f"Meilisearch may not be running properly. "
                f"Check logs with 'docker logs {config.container_name}'",
                extra={'operation': 'launch'},
            )
        return result
