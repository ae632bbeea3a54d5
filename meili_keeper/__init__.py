################################################################################
# MEILI-KEEPER
#
# @file:        __init__.py
# @module:      meili_keeper
# @description: Exposes version, configuration and core components.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Meili-Keeper: provisioning and supervision for a single Meilisearch container.

Provisions the data volume, master key and container once, then keeps the
service healthy and backed up through scheduled health-check and backup ticks.
"""

from .helpers.constants import VERSION

__version__ = VERSION

from .helpers import Configuration, resolve_config, get_logger, log_manager
from .types import (
    BackupArchive,
    BackupReport,
    HealthProbeResult,
    HealthTickReport,
    ServiceInstance,
    SupervisorState,
    VolumeState,
    VolumeStatus,
)
from .cores import (
    BackupScheduler,
    DockerRuntime,
    HealthProbe,
    HealthSupervisor,
    Provisioner,
    SecretStore,
    ServiceLauncher,
    VolumeProvisioner,
)

__all__ = [
    "VERSION",
    "Configuration",
    "resolve_config",
    "get_logger",
    "log_manager",
    "BackupArchive",
    "BackupReport",
    "HealthProbeResult",
    "HealthTickReport",
    "ServiceInstance",
    "SupervisorState",
    "VolumeState",
    "VolumeStatus",
    "BackupScheduler",
    "DockerRuntime",
    "HealthProbe",
    "HealthSupervisor",
    "Provisioner",
    "SecretStore",
    "ServiceLauncher",
    "VolumeProvisioner",
]
