################################################################################
# MEILI-KEEPER
#
# @file:        errors.py
# @module:      meili_keeper.errors
# @description: Exception hierarchy for provisioning and tick failures.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Exceptions raised by Meili-Keeper.

Provisioning errors abort the whole run. Tick errors are scoped to one
health-check or backup invocation.
"""


class MeiliKeeperError(Exception):
    """Base class for all Meili-Keeper errors."""


class ConfigError(MeiliKeeperError):
    """A configuration value is structurally invalid."""


class PrivilegeError(MeiliKeeperError):
    """The command needs root privileges."""


class VolumeError(MeiliKeeperError):
    """Formatting or mounting the data volume failed."""


class LaunchError(MeiliKeeperError):
    """Pulling the image or creating the service container failed."""


class ContainerRuntimeError(MeiliKeeperError):
    """A container runtime command failed."""


class RuntimeUnavailableError(ContainerRuntimeError):
    """The container runtime service could not be brought up."""


class ContainerAbsentError(ContainerRuntimeError):
    """The service container does not exist and cannot be self-healed."""

    def __init__(self, name: str):
        super().__init__(f"Container '{name}' does not exist")
        self.name = name


class ProbeError(MeiliKeeperError):
    """The health endpoint did not answer with a 2xx status."""


class ProbeTimeoutError(ProbeError):
    """The health endpoint did not answer within the timeout."""


class BackupIOError(MeiliKeeperError):
    """Creating the backup archive failed."""


class SecretStoreError(MeiliKeeperError):
    """The persisted master key could not be read or written."""


class LockError(MeiliKeeperError):
    """Another Meili-Keeper process holds the lock."""

    def __init__(self, message: str, holder_pid=None):
        super().__init__(message)
        self.holder_pid = holder_pid


class LockFileError(MeiliKeeperError):
    """The lock file cannot be opened (bad path or permissions)."""
