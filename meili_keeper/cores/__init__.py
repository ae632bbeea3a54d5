"""Core components: provisioning, supervision and backups."""

from .backup_scheduler import BackupScheduler
from .docker_runtime import DockerRuntime
from .health_probe import HealthProbe
from .health_supervisor import HealthSupervisor
from .provisioner import Provisioner
from .schedule import render_cron_entries, write_cron_file
from .secret_store import SecretStore, generate_master_key
from .service_launcher import ServiceLauncher, render_config_env, write_config_env
from .volume_provisioner import VolumeProvisioner

__all__ = [
    'BackupScheduler',
    'DockerRuntime',
    'HealthProbe',
    'HealthSupervisor',
    'Provisioner',
    'render_cron_entries',
    'write_cron_file',
    'SecretStore',
    'generate_master_key',
    'ServiceLauncher',
    'render_config_env',
    'write_config_env',
    'VolumeProvisioner',
]
