################################################################################
# MEILI-KEEPER
#
# @file:        types.py
# @module:      meili_keeper.types
# @description: Shared data models for volume, container, probe and backup state.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - VolumeState is a tagged variant keyed by VolumeStatus
# - ServiceInstance is a snapshot of the one managed container
# - Reports are returned by provisioning and by every tick
################################################################################

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import List, Optional, Dict, Any


# ---- Volume ----

class VolumeStatus(str, Enum):
    UNAVAILABLE = "unavailable"  # device missing, root volume in use
    UNFORMATTED = "unformatted"
    FORMATTED = "formatted"
    MOUNTED = "mounted"


@dataclass(frozen=True)
class VolumeState:
    status: VolumeStatus
    fs_type: Optional[str] = None
    mount_path: Optional[Path] = None

    @classmethod
    def unavailable(cls) -> VolumeState:
        return cls(VolumeStatus.UNAVAILABLE)

    @classmethod
    def unformatted(cls) -> VolumeState:
        return cls(VolumeStatus.UNFORMATTED)

    @classmethod
    def formatted(cls, fs_type: str) -> VolumeState:
        return cls(VolumeStatus.FORMATTED, fs_type=fs_type)

    @classmethod
    def mounted(cls, path: Path, fs_type: Optional[str] = None) -> VolumeState:
        return cls(VolumeStatus.MOUNTED, fs_type=fs_type, mount_path=Path(path))


# ---- Container ----

@dataclass
class ServiceInstance:
    name: str
    exists: bool = False
    running: bool = False
    image: Optional[str] = None
    config_hash: Optional[str] = None  # label recorded at creation


# ---- Health ----

class HealthProbeResult(str, Enum):
    HEALTHY = "healthy"
    UNREACHABLE = "unreachable"
    CONTAINER_ABSENT = "container_absent"
    CONTAINER_STOPPED = "container_stopped"


class SupervisorState(str, Enum):
    RUNTIME_DOWN = "runtime_down"
    CONTAINER_MISSING = "container_missing"
    CONTAINER_STOPPED = "container_stopped"
    CONTAINER_RUNNING_UNHEALTHY = "container_running_unhealthy"
    HEALTHY = "healthy"


@dataclass
class HealthTickReport:
    states: List[SupervisorState] = field(default_factory=list)
    actions: List[str] = field(default_factory=list)
    result: Optional[HealthProbeResult] = None

    @property
    def final_state(self) -> Optional[SupervisorState]:
        return self.states[-1] if self.states else None


# ---- Backups ----

@dataclass
class BackupArchive:
    path: Path
    timestamp: Optional[datetime]
    mtime: datetime
    size_bytes: int = 0

    @property
    def name(self) -> str:
        return self.path.name

    def age_days(self, now: datetime) -> int:
        """Whole days since last modification, as counted by find -mtime."""
        return int((now - self.mtime).total_seconds() // 86400)


@dataclass
class BackupReport:
    started_at: datetime
    archive: Optional[BackupArchive] = None
    pruned: List[BackupArchive] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def success(self) -> bool:
        return self.archive is not None and not self.errors

    def to_dict(self) -> Dict[str, Any]:
        return {
            "started_at": self.started_at.isoformat(),
            "archive": str(self.archive.path) if self.archive else None,
            "pruned": [str(a.path) for a in self.pruned],
            "errors": self.errors,
            "duration_seconds": self.duration_seconds,
            "success": self.success,
        }


# ---- Provisioning ----

@dataclass
class LaunchOutcome:
    action: str  # "created", "recreated", "started", "unchanged"
    container: ServiceInstance
    health: Optional[HealthProbeResult] = None


@dataclass
class ProvisionReport:
    volume: VolumeState
    launch: Optional[LaunchOutcome] = None
    master_key_file: Optional[Path] = None
    cron_file_written: bool = False
