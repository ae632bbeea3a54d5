################################################################################
# MEILI-KEEPER
#
# @file:        volume_provisioner.py
# @module:      meili_keeper.cores.volume_provisioner
# @description: Format-if-blank, mount and persist the data volume.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
# ==============================================================================
# Hinweise:
# - Never formats a device that already carries a filesystem signature
# - An already mounted target is left untouched (idempotent reruns)
# - Missing device = degraded mode on the root volume, not an error
################################################################################

"""
Data volume provisioning for Meili-Keeper.

Order of checks: device present → target already mounted → signature
probe → format only when blank → mount → fstab entry.
"""

import subprocess
from pathlib import Path
from typing import Optional

from ..errors import VolumeError
from ..helpers.constants import DEFAULT_FS_TYPE, FSTAB_OPTIONS, FSTAB_PATH
from ..helpers.logging import get_logger
from ..helpers.system_utils import is_mount_point, run_command
from ..types import VolumeState

logger = get_logger(__name__)


class VolumeProvisioner:
    """
    Ensures the data path is a mounted filesystem on the block device.
    """

    def __init__(self, fstab_path: Path = FSTAB_PATH, fs_type: str = DEFAULT_FS_TYPE):
        """
        Args:
            fstab_path: fstab file receiving the mount-on-boot entry
            fs_type: Filesystem created on blank devices
        """
        self.fstab_path = Path(fstab_path)
        self.fs_type = fs_type

    # --------------- Probing ---------------

    def detect_filesystem(self, device: Path) -> Optional[str]:
        """
        Filesystem type reported by blkid, or None if the device is blank.

        blkid exits with 2 when no signature is found.
        """
        try:
            result = run_command(
                ['blkid', '-o', 'value', '-s', 'TYPE', str(device)],
                f"Probing filesystem signature on {device}",
                timeout=30,
                check=False,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise VolumeError(f"Cannot probe {device}: {e}") from e

        if result.returncode == 0:
            return result.stdout.strip() or "unknown"
        if result.returncode == 2:
            return None
        raise VolumeError(
            f"blkid failed on {device} (exit {result.returncode}): {result.stderr.strip()}"
        )

    def probe(self, device: Optional[Path], target: Path) -> VolumeState:
        """Current state of device/target without side effects."""
        if device is None or not Path(device).exists():
            return VolumeState.unavailable()
        if is_mount_point(target):
            return VolumeState.mounted(target)
        fs_type = self.detect_filesystem(device)
        if fs_type is None:
            return VolumeState.unformatted()
        return VolumeState.formatted(fs_type)

    # --------------- Provisioning ---------------

    def ensure(self, device: Optional[Path], target: Path) -> VolumeState:
        """
        Idempotently mount device at target, formatting only blank devices.

        Args:
            device: Block device path (None = root volume only)
            target: Mount point (the data path)

        Returns:
            Resulting VolumeState (UNAVAILABLE in degraded mode)

        Raises:
            VolumeError: Format or mount failed
        """
        target = Path(target)

        if device is None:
            logger.warning("No block device configured. Using root volume for data.",
                           extra={'operation': 'volume'})
            return VolumeState.unavailable()

        device = Path(device)
        if not device.exists():
            logger.warning(f"Block device {device} not found. Using root volume for data.",
                           extra={'operation': 'volume'})
            return VolumeState.unavailable()

        if is_mount_point(target):
            logger.info(f"{target} is already mounted, leaving it as is",
                        extra={'operation': 'volume'})
            return VolumeState.mounted(target)

        logger.info(f"Setting up volume {device} at {target}...", extra={'operation': 'volume'})
        fs_type = self.detect_filesystem(device)
        if fs_type is None:
            self._format(device)
            fs_type = self.fs_type
        else:
            logger.info(f"{device} already carries a {fs_type} filesystem, not formatting",
                        extra={'operation': 'volume'})

        self._mount(device, target)
        self._persist_mount(device, target, fs_type)
        return VolumeState.mounted(target, fs_type=fs_type)

    def _format(self, device: Path) -> None:
        logger.info(f"Formatting {device} as {self.fs_type}...", extra={'operation': 'volume'})
        try:
            run_command(
                ['mkfs', '-t', self.fs_type, '-q', str(device)],
                f"Formatting {device}",
                timeout=600,
            )
        except subprocess.CalledProcessError as e:
            raise VolumeError(f"Formatting {device} failed: {(e.stderr or '').strip() or e}") from e
        except (FileNotFoundError, subprocess.TimeoutExpired) as e:
            raise VolumeError(f"Formatting {device} failed: {e}") from e

    def _mount(self, device: Path, target: Path) -> None:
        try:
            target.mkdir(parents=True, exist_ok=True)
            run_command(['mount', str(device), str(target)], f"Mounting {device}", timeout=60)
        except subprocess.CalledProcessError as e:
            raise VolumeError(
                f"Mounting {device} at {target} failed: {(e.stderr or '').strip() or e}"
            ) from e
        except (OSError, subprocess.TimeoutExpired) as e:
            raise VolumeError(f"Mounting {device} at {target} failed: {e}") from e
        logger.info(f"Mounted {device} at {target}", extra={'operation': 'volume'})

    def _persist_mount(self, device: Path, target: Path, fs_type: str) -> bool:
        """
        Append an fstab entry unless one already mentions target.

        Returns:
            True if a line was written
        """
        try:
            existing = self.fstab_path.read_text() if self.fstab_path.exists() else ""
        except OSError as e:
            raise VolumeError(f"Cannot read {self.fstab_path}: {e}") from e

        if str(target) in existing:
            logger.debug(f"fstab already has an entry for {target}")
            return False

        line = f"{device} {target} {fs_type} {FSTAB_OPTIONS}\n"
        try:
            with open(self.fstab_path, 'a', encoding='utf-8') as f:
                if existing and not existing.endswith('\n'):
                    f.write('\n')
                f.write(line)
        except OSError as e:
            raise VolumeError(f"Cannot update {self.fstab_path}: {e}") from e
        logger.info(f"Added {target} to {self.fstab_path}", extra={'operation': 'volume'})
        return True
