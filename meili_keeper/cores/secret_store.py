################################################################################
# MEILI-KEEPER
#
# @file:        secret_store.py
# @module:      meili_keeper.cores.secret_store
# @description: Persisted master key with owner-only permissions.
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Master key storage for Meili-Keeper.

A key handed out to clients must survive reprovisioning, so a persisted
key always wins over a freshly generated one.
"""

from __future__ import annotations

import base64
import os
import secrets
import tempfile
from pathlib import Path
from typing import Optional

from ..errors import SecretStoreError
from ..helpers.config import Configuration
from ..helpers.constants import ENV_MASTER_KEY
from ..helpers.logging import get_logger

logger = get_logger(__name__)


def generate_master_key(num_bytes: int = 32) -> str:
    """Random key in the shape of `openssl rand -base64 32`."""
    return base64.b64encode(secrets.token_bytes(num_bytes)).decode('ascii')


class SecretStore:
    """Reads and writes `MEILI_MASTER_KEY=<value>` at a fixed path."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Optional[str]:
        """
        Return the persisted key, or None if no file exists.

        Raises:
            SecretStoreError: File unreadable or malformed
        """
        if not self.path.exists():
            return None
        try:
            content = self.path.read_text(encoding='utf-8')
        except OSError as e:
            raise SecretStoreError(f"Cannot read {self.path}: {e}") from e

        for line in content.splitlines():
            line = line.strip()
            if not line or line.startswith('#'):
                continue
            key, sep, value = line.partition('=')
            if sep and key.strip() == ENV_MASTER_KEY and value.strip():
                return value.strip()
        raise SecretStoreError(f"No {ENV_MASTER_KEY} entry in {self.path}")

    def save(self, master_key: str) -> None:
        """Atomically write the key file with mode 600."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix='.master-key-',
            suffix='.tmp',
        )
        try:
            os.fchmod(temp_fd, 0o600)
            with os.fdopen(temp_fd, 'w', encoding='utf-8') as f:
                f.write(f"{ENV_MASTER_KEY}={master_key}\n")
            os.replace(temp_path, self.path)
            os.chmod(self.path, 0o600)
        except OSError as e:
            Path(temp_path).unlink(missing_ok=True)
            raise SecretStoreError(f"Cannot write {self.path}: {e}") from e
        logger.info(f"Master key stored in {self.path}", extra={'operation': 'secret'})

    def resolve(self, config: Configuration) -> Configuration:
        """
        Settle on the effective master key and persist it.

        Precedence: explicit key in config > persisted key > new key.

        Returns:
            Copy of config carrying the effective key
        """
        persisted = self.load()

        if config.master_key:
            key = config.master_key
            if persisted and persisted != key:
                logger.warning(
                    f"Replacing the persisted master key with the one supplied via {ENV_MASTER_KEY}; "
                    "clients using the old key will be rejected",
                    extra={'operation': 'secret'},
                )
        elif persisted:
            logger.info("Reusing persisted master key", extra={'operation': 'secret'})
            key = persisted
        else:
            logger.info("Generating new master key", extra={'operation': 'secret'})
            key = generate_master_key()

        if key != persisted:
            self.save(key)
        else:
            self._enforce_permissions()
        return config.with_master_key(key)

    def _enforce_permissions(self) -> None:
        try:
            if self.path.stat().st_mode & 0o777 != 0o600:
                os.chmod(self.path, 0o600)
                logger.info(f"Restricted permissions of {self.path} to 600")
        except OSError as e:
            raise SecretStoreError(f"Cannot restrict permissions of {self.path}: {e}") from e
