#!/usr/bin/env python3
################################################################################
# MEILI-KEEPER
#
# @file:        config.py
# @module:      meili_keeper.helpers.config
# @description: Immutable configuration resolved from defaults and environment
# @repository:  https://github.com/meili-keeper/meili-keeper
# @version:     1.0.0
#
# ------------------------------------------------------------------------------
# MIT-Lizenz: siehe LICENSE oder https://opensource.org/licenses/MIT
################################################################################

"""
Configuration management for Meili-Keeper.

The environment is read exactly once, by resolve_config(). Every other
module receives the resulting frozen Configuration and never looks at
os.environ itself.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .constants import (
    BACKUP_LOG_FILENAME,
    CONFIG_ENV_FILENAME,
    DEFAULT_BACKUP_PATH,
    DEFAULT_BLOCK_DEVICE,
    DEFAULT_CONFIG_PATH,
    DEFAULT_DATA_PATH,
    DEFAULT_HTTP_ADDR,
    DEFAULT_IMAGE,
    DEFAULT_KEEP_LAST,
    DEFAULT_LOG_PATH,
    DEFAULT_RETENTION_DAYS,
    DISABLED_DEVICE_VALUES,
    ENV_BACKUP_PATH,
    ENV_BLOCK_DEVICE,
    ENV_CONFIG_PATH,
    ENV_DATA_PATH,
    ENV_HTTP_ADDR,
    ENV_IMAGE,
    ENV_KEEP_LAST,
    ENV_LOCK_PATH,
    ENV_LOG_PATH,
    ENV_MASTER_KEY,
    ENV_RETENTION_DAYS,
    HEALTH_LOG_FILENAME,
    MASTER_KEY_FILENAME,
    PROVISION_LOG_FILENAME,
    SERVICE_NAME,
)
from ..errors import ConfigError


# Hosts that mean "all interfaces"
WILDCARD_HOSTS = ("0.0.0.0", "::", "*")


def _split_addr(value: str) -> tuple:
    host, sep, port = value.rpartition(':')
    if not sep or not host:
        raise ValueError(f"HTTP address must be host:port, got '{value}'")
    if host.startswith('[') and host.endswith(']'):
        host = host[1:-1]
    if not port.isdigit():
        raise ValueError(f"Port must be numeric, got '{port}'")
    port_number = int(port)
    if not 1 <= port_number <= 65535:
        raise ValueError(f"Port must be between 1 and 65535, got {port_number}")
    return host, port_number


class Configuration(BaseModel):
    """Resolved settings for one provisioning run or tick."""

    model_config = ConfigDict(frozen=True)

    master_key: Optional[str] = Field(
        default=None,
        repr=False,
        description="Meilisearch master key (None until resolved by SecretStore)",
    )
    http_addr: str = Field(default=DEFAULT_HTTP_ADDR, description="host:port to serve on")
    data_path: Path = Field(default=DEFAULT_DATA_PATH)
    backup_path: Path = Field(default=DEFAULT_BACKUP_PATH)
    log_path: Path = Field(default=DEFAULT_LOG_PATH)
    config_path: Path = Field(default=DEFAULT_CONFIG_PATH)
    block_device: Optional[Path] = Field(
        default=DEFAULT_BLOCK_DEVICE,
        description="Block device for the data volume (None = root volume)",
    )
    image: str = Field(default=DEFAULT_IMAGE)
    container_name: str = Field(default=SERVICE_NAME)
    retention_days: int = Field(default=DEFAULT_RETENTION_DAYS, ge=0)
    keep_last: int = Field(default=DEFAULT_KEEP_LAST, ge=0)
    lock_path: Optional[Path] = Field(default=None)

    @field_validator("master_key")
    @classmethod
    def validate_master_key(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        if not v.strip() or '\n' in v:
            raise ValueError("Master key must be a non-empty single line")
        return v

    @field_validator("http_addr")
    @classmethod
    def validate_http_addr(cls, v: str) -> str:
        _split_addr(v)
        return v

    @field_validator("data_path", "backup_path", "log_path", "config_path", "block_device", "lock_path")
    @classmethod
    def validate_absolute(cls, v: Optional[Path]) -> Optional[Path]:
        if v is not None and not v.is_absolute():
            raise ValueError(f"Path must be absolute, got '{v}'")
        return v

    @field_validator("image", "container_name")
    @classmethod
    def validate_not_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Value cannot be empty")
        return v.strip()

    # --------------- Derived values ---------------

    @property
    def host(self) -> str:
        return _split_addr(self.http_addr)[0]

    @property
    def port(self) -> int:
        return _split_addr(self.http_addr)[1]

    @property
    def health_url(self) -> str:
        """URL probed on this host; wildcard binds are reached via loopback."""
        host = self.host
        if host in WILDCARD_HOSTS:
            host = "127.0.0.1"
        elif ':' in host:
            host = f"[{host}]"
        return f"http://{host}:{self.port}/health"

    @property
    def published_port(self) -> str:
        """Host side of the docker port mapping; a concrete host limits the bind."""
        host = self.host
        if host in WILDCARD_HOSTS:
            return str(self.port)
        if ':' in host:
            host = f"[{host}]"
        return f"{host}:{self.port}"

    @property
    def container_http_addr(self) -> str:
        """Listen address inside the container, reached through the published port."""
        return f"0.0.0.0:{self.port}"

    @property
    def config_env_file(self) -> Path:
        return self.config_path / CONFIG_ENV_FILENAME

    @property
    def master_key_file(self) -> Path:
        return self.config_path / MASTER_KEY_FILENAME

    @property
    def health_log_file(self) -> Path:
        return self.log_path / HEALTH_LOG_FILENAME

    @property
    def backup_log_file(self) -> Path:
        return self.log_path / BACKUP_LOG_FILENAME

    @property
    def provision_log_file(self) -> Path:
        return self.log_path / PROVISION_LOG_FILENAME

    def with_master_key(self, master_key: str) -> Configuration:
        """Return a copy carrying master_key (validated)."""
        return self.__class__(**{**self.model_dump(), "master_key": master_key})

    def masked_summary(self) -> Dict[str, str]:
        """Display-safe view, master key reduced to its first characters."""
        key = self.master_key
        return {
            "Master key": f"{key[:4]}…" if key else "(not set)",
            "HTTP address": self.http_addr,
            "Data path": str(self.data_path),
            "Backup path": str(self.backup_path),
            "Log path": str(self.log_path),
            "Config path": str(self.config_path),
            "Block device": str(self.block_device) if self.block_device else "(none)",
            "Image": self.image,
            "Retention": f"{self.retention_days} days, keep last {self.keep_last}",
        }


def resolve_config(environ: Optional[Mapping[str, str]] = None) -> Configuration:
    """
    Build the Configuration from environment overrides and defaults.

    Pure: reads only `environ` (os.environ when omitted) and has no side
    effects, so repeated calls with the same environment are equal.

    Args:
        environ: Mapping of environment variables

    Returns:
        Frozen Configuration

    Raises:
        ConfigError: If a supplied value is structurally invalid
    """
    env = os.environ if environ is None else environ

    def override(name: str) -> Optional[str]:
        value = env.get(name)
        if value is None or value.strip() == "":
            return None
        return value.strip()

    values: Dict[str, Any] = {}
    mapping = {
        ENV_HTTP_ADDR: "http_addr",
        ENV_DATA_PATH: "data_path",
        ENV_BACKUP_PATH: "backup_path",
        ENV_LOG_PATH: "log_path",
        ENV_CONFIG_PATH: "config_path",
        ENV_IMAGE: "image",
        ENV_RETENTION_DAYS: "retention_days",
        ENV_KEEP_LAST: "keep_last",
        ENV_LOCK_PATH: "lock_path",
    }
    for env_name, field_name in mapping.items():
        value = override(env_name)
        if value is not None:
            values[field_name] = value

    # Master key is taken verbatim; only all-whitespace counts as unset
    master_key = env.get(ENV_MASTER_KEY)
    if master_key is not None and master_key.strip():
        values["master_key"] = master_key

    if ENV_BLOCK_DEVICE in env:
        device = env[ENV_BLOCK_DEVICE].strip()
        values["block_device"] = None if device.lower() in DISABLED_DEVICE_VALUES else device

    try:
        return Configuration(**values)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid configuration: {problems}") from e
