"""
Shared pytest fixtures for Meili-Keeper tests.

Provides an in-memory container runtime, a scripted health probe,
temporary configurations and CLI helpers.
"""

from pathlib import Path
from unittest.mock import Mock, patch

import pytest
from typer.testing import CliRunner

from meili_keeper.errors import ContainerRuntimeError, ProbeError
from meili_keeper.helpers import log_manager
from meili_keeper.helpers.config import Configuration
from meili_keeper.helpers.constants import CONFIG_HASH_LABEL
from meili_keeper.types import HealthProbeResult, ServiceInstance


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "integration: end-to-end scenarios across components")


class FakeRuntime:
    """
    In-memory stand-in for DockerRuntime.

    Queries are answered from flags; actions flip them and are recorded
    in `actions` so tests can assert on what a component did.
    """

    def __init__(
        self,
        daemon_active: bool = True,
        daemon_starts: bool = True,
        exists: bool = True,
        running: bool = True,
        config_hash=None,
        image: str = "getmeili/meilisearch:latest",
    ):
        self.daemon_active = daemon_active
        self.daemon_starts = daemon_starts
        self.exists = exists
        self.running = running
        self.config_hash = config_hash
        self.image = image
        self.actions = []
        self.run_kwargs = None
        self.fail_on = set()

    def _record(self, action: str):
        self.actions.append(action)
        if action in self.fail_on:
            raise ContainerRuntimeError(f"{action} failed")

    def is_daemon_active(self) -> bool:
        return self.daemon_active

    def start_daemon(self, enable: bool = False) -> None:
        self._record("start_daemon")
        if self.daemon_starts:
            self.daemon_active = True

    def container_exists(self, name: str) -> bool:
        return self.exists

    def is_running(self, name: str) -> bool:
        return self.exists and self.running

    def inspect(self, name: str) -> ServiceInstance:
        if not self.exists:
            return ServiceInstance(name=name)
        return ServiceInstance(
            name=name,
            exists=True,
            running=self.running,
            image=self.image,
            config_hash=self.config_hash,
        )

    def pull(self, image: str) -> None:
        self._record("pull")

    def run(self, name, image, ports=None, volumes=None, env_file=None, labels=None,
            restart_policy="always") -> str:
        self._record("run")
        self.run_kwargs = {
            "name": name,
            "image": image,
            "ports": ports,
            "volumes": volumes,
            "env_file": env_file,
            "labels": labels,
            "restart_policy": restart_policy,
        }
        self.exists = True
        self.running = True
        self.image = image
        self.config_hash = (labels or {}).get(CONFIG_HASH_LABEL)
        return "abc123"

    def start(self, name: str) -> None:
        self._record("start")
        if not self.exists:
            raise ContainerRuntimeError(f"No such container: {name}")
        self.running = True

    def stop(self, name: str, timeout: int = 30) -> None:
        self._record("stop")
        if not self.exists:
            raise ContainerRuntimeError(f"No such container: {name}")
        self.running = False

    def restart(self, name: str, timeout: int = 30) -> None:
        self._record("restart")
        if not self.exists:
            raise ContainerRuntimeError(f"No such container: {name}")
        self.running = True

    def remove(self, name: str) -> None:
        self._record("remove")
        self.exists = False
        self.running = False
        self.config_hash = None


class FakeProbe:
    """Health probe answering from a list of outcomes (True/False/exception)."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes) or [True]
        self.urls = []

    def probe(self, url: str) -> None:
        self.urls.append(url)
        outcome = self.outcomes.pop(0) if len(self.outcomes) > 1 else self.outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        if not outcome:
            raise ProbeError(f"{url} answered HTTP 500")

    def check(self, url: str) -> HealthProbeResult:
        try:
            self.probe(url)
        except ProbeError:
            return HealthProbeResult.UNREACHABLE
        return HealthProbeResult.HEALTHY


@pytest.fixture(autouse=True)
def _detach_log_file():
    """Keep per-run log files and CLI console handlers from leaking between tests."""
    yield
    log_manager.detach_file()
    log_manager.configure(level="INFO", console=False)


@pytest.fixture
def cli_runner():
    """Typer CLI runner for testing commands."""
    return CliRunner()


@pytest.fixture
def fake_runtime():
    """Factory for FakeRuntime instances."""
    return FakeRuntime


@pytest.fixture
def fake_probe():
    """Factory for FakeProbe instances."""
    return FakeProbe


@pytest.fixture
def config(tmp_path) -> Configuration:
    """Configuration rooted in tmp_path, no block device, no master key."""
    return Configuration(
        http_addr="0.0.0.0:7700",
        data_path=tmp_path / "meilisearch" / "data",
        backup_path=tmp_path / "meilisearch" / "backups",
        log_path=tmp_path / "log",
        config_path=tmp_path / "etc",
        block_device=None,
        lock_path=tmp_path / "run" / "meili-keeper.lock",
    )


@pytest.fixture
def meili_env(tmp_path, monkeypatch):
    """MEILI_* environment pointing into tmp_path."""
    env = {
        "MEILI_HTTP_ADDR": "127.0.0.1:7700",
        "MEILI_DATA_PATH": str(tmp_path / "meilisearch" / "data"),
        "MEILI_BACKUP_PATH": str(tmp_path / "meilisearch" / "backups"),
        "MEILI_LOG_PATH": str(tmp_path / "log"),
        "MEILI_CONFIG_PATH": str(tmp_path / "etc"),
        "MEILI_EBS_DEVICE": "none",
        "MEILI_LOCK_PATH": str(tmp_path / "run" / "meili-keeper.lock"),
    }
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    monkeypatch.delenv("MEILI_MASTER_KEY", raising=False)
    return env


@pytest.fixture
def mock_root():
    """Mock os.geteuid() to return 0 (root)."""
    with patch("os.geteuid", return_value=0):
        yield


@pytest.fixture
def mock_non_root():
    """Mock os.geteuid() to return non-zero (not root)."""
    with patch("os.geteuid", return_value=1000):
        yield


@pytest.fixture
def mock_subprocess():
    """Mock subprocess.run for external commands."""
    with patch("subprocess.run") as mock_run:
        mock_run.return_value = Mock(returncode=0, stdout="", stderr="")
        yield mock_run


@pytest.fixture
def make_data_dir(config):
    """Create a small data directory for archive tests."""
    def _make(files=None) -> Path:
        config.data_path.mkdir(parents=True, exist_ok=True)
        for name, content in (files or {"data.mdb": "index-bytes"}).items():
            target = config.data_path / name
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content)
        return config.data_path
    return _make
