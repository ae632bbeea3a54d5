"""Unit tests for DockerRuntime (docker CLI wrapper)."""

import json
import subprocess
from pathlib import Path
from unittest.mock import Mock

import pytest

from meili_keeper.cores.docker_runtime import DockerRuntime
from meili_keeper.errors import ContainerRuntimeError
from meili_keeper.helpers.constants import CONFIG_HASH_LABEL


def _ok(stdout=""):
    return Mock(returncode=0, stdout=stdout, stderr="")


@pytest.mark.unit
class TestDaemon:

    def test_active(self, mock_subprocess):
        assert DockerRuntime().is_daemon_active() is True
        assert mock_subprocess.call_args[0][0] == ["systemctl", "is-active", "--quiet", "docker"]

    def test_inactive(self, mock_subprocess):
        mock_subprocess.return_value = Mock(returncode=3, stdout="", stderr="")
        assert DockerRuntime().is_daemon_active() is False

    def test_systemctl_missing(self, mock_subprocess):
        mock_subprocess.side_effect = FileNotFoundError("systemctl")
        assert DockerRuntime().is_daemon_active() is False

    def test_start_and_enable(self, mock_subprocess):
        DockerRuntime().start_daemon(enable=True)
        assert mock_subprocess.call_args[0][0] == ["systemctl", "enable", "--now", "docker"]

    def test_start_failure(self, mock_subprocess):
        mock_subprocess.return_value = Mock(returncode=1, stdout="", stderr="unit not found")
        with pytest.raises(ContainerRuntimeError, match="unit not found"):
            DockerRuntime().start_daemon()


@pytest.mark.unit
class TestContainerQueries:

    def test_exists_uses_exact_name_filter(self, mock_subprocess):
        mock_subprocess.return_value = _ok("meilisearch\n")

        assert DockerRuntime().container_exists("meilisearch") is True
        cmd = mock_subprocess.call_args[0][0]
        assert cmd[:3] == ["docker", "ps", "-a"]
        assert "name=^/meilisearch$" in cmd

    def test_prefix_match_is_not_existence(self, mock_subprocess):
        mock_subprocess.return_value = _ok("meilisearch-old\n")
        assert DockerRuntime().container_exists("meilisearch") is False

    def test_inspect_reads_labels(self, mock_subprocess):
        inspect_json = json.dumps([{
            "State": {"Running": False},
            "Config": {"Image": "getmeili/meilisearch:v1.8", "Labels": {CONFIG_HASH_LABEL: "abc"}},
        }])
        mock_subprocess.side_effect = [_ok("meilisearch\n"), _ok(inspect_json)]

        instance = DockerRuntime().inspect("meilisearch")

        assert instance.exists is True
        assert instance.running is False
        assert instance.image == "getmeili/meilisearch:v1.8"
        assert instance.config_hash == "abc"

    def test_inspect_absent(self, mock_subprocess):
        mock_subprocess.return_value = _ok("")
        instance = DockerRuntime().inspect("meilisearch")
        assert instance.exists is False
        assert mock_subprocess.call_count == 1


@pytest.mark.unit
class TestContainerActions:

    def test_run_publishes_on_bound_host(self, mock_subprocess):
        mock_subprocess.return_value = _ok("abc123\n")

        DockerRuntime().run(name="meilisearch", image="img", ports={"127.0.0.1:7700": 7700})

        args = mock_subprocess.call_args[0][0]
        assert args[args.index("-p") + 1] == "127.0.0.1:7700:7700"

    def test_run_builds_command(self, mock_subprocess):
        mock_subprocess.return_value = _ok("abc123\n")

        container_id = DockerRuntime().run(
            name="meilisearch",
            image="getmeili/meilisearch:latest",
            ports={"7700": 7700},
            volumes={Path("/meilisearch/data"): "/meili_data"},
            env_file=Path("/etc/meilisearch/config.env"),
            labels={CONFIG_HASH_LABEL: "abc"},
        )

        assert container_id == "abc123"
        assert mock_subprocess.call_args[0][0] == [
            "docker", "run", "-d", "--name", "meilisearch", "--restart", "always",
            "-p", "7700:7700",
            "-v", "/meilisearch/data:/meili_data",
            "--env-file", "/etc/meilisearch/config.env",
            "--label", f"{CONFIG_HASH_LABEL}=abc",
            "getmeili/meilisearch:latest",
        ]

    def test_stop_passes_timeout(self, mock_subprocess):
        DockerRuntime().stop("meilisearch", timeout=30)
        assert mock_subprocess.call_args[0][0] == ["docker", "stop", "-t", "30", "meilisearch"]

    def test_remove_forces(self, mock_subprocess):
        DockerRuntime().remove("meilisearch")
        assert mock_subprocess.call_args[0][0] == ["docker", "rm", "-f", "meilisearch"]

    def test_failure_carries_stderr(self, mock_subprocess):
        mock_subprocess.return_value = Mock(returncode=1, stdout="", stderr="No such container: meilisearch")
        with pytest.raises(ContainerRuntimeError, match="No such container"):
            DockerRuntime().start("meilisearch")

    def test_timeout(self, mock_subprocess):
        mock_subprocess.side_effect = subprocess.TimeoutExpired("docker", 120)
        with pytest.raises(ContainerRuntimeError, match="timed out"):
            DockerRuntime().pull("getmeili/meilisearch:latest")

    def test_missing_binary(self, mock_subprocess):
        mock_subprocess.side_effect = FileNotFoundError("docker")
        with pytest.raises(ContainerRuntimeError, match="not found"):
            DockerRuntime().restart("meilisearch")
