"""Unit tests for SecretStore and master key generation."""

import base64
import stat

import pytest

from meili_keeper.cores.secret_store import SecretStore, generate_master_key
from meili_keeper.errors import SecretStoreError


def _mode(path):
    return stat.S_IMODE(path.stat().st_mode)


@pytest.mark.unit
class TestGenerateMasterKey:

    def test_is_base64_of_32_bytes(self):
        key = generate_master_key()
        assert len(base64.b64decode(key)) == 32

    def test_keys_differ(self):
        assert generate_master_key() != generate_master_key()


@pytest.mark.unit
class TestLoadSave:

    def test_load_missing_file(self, tmp_path):
        assert SecretStore(tmp_path / "master_key.txt").load() is None

    def test_save_then_load(self, tmp_path):
        store = SecretStore(tmp_path / "etc" / "master_key.txt")

        store.save("abc123")

        assert store.path.read_text() == "MEILI_MASTER_KEY=abc123\n"
        assert store.load() == "abc123"
        assert _mode(store.path) == 0o600

    def test_save_leaves_no_temp_files(self, tmp_path):
        store = SecretStore(tmp_path / "master_key.txt")
        store.save("abc123")
        assert [p.name for p in tmp_path.iterdir()] == ["master_key.txt"]

    def test_load_ignores_comments(self, tmp_path):
        path = tmp_path / "master_key.txt"
        path.write_text("# generated\n\nMEILI_MASTER_KEY=xyz==\n")
        assert SecretStore(path).load() == "xyz=="

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "master_key.txt"
        path.write_text("garbage\n")
        with pytest.raises(SecretStoreError, match="No MEILI_MASTER_KEY"):
            SecretStore(path).load()


@pytest.mark.unit
class TestResolve:

    def test_generates_and_persists_when_nothing_known(self, config):
        store = SecretStore(config.master_key_file)

        resolved = store.resolve(config)

        assert resolved.master_key
        assert store.load() == resolved.master_key
        assert _mode(config.master_key_file) == 0o600

    def test_reuses_persisted_key(self, config):
        store = SecretStore(config.master_key_file)
        store.save("persisted-key")

        first = store.resolve(config)
        second = store.resolve(config)

        assert first.master_key == "persisted-key"
        assert second.master_key == "persisted-key"

    def test_explicit_key_wins_and_is_persisted(self, config, caplog):
        store = SecretStore(config.master_key_file)
        store.save("old-key")

        resolved = store.resolve(config.with_master_key("new-key"))

        assert resolved.master_key == "new-key"
        assert store.load() == "new-key"
        assert "Replacing the persisted master key" in caplog.text

    def test_same_explicit_key_does_not_rewrite(self, config):
        store = SecretStore(config.master_key_file)
        store.save("same-key")
        before = config.master_key_file.stat().st_mtime_ns

        store.resolve(config.with_master_key("same-key"))

        assert config.master_key_file.stat().st_mtime_ns == before

    def test_loose_permissions_are_tightened(self, config):
        store = SecretStore(config.master_key_file)
        store.save("abc123")
        config.master_key_file.chmod(0o644)

        store.resolve(config)

        assert _mode(config.master_key_file) == 0o600

    def test_input_config_is_not_modified(self, config):
        SecretStore(config.master_key_file).resolve(config)
        assert config.master_key is None
