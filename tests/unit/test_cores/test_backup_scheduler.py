"""Unit tests for BackupScheduler (archive, restart, retention)."""

import os
import tarfile
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from meili_keeper.cores.backup_scheduler import BackupScheduler

NOW = datetime(2025, 6, 15, 2, 0, 0)


def make_archive(config, days_old, name=None, now=NOW):
    """Create an archive file whose mtime lies days_old (+1h) before now."""
    config.backup_path.mkdir(parents=True, exist_ok=True)
    moment = now - timedelta(days=days_old, hours=1)
    path = config.backup_path / (name or f"meilisearch_{moment:%Y%m%d_%H%M%S}.tar.gz")
    path.write_bytes(b"archive")
    stamp = moment.timestamp()
    os.utime(path, (stamp, stamp))
    return path


@pytest.mark.unit
class TestArchive:

    def test_tick_writes_archive_and_restarts(self, config, fake_runtime, make_data_dir):
        make_data_dir({"data.mdb": "index-bytes", "indexes/movies/lock": ""})
        runtime = fake_runtime()

        report = BackupScheduler(runtime).tick(config)

        assert report.success
        assert report.archive.path.parent == config.backup_path
        assert report.archive.name.startswith("meilisearch_")
        assert report.archive.name.endswith(".tar.gz")
        assert report.to_dict()["archive"] == str(report.archive.path)
        assert runtime.actions == ["stop", "start"]
        assert runtime.running is True

    def test_archive_contains_data_directory(self, config, fake_runtime, make_data_dir):
        make_data_dir({"data.mdb": "index-bytes"})

        report = BackupScheduler(fake_runtime()).tick(config)

        with tarfile.open(report.archive.path, "r:gz") as tar:
            names = tar.getnames()
        expected = str(config.data_path).lstrip("/") + "/data.mdb"
        assert expected in names

    def test_archive_name_uses_timestamp(self, config, fake_runtime, make_data_dir):
        make_data_dir()
        moment = datetime(2025, 1, 1, 2, 0, 0)

        report = BackupScheduler(fake_runtime()).tick(config, now=moment)

        assert report.archive.name == "meilisearch_20250101_020000.tar.gz"
        assert report.archive.timestamp == moment

    def test_two_ticks_never_collide(self, config, fake_runtime, make_data_dir):
        make_data_dir()
        scheduler = BackupScheduler(fake_runtime())
        moment = datetime(2025, 1, 1, 2, 0, 0)

        first = scheduler.tick(config, now=moment)
        second = scheduler.tick(config, now=moment + timedelta(seconds=1))
        third = scheduler.tick(config, now=moment + timedelta(seconds=1))

        names = {first.archive.name, second.archive.name, third.archive.name}
        assert len(names) == 3
        assert third.archive.name == "meilisearch_20250101_020001_1.tar.gz"

    def test_failed_archive_still_restarts_service(self, config, fake_runtime):
        runtime = fake_runtime()

        report = BackupScheduler(runtime).tick(config)

        assert report.success is False
        assert report.archive is None
        assert "does not exist" in report.errors[0]
        assert runtime.actions == ["stop", "start"]
        assert runtime.running is True

    def test_interrupt_still_restarts_service(self, config, fake_runtime, make_data_dir, monkeypatch):
        make_data_dir()
        runtime = fake_runtime()

        def interrupted(self, config, moment):
            raise KeyboardInterrupt

        monkeypatch.setattr(BackupScheduler, "create_archive", interrupted)
        with pytest.raises(KeyboardInterrupt):
            BackupScheduler(runtime).tick(config)

        assert runtime.actions == ["stop", "start"]
        assert runtime.running is True

    def test_vanished_archive_is_reported_as_failure(self, config, fake_runtime, make_data_dir, monkeypatch):
        make_data_dir()
        runtime = fake_runtime()
        original_rename = Path.rename

        def rename_then_lose(self, target):
            moved = original_rename(self, target)
            Path(target).unlink()
            return moved

        monkeypatch.setattr(Path, "rename", rename_then_lose)
        report = BackupScheduler(runtime).tick(config)

        assert report.success is False
        assert report.archive is None
        assert "Archiving" in report.errors[0]
        assert runtime.actions == ["stop", "start"]

    def test_failed_archive_skips_pruning(self, config, fake_runtime):
        old = make_archive(config, 30, now=datetime.now())

        BackupScheduler(fake_runtime()).tick(config)

        assert old.exists()

    def test_no_partial_file_left_on_failure(self, config, fake_runtime, make_data_dir, monkeypatch):
        make_data_dir()

        def broken_open(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr(tarfile, "open", broken_open)
        report = BackupScheduler(fake_runtime()).tick(config)

        assert report.success is False
        assert "disk full" in report.errors[0]
        assert list(config.backup_path.iterdir()) == []

    def test_stop_failure_is_tolerated(self, config, fake_runtime, make_data_dir):
        make_data_dir()
        runtime = fake_runtime()
        runtime.fail_on.add("stop")

        report = BackupScheduler(runtime).tick(config)

        assert report.success
        assert runtime.actions == ["stop", "start"]

    def test_start_failure_does_not_hide_archive(self, config, fake_runtime, make_data_dir, caplog):
        make_data_dir()
        runtime = fake_runtime()
        runtime.fail_on.add("start")

        report = BackupScheduler(runtime).tick(config)

        assert report.archive is not None
        assert "Could not start" in caplog.text


@pytest.mark.unit
class TestRetention:

    def test_prune_deletes_only_archives_past_window(self, config):
        ages = [0, 1, 6, 7, 8, 10]
        paths = {age: make_archive(config, age) for age in ages}

        deleted = BackupScheduler(None).prune(config, now=NOW)

        assert sorted(a.path for a in deleted) == sorted([paths[8], paths[10]])
        for age in (0, 1, 6, 7):
            assert paths[age].exists()
        for age in (8, 10):
            assert not paths[age].exists()

    def test_boundary_day_is_kept(self, config):
        path = make_archive(config, 7)
        assert BackupScheduler(None).prune(config, now=NOW) == []
        assert path.exists()

    def test_other_files_are_ignored(self, config):
        make_archive(config, 30)
        stranger = make_archive(config, 30, name="notes.tar.gz")
        other_service = make_archive(config, 30, name="redis_20240101_000000.tar.gz")

        BackupScheduler(None).prune(config, now=NOW)

        assert stranger.exists()
        assert other_service.exists()

    def test_keep_last_protects_newest(self, config):
        cfg = config.model_copy(update={"keep_last": 2})
        paths = [make_archive(cfg, age) for age in (20, 15, 10)]

        deleted = BackupScheduler(None).prune(cfg, now=NOW)

        assert [a.path for a in deleted] == [paths[0]]
        assert paths[1].exists()
        assert paths[2].exists()

    def test_missing_backup_directory(self, config):
        assert BackupScheduler(None).prune(config, now=NOW) == []

    def test_list_archives_oldest_first(self, config):
        newer = make_archive(config, 1)
        older = make_archive(config, 5)

        archives = BackupScheduler(None).list_archives(config)

        assert [a.path for a in archives] == [older, newer]
        assert archives[0].timestamp is not None
