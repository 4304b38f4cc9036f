"""Tests for catalog backups."""

from __future__ import annotations

from datetime import datetime, timezone

from drive.models import Catalog
from drive.services import BackupManager


def test_create_backup_writes_full_catalog(backups, put_file, settings):
    put_file("u1")
    put_file("u2", name="b.js")

    info = backups.create_backup()

    assert info.name.startswith("backup_") and info.name.endswith(".json")
    assert info.file_count == 2
    assert info.user_count == 1
    assert info.path == settings.data_dir / info.name
    archived = Catalog.model_validate_json(info.path.read_text())
    assert len(archived.files) == 2


def test_backups_taken_in_the_same_millisecond_do_not_overwrite(catalog_store, settings):
    frozen = datetime(2024, 5, 1, tzinfo=timezone.utc)
    manager = BackupManager(catalog_store, settings.data_dir, clock=lambda: frozen)

    first = manager.create_backup()
    second = manager.create_backup()

    assert first.name != second.name
    assert first.path.exists() and second.path.exists()


def test_list_backups_newest_first(backups):
    older = backups.create_backup()
    newer = backups.create_backup()

    listed = backups.list_backups()

    assert [b.name for b in listed] == [newer.name, older.name]
    assert listed[0].timestamp > listed[1].timestamp


def test_list_backups_skips_malformed_names(backups, settings):
    good = backups.create_backup()
    for name in ["backup_abc.json", "backup_123.txt", "notes.json", "backup_.json"]:
        (settings.data_dir / name).write_text("{}")

    assert [b.name for b in backups.list_backups()] == [good.name]


def test_list_backups_without_directory_is_empty(catalog_store, tmp_path):
    manager = BackupManager(catalog_store, tmp_path / "nowhere")
    assert manager.list_backups() == []
