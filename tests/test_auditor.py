"""Tests for integrity audit and repair."""

from __future__ import annotations

import os
import time

import pytest

from drive.core.errors import CatalogCorrupt, NotFound
from drive.models import FileUpload, IssueKind, RepairKind
from drive.services import authenticate


def test_audit_of_consistent_store_is_healthy(auditor, put_file):
    put_file("u1")
    put_file("u2", name="b.js")

    report = auditor.audit()

    assert report.is_healthy
    assert report.total_files == 2
    assert report.disk_files == 2


def test_missing_blob_is_reported_and_repaired(auditor, put_file, blobs, file_service):
    record = put_file("u1")
    blobs.delete(record.content_ref)

    report = auditor.audit()
    assert not report.is_healthy
    [issue] = report.issues
    assert issue.kind == IssueKind.MISSING_BLOB
    assert issue.file_id == record.id
    assert issue.owner_id == "u1"

    repair = auditor.repair()
    assert [a.action for a in repair.actions] == [RepairKind.REMOVED_METADATA]
    with pytest.raises(NotFound):
        file_service.get(record.id, "u1")


def test_orphan_blob_is_reported_and_deleted(auditor, put_file, blobs):
    put_file("u1")
    blobs.put("stray", b"left behind")

    report = auditor.audit()
    [issue] = report.of_kind(IssueKind.ORPHAN_BLOB)
    assert issue.content_ref == "stray"
    assert issue.file_id is None

    repair = auditor.repair()
    assert [(a.action, a.content_ref) for a in repair.actions] == [
        (RepairKind.DELETED_ORPHAN, "stray")
    ]
    assert "stray" not in blobs.list_all()


def test_audit_does_not_mutate(auditor, put_file, blobs, catalog_store):
    record = put_file("u1")
    blobs.delete(record.content_ref)
    blobs.put("stray", b"x")
    catalog_before = catalog_store.load()

    auditor.audit()

    assert catalog_store.load() == catalog_before
    assert blobs.list_all() == {"stray"}


def test_repair_twice_does_nothing_the_second_time(auditor, put_file, blobs):
    record = put_file("u1")
    put_file("u1", name="b.js")
    blobs.delete(record.content_ref)
    blobs.put("stray", b"x")

    assert len(auditor.repair().actions) == 2
    assert auditor.repair().actions == []
    assert auditor.audit().is_healthy


def test_repair_refuses_to_run_on_unreadable_catalog(auditor, put_file, blobs, settings):
    record = put_file("u1")
    settings.catalog_path.write_text("{broken")

    with pytest.raises(CatalogCorrupt):
        auditor.repair()

    assert blobs.exists(record.content_ref)
    assert settings.catalog_path.read_text() == "{broken"


def test_writes_against_unreadable_catalog_lose_nothing(auditor, file_service, put_file, blobs, catalog_store, settings):
    precious = put_file("u1", content=b"precious")
    snapshot = settings.catalog_path.read_bytes()
    settings.catalog_path.write_text("{broken")

    with pytest.raises(CatalogCorrupt):
        file_service.put("u2", FileUpload(name="new.png"), b"new")
    with pytest.raises(CatalogCorrupt):
        file_service.bulk_put("u2", [(FileUpload(name="b.png"), b"b")])
    with pytest.raises(CatalogCorrupt):
        auditor.repair()

    assert settings.catalog_path.read_text() == "{broken"
    assert blobs.list_all() == {precious.content_ref}

    # Once the operator restores the snapshot everything is still there
    settings.catalog_path.write_bytes(snapshot)
    assert auditor.repair().actions == []
    assert file_service.get(precious.id, "u1").content == b"precious"
    assert authenticate(catalog_store, "admin", "password").username == "admin"


def test_repair_sweeps_stale_temp_files(auditor, put_file, blobs, settings):
    put_file("u1")
    stale = settings.files_dir / ".tmp_crashed"
    stale.write_bytes(b"half")
    two_hours_ago = time.time() - 7200
    os.utime(stale, (two_hours_ago, two_hours_ago))
    fresh = settings.files_dir / ".tmp_in_flight"
    fresh.write_bytes(b"x")

    repair = auditor.repair()

    assert [(a.action, a.content_ref) for a in repair.actions] == [
        (RepairKind.DELETED_TEMP, ".tmp_crashed")
    ]
    assert not stale.exists()
    assert fresh.exists()
    assert auditor.repair().actions == []


def test_storage_info_sums_sizes_per_owner(auditor, put_file, blobs):
    put_file("u1", content=b"1234")
    put_file("u1", name="b.js", content=b"12")
    put_file("u2", content=b"1")
    blobs.put("stray", b"x")

    info = auditor.storage_info()

    assert info.total_files == 3
    assert info.total_size == 7
    assert info.physical_files == 4
    assert info.sizes_by_owner == {"u1": 6, "u2": 1}
