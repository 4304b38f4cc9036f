"""Shared fixtures: every test gets its own data and files directories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from drive.core.config import Settings
from drive.main import create_app
from drive.models import FileUpload
from drive.services import BackupManager, ConsistencyAuditor, FileService, seed_users
from drive.storage import CatalogStore, LocalBlobStore


class TickingClock:
    """Deterministic clock that moves one second forward per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        files_dir=tmp_path / "files",
        log_json=False,
    )


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def blobs(settings) -> LocalBlobStore:
    return LocalBlobStore(settings.files_dir)


@pytest.fixture
def catalog_store(settings) -> CatalogStore:
    return CatalogStore(settings.catalog_path, seed_users=seed_users(settings))


@pytest.fixture
def file_service(catalog_store, blobs, settings, clock) -> FileService:
    return FileService(
        catalog_store,
        blobs,
        allowed_extensions=settings.allowed_extensions,
        clock=clock,
    )


@pytest.fixture
def auditor(catalog_store, blobs) -> ConsistencyAuditor:
    return ConsistencyAuditor(catalog_store, blobs)


@pytest.fixture
def backups(catalog_store, settings, clock) -> BackupManager:
    return BackupManager(catalog_store, settings.data_dir, clock=clock)


@pytest.fixture
def put_file(file_service):
    """Store a file for an owner with minimal ceremony."""

    def _put(owner_id: str, name: str = "a.png", content: bytes = b"data", **fields):
        return file_service.put(owner_id, FileUpload(name=name, **fields), content).record

    return _put


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c
