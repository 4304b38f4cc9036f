"""Service wiring and the FastAPI dependencies that hand it to routers."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request

from drive.core.config import Settings
from drive.services import BackupManager, ConsistencyAuditor, FileService, seed_users
from drive.storage import BlobStore, CatalogStore, build_blob_store


@dataclass
class Drive:
    settings: Settings
    catalog: CatalogStore
    blobs: BlobStore
    files: FileService
    auditor: ConsistencyAuditor
    backups: BackupManager


def build_drive(settings: Settings) -> Drive:
    catalog = CatalogStore(settings.catalog_path, seed_users=seed_users(settings))
    blobs = build_blob_store(settings)
    return Drive(
        settings=settings,
        catalog=catalog,
        blobs=blobs,
        files=FileService(catalog, blobs, allowed_extensions=settings.allowed_extensions),
        auditor=ConsistencyAuditor(catalog, blobs),
        backups=BackupManager(catalog, settings.data_dir),
    )


def get_drive(request: Request) -> Drive:
    return request.app.state.drive


def get_file_service(drive: Drive = Depends(get_drive)) -> FileService:
    return drive.files


def get_auditor(drive: Drive = Depends(get_drive)) -> ConsistencyAuditor:
    return drive.auditor


def get_backups(drive: Drive = Depends(get_drive)) -> BackupManager:
    return drive.backups
