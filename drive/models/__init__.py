"""Typed records for the drive catalog and service results."""

from drive.models.audit import (
    AuditReport,
    Issue,
    IssueKind,
    RepairAction,
    RepairKind,
    RepairReport,
    StorageInfo,
)
from drive.models.backup import BackupEntry, BackupInfo
from drive.models.catalog import Catalog
from drive.models.file import FileListing, FileRecord, FileUpload, StoredFile
from drive.models.results import (
    BulkItemResult,
    BulkResult,
    ClearResult,
    DeleteResult,
    FileStats,
    PutResult,
    SyncResult,
)
from drive.models.user import User

__all__ = [
    "AuditReport",
    "BackupEntry",
    "BackupInfo",
    "BulkItemResult",
    "BulkResult",
    "Catalog",
    "ClearResult",
    "DeleteResult",
    "FileListing",
    "FileRecord",
    "FileStats",
    "FileUpload",
    "Issue",
    "IssueKind",
    "PutResult",
    "RepairAction",
    "RepairKind",
    "RepairReport",
    "StorageInfo",
    "StoredFile",
    "SyncResult",
    "User",
]
