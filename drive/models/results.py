"""Result shapes returned by the file service.

Operations whose cleanup is best-effort return ``warnings``: advisory
messages about blobs that could not be removed or read. They never turn a
successful call into a failure.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from drive.models.file import FileRecord, StoredFile


class PutResult(BaseModel):
    record: FileRecord
    warnings: list[str] = Field(default_factory=list)


class DeleteResult(BaseModel):
    id: str
    blob_removed: bool
    warnings: list[str] = Field(default_factory=list)


class BulkItemResult(BaseModel):
    name: str
    success: bool
    id: str | None = None
    error: str | None = None


class BulkResult(BaseModel):
    results: list[BulkItemResult]
    warnings: list[str] = Field(default_factory=list)

    @property
    def total_processed(self) -> int:
        return len(self.results)

    @property
    def success_count(self) -> int:
        return sum(1 for r in self.results if r.success)


class ClearResult(BaseModel):
    deleted_count: int
    warnings: list[str] = Field(default_factory=list)


class SyncResult(BaseModel):
    files: list[StoredFile]
    warnings: list[str] = Field(default_factory=list)


class FileStats(BaseModel):
    total_files: int = 0
    total_size: int = 0
    file_types: dict[str, int] = Field(default_factory=dict)
    uploads_by_user: dict[str, int] = Field(default_factory=dict)
