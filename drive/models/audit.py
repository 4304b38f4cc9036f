from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class IssueKind(str, Enum):
    MISSING_BLOB = "missing_blob"  # catalog entry without content
    ORPHAN_BLOB = "orphan_blob"    # content without catalog entry


class RepairKind(str, Enum):
    REMOVED_METADATA = "removed_metadata"
    DELETED_ORPHAN = "deleted_orphan"
    DELETED_TEMP = "deleted_temp"     # leftover of an interrupted write


class Issue(BaseModel):
    kind: IssueKind
    content_ref: str
    file_id: str | None = None
    owner_id: str | None = None
    name: str | None = None
    message: str


class AuditReport(BaseModel):
    total_files: int
    disk_files: int
    issues: list[Issue] = Field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not self.issues

    def of_kind(self, kind: IssueKind) -> list[Issue]:
        return [i for i in self.issues if i.kind == kind]


class RepairAction(BaseModel):
    action: RepairKind
    content_ref: str
    file_id: str | None = None
    owner_id: str | None = None
    name: str | None = None


class RepairReport(BaseModel):
    actions: list[RepairAction] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)


class StorageInfo(BaseModel):
    total_files: int
    total_size: int
    physical_files: int
    sizes_by_owner: dict[str, int] = Field(default_factory=dict)
