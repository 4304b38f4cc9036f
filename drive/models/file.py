# drive/models/file.py
from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_UPLOADER = "Unknown"

_SAFE_ID = re.compile(r"^[A-Za-z0-9._-]{1,128}$")


class FileRecord(BaseModel):
    id: str
    owner_id: str                  # User.username
    name: str                      # Name user uploaded
    mime_type: str = DEFAULT_MIME_TYPE
    size_bytes: int = Field(ge=0)  # Size in bytes
    uploader_name: str = DEFAULT_UPLOADER
    content_ref: str               # Blob store key holding the bytes
    created_at: datetime
    modified_at: datetime

    def matches(self, query: str) -> bool:
        """Case-insensitive substring match on name, uploader or mime type."""
        needle = query.lower()
        return (
            needle in self.name.lower()
            or needle in self.uploader_name.lower()
            or needle in self.mime_type.lower()
        )


class FileUpload(BaseModel):
    """Fields a caller supplies to create or overwrite a file."""

    id: str | None = None
    name: str = Field(min_length=1)
    mime_type: str | None = None
    size_bytes: int | None = Field(default=None, ge=0)
    uploader_name: str | None = None

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str | None) -> str | None:
        if value is None:
            return None
        if value in (".", "..") or not _SAFE_ID.match(value):
            raise ValueError("id may only contain letters, digits, '.', '_' and '-'")
        return value

    @property
    def extension(self) -> str:
        # "archive" has no dot, so the whole name counts as the extension
        return "." + self.name.rsplit(".", 1)[-1].lower()


class FileListing(FileRecord):
    """A catalog entry annotated with whether its blob is present."""

    blob_exists: bool


class StoredFile(BaseModel):
    record: FileRecord
    content: bytes
