from __future__ import annotations

from pydantic import BaseModel, Field

from drive.models.file import FileRecord
from drive.models.user import User


class Catalog(BaseModel):
    """Users and file records, persisted together as one snapshot."""

    users: list[User] = Field(default_factory=list)
    files: list[FileRecord] = Field(default_factory=list)

    def find_user(self, username: str) -> User | None:
        return next((u for u in self.users if u.username == username), None)

    def index_of(self, file_id: str, owner_id: str) -> int | None:
        for i, record in enumerate(self.files):
            if record.id == file_id and record.owner_id == owner_id:
                return i
        return None

    def find_file(self, file_id: str, owner_id: str) -> FileRecord | None:
        i = self.index_of(file_id, owner_id)
        return None if i is None else self.files[i]

    def owned_by(self, owner_id: str) -> list[FileRecord]:
        return [f for f in self.files if f.owner_id == owner_id]

    def referenced_blobs(self) -> set[str]:
        return {f.content_ref for f in self.files}
