from datetime import datetime
from pathlib import Path

from pydantic import BaseModel


class BackupEntry(BaseModel):
    name: str
    timestamp: datetime
    path: Path


class BackupInfo(BackupEntry):
    file_count: int
    user_count: int
