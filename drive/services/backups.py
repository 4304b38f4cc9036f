"""Timestamped JSON archives of the whole catalog."""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import structlog

from drive.core.errors import IOFault
from drive.models import BackupEntry, BackupInfo
from drive.storage import CatalogStore

logger = structlog.get_logger(__name__)

BACKUP_NAME = re.compile(r"^backup_(\d+)\.json$")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BackupManager:
    def __init__(
        self,
        catalog: CatalogStore,
        directory: Path,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.catalog = catalog
        self.directory = Path(directory)
        self.clock = clock

    def create_backup(self) -> BackupInfo:
        """Write the current catalog to ``backup_<epoch-millis>.json``.

        Existing archives are never overwritten: on a name collision the
        millisecond stamp is bumped until a free name is found.
        """
        catalog = self.catalog.load()
        payload = catalog.model_dump_json(indent=2)
        stamp = int(self.clock().timestamp() * 1000)
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            while True:
                path = self.directory / f"backup_{stamp}.json"
                try:
                    f = path.open("x", encoding="utf-8")
                except FileExistsError:
                    stamp += 1
                    continue
                try:
                    with f:
                        f.write(payload)
                except OSError:
                    path.unlink(missing_ok=True)
                    raise
                break
        except OSError as e:
            raise IOFault("Could not write backup", {"directory": str(self.directory), "error": str(e)}) from e

        info = BackupInfo(
            name=path.name,
            timestamp=datetime.fromtimestamp(stamp / 1000, tz=timezone.utc),
            path=path,
            file_count=len(catalog.files),
            user_count=len(catalog.users),
        )
        logger.info("backup_created", name=info.name, files=info.file_count, users=info.user_count)
        return info

    def list_backups(self) -> list[BackupEntry]:
        """Archives in the backup directory, newest first."""
        try:
            names = os.listdir(self.directory)
        except FileNotFoundError:
            return []
        except OSError as e:
            raise IOFault("Could not list backups", {"directory": str(self.directory), "error": str(e)}) from e

        entries = []
        for name in names:
            match = BACKUP_NAME.match(name)
            if match is None:
                if name.startswith("backup_"):
                    logger.debug("backup_name_malformed", name=name)
                continue
            try:
                timestamp = datetime.fromtimestamp(int(match.group(1)) / 1000, tz=timezone.utc)
            except (OverflowError, OSError, ValueError):
                logger.debug("backup_timestamp_invalid", name=name)
                continue
            entries.append(BackupEntry(name=name, timestamp=timestamp, path=self.directory / name))

        entries.sort(key=lambda e: e.timestamp, reverse=True)
        return entries
