"""
Blob storage: raw file content addressed by an opaque ref.

Every call is a fresh round-trip to the backing store. Nothing is cached,
so two calls may observe different states.
"""

from __future__ import annotations

import os
import tempfile
import time
from pathlib import Path
from typing import Protocol

import structlog

from drive.core.errors import IOFault, NotFound

logger = structlog.get_logger(__name__)

_TMP_PREFIX = ".tmp_"

# Temp files younger than this may still belong to a write in progress
STALE_TEMP_SECONDS = 3600.0


class BlobStore(Protocol):
    def put(self, ref: str, data: bytes) -> str:
        """Store bytes under ``ref``, replacing any existing blob. Returns ``ref``."""
        ...

    def get(self, ref: str) -> bytes:
        """Return the bytes under ``ref``; raises ``NotFound`` when absent."""
        ...

    def delete(self, ref: str) -> bool:
        """Remove the blob; returns whether one was actually removed."""
        ...

    def exists(self, ref: str) -> bool:
        ...

    def list_all(self) -> set[str]:
        """Every ref physically present in the store."""
        ...

    def sweep_temp(self, older_than: float = STALE_TEMP_SECONDS) -> list[str]:
        """Remove leftovers of interrupted writes; returns what was removed."""
        ...


def check_ref(ref: str) -> str:
    if not ref or ref.startswith(".") or "/" in ref or "\\" in ref or "\x00" in ref:
        raise ValueError(f"Invalid blob ref: {ref!r}")
    return ref


class LocalBlobStore:
    """One file per ref in a single directory.

    Writes go to a hidden temp file in the same directory and are moved into
    place with ``os.replace``, so readers see either the old or the new blob.
    Hidden files are never reported by :meth:`list_all`; temp files left by
    an interrupted write are removed by :meth:`sweep_temp`.
    """

    def __init__(self, root: Path) -> None:
        self.root = Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def _path(self, ref: str) -> Path:
        return self.root / check_ref(ref)

    def put(self, ref: str, data: bytes) -> str:
        path = self._path(ref)
        try:
            fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=_TMP_PREFIX)
        except OSError as e:
            raise IOFault("Could not create blob", {"ref": ref, "error": str(e)}) from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            Path(tmp_path).unlink(missing_ok=True)
            raise IOFault("Could not write blob", {"ref": ref, "error": str(e)}) from e
        logger.debug("blob_written", ref=ref, size=len(data))
        return ref

    def get(self, ref: str) -> bytes:
        path = self._path(ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound("Blob not found", {"ref": ref}) from e
        except OSError as e:
            raise IOFault("Could not read blob", {"ref": ref, "error": str(e)}) from e

    def delete(self, ref: str) -> bool:
        path = self._path(ref)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise IOFault("Could not delete blob", {"ref": ref, "error": str(e)}) from e
        logger.debug("blob_deleted", ref=ref)
        return True

    def exists(self, ref: str) -> bool:
        return self._path(ref).is_file()

    def list_all(self) -> set[str]:
        try:
            with os.scandir(self.root) as entries:
                return {
                    e.name
                    for e in entries
                    if not e.name.startswith(".") and e.is_file()
                }
        except OSError as e:
            raise IOFault("Could not list blobs", {"root": str(self.root), "error": str(e)}) from e

    def sweep_temp(self, older_than: float = STALE_TEMP_SECONDS) -> list[str]:
        cutoff = time.time() - older_than
        try:
            with os.scandir(self.root) as entries:
                stale = [
                    e
                    for e in entries
                    if e.name.startswith(_TMP_PREFIX)
                    and e.is_file()
                    and e.stat().st_mtime < cutoff
                ]
        except OSError as e:
            raise IOFault("Could not list blobs", {"root": str(self.root), "error": str(e)}) from e

        removed = []
        for entry in stale:
            try:
                os.unlink(entry.path)
            except FileNotFoundError:
                continue
            except OSError as e:
                raise IOFault("Could not delete temp file", {"name": entry.name, "error": str(e)}) from e
            removed.append(entry.name)
        if removed:
            logger.info("temp_files_swept", root=str(self.root), count=len(removed))
        return removed
