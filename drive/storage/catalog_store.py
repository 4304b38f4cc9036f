"""
Catalog persistence: all users and file records in one JSON snapshot.

The snapshot is replaced atomically on every save (temp file plus
``os.replace``), so a concurrent ``load()`` always reads a complete
document. Mutations must go through :meth:`CatalogStore.writer`, which
serializes the whole load-mutate-save cycle behind one lock and refuses to
run while the snapshot on disk is unreadable.
"""

from __future__ import annotations

import os
import tempfile
import threading
import time
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

import structlog
from pydantic import ValidationError

from drive.core.errors import CatalogCorrupt, IOFault
from drive.models import Catalog, User

logger = structlog.get_logger(__name__)


class CatalogStore:
    def __init__(self, path: Path, seed_users: Sequence[User] = ()) -> None:
        self.path = Path(path)
        self.seed_users = list(seed_users)
        self._lock = threading.RLock()
        self._set_aside_pending = False

    def load(self) -> Catalog:
        """Read the snapshot.

        A missing snapshot is seeded and persisted. A corrupt one yields an
        empty catalog and is left on disk untouched until the next save moves
        it aside.
        """
        try:
            catalog = self._read()
        except FileNotFoundError:
            return self._seed()
        except CatalogCorrupt as e:
            logger.warning("catalog_corrupt", path=str(self.path), error=str(e))
            self._set_aside_pending = True
            return Catalog()
        self._set_aside_pending = False
        return catalog

    @property
    def is_degraded(self) -> bool:
        """True while the last load found an unreadable snapshot."""
        return self._set_aside_pending

    def save(self, catalog: Catalog) -> bool:
        """Atomically replace the snapshot. Returns False if nothing was written."""
        with self._lock:
            tmp_path = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                if self._set_aside_pending:
                    self._set_aside_corrupt()
                fd, tmp_path = tempfile.mkstemp(
                    dir=self.path.parent, prefix=".tmp_", suffix=".json"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(catalog.model_dump_json(indent=2))
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_path, self.path)
            except OSError as e:
                if tmp_path is not None:
                    Path(tmp_path).unlink(missing_ok=True)
                logger.error("catalog_save_failed", path=str(self.path), error=str(e))
                return False
        return True

    @contextmanager
    def writer(self) -> Iterator[Catalog]:
        """Hold the single-writer lock for a load-mutate-save cycle.

        Raises ``CatalogCorrupt`` while the snapshot is unreadable, so the file
        stays on disk for recovery and no write can replace it.

        Usage::

            with store.writer() as catalog:
                catalog.files.append(record)
                store.save(catalog)
        """
        with self._lock:
            catalog = self.load()
            if self._set_aside_pending:
                raise CatalogCorrupt(
                    "Catalog snapshot is unreadable, refusing to write",
                    {"path": str(self.path)},
                )
            yield catalog

    def close(self) -> None:
        # Wait out any writer still inside its cycle
        with self._lock:
            logger.info("catalog_closed", path=str(self.path))

    def _read(self) -> Catalog:
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise IOFault("Could not read catalog", {"path": str(self.path), "error": str(e)}) from e
        try:
            return Catalog.model_validate_json(raw)
        except ValidationError as e:
            raise CatalogCorrupt(
                "Catalog snapshot is not valid",
                {"path": str(self.path), "errors": e.error_count()},
            ) from e

    def _seed(self) -> Catalog:
        with self._lock:
            # Another writer may have seeded while we waited
            if self.path.exists():
                return self.load()
            catalog = Catalog(users=self.seed_users, files=[])
            if self.save(catalog):
                logger.info("catalog_created", path=str(self.path), users=len(self.seed_users))
            return catalog

    def _set_aside_corrupt(self) -> None:
        if self.path.exists():
            target = self.path.with_name(f"{self.path.name}.corrupt-{int(time.time() * 1000)}")
            os.replace(self.path, target)
            logger.warning("catalog_set_aside", path=str(self.path), moved_to=str(target))
        self._set_aside_pending = False
