"""
File service: the only component that mutates catalog and blobs together.

Every mutation runs inside ``CatalogStore.writer()`` and follows one order:
write new blobs, commit the catalog, then delete blobs the commit made
unreachable. A failed commit discards the new blobs and raises ``IOFault``,
so the previous state stays intact. A crash between commit and cleanup can
only leave orphan blobs, which the auditor reports and repairs.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Callable, Iterable, Sequence
from datetime import datetime, timezone

import structlog

from drive.core.errors import DriveError, IOFault, NotFound, UnsupportedType
from drive.models import (
    BulkItemResult,
    BulkResult,
    Catalog,
    ClearResult,
    DeleteResult,
    FileListing,
    FileRecord,
    FileStats,
    FileUpload,
    PutResult,
    StoredFile,
    SyncResult,
)
from drive.models.file import DEFAULT_MIME_TYPE, DEFAULT_UPLOADER
from drive.storage import BlobStore, CatalogStore

logger = structlog.get_logger(__name__)

NOT_PERSISTED = "Catalog not persisted"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_ref() -> str:
    return uuid.uuid4().hex


class FileService:
    def __init__(
        self,
        catalog: CatalogStore,
        blobs: BlobStore,
        allowed_extensions: Sequence[str] = (".js", ".png"),
        clock: Callable[[], datetime] = _utcnow,
        ref_factory: Callable[[], str] = _new_ref,
    ) -> None:
        self.catalog = catalog
        self.blobs = blobs
        self.allowed_extensions = tuple(e.lower() for e in allowed_extensions)
        self.clock = clock
        self.ref_factory = ref_factory

    # --- reads ---

    def list_by_owner(self, owner_id: str) -> list[FileListing]:
        records = self.catalog.load().owned_by(owner_id)
        listings = [
            FileListing(**r.model_dump(), blob_exists=self.blobs.exists(r.content_ref))
            for r in records
        ]
        logger.info("files_listed", owner_id=owner_id, count=len(listings))
        return listings

    def get(self, file_id: str, owner_id: str) -> StoredFile:
        record = self.catalog.load().find_file(file_id, owner_id)
        if record is None:
            raise NotFound("File not found", {"id": file_id, "owner_id": owner_id})
        try:
            content = self.blobs.get(record.content_ref)
        except NotFound as e:
            # The catalog says the blob should be there
            raise IOFault(
                "File content missing", {"id": file_id, "content_ref": record.content_ref}
            ) from e
        return StoredFile(record=record, content=content)

    def search(self, owner_id: str, query: str) -> list[FileRecord]:
        found = [r for r in self.catalog.load().owned_by(owner_id) if r.matches(query)]
        logger.info("files_searched", owner_id=owner_id, query=query, count=len(found))
        return found

    def sync(self, owner_id: str) -> SyncResult:
        """Every file of ``owner_id`` with its content; unreadable ones are skipped."""
        files: list[StoredFile] = []
        warnings: list[str] = []
        for record in self.catalog.load().owned_by(owner_id):
            try:
                files.append(StoredFile(record=record, content=self.blobs.get(record.content_ref)))
            except DriveError as e:
                logger.warning("sync_read_failed", id=record.id, error=str(e))
                warnings.append(f"Could not read {record.name}: {e.message}")
        return SyncResult(files=files, warnings=warnings)

    def stats(self, owner_id: str | None = None) -> FileStats:
        catalog = self.catalog.load()
        records = catalog.owned_by(owner_id) if owner_id else catalog.files
        file_types: Counter[str] = Counter()
        uploads: Counter[str] = Counter()
        for r in records:
            file_types["." + r.name.rsplit(".", 1)[-1].lower()] += 1
            uploads[r.uploader_name] += 1
        return FileStats(
            total_files=len(records),
            total_size=sum(r.size_bytes for r in records),
            file_types=dict(file_types),
            uploads_by_user=dict(uploads),
        )

    # --- writes ---

    def put(self, owner_id: str, upload: FileUpload, content: bytes) -> PutResult:
        self._check_type(upload)
        with self.catalog.writer() as catalog:
            record, old_ref = self._stage(catalog, owner_id, upload, content, self.clock())
            self._commit(catalog, [record.content_ref], owner_id=owner_id, id=record.id)
            warnings = self._remove_blobs([old_ref] if old_ref else [], quiet_missing=True)
        logger.info(
            "file_stored",
            owner_id=owner_id,
            id=record.id,
            name=record.name,
            replaced=old_ref is not None,
        )
        return PutResult(record=record, warnings=warnings)

    def bulk_put(
        self, owner_id: str, items: Iterable[tuple[FileUpload, bytes]]
    ) -> BulkResult:
        """Store each item independently against one loaded catalog.

        A failing item is reported in its own result and does not stop the
        batch. The catalog is saved once at the end.
        """
        results: list[BulkItemResult] = []
        staged: list[tuple[int, FileRecord, str | None]] = []
        now = self.clock()
        with self.catalog.writer() as catalog:
            for upload, content in items:
                try:
                    self._check_type(upload)
                    record, old_ref = self._stage(catalog, owner_id, upload, content, now)
                except DriveError as e:
                    results.append(BulkItemResult(name=upload.name, success=False, error=e.message))
                    continue
                staged.append((len(results), record, old_ref))
                results.append(BulkItemResult(name=upload.name, success=True, id=record.id))

            warnings: list[str] = []
            if staged:
                try:
                    self._commit(catalog, [r.content_ref for _, r, _ in staged], owner_id=owner_id)
                except IOFault:
                    for i, record, _ in staged:
                        results[i] = BulkItemResult(name=record.name, success=False, error=NOT_PERSISTED)
                    staged = []
                old_refs = [old for _, _, old in staged if old]
                warnings = self._remove_blobs(old_refs, quiet_missing=True)

        result = BulkResult(results=results, warnings=warnings)
        logger.info(
            "bulk_stored",
            owner_id=owner_id,
            succeeded=result.success_count,
            total=result.total_processed,
        )
        return result

    def delete(self, file_id: str, owner_id: str) -> DeleteResult:
        with self.catalog.writer() as catalog:
            i = catalog.index_of(file_id, owner_id)
            if i is None:
                logger.info("file_delete_missing", id=file_id, owner_id=owner_id)
                raise NotFound("File not found", {"id": file_id, "owner_id": owner_id})
            record = catalog.files.pop(i)
            self._commit(catalog, owner_id=owner_id, id=file_id)
            warnings = self._remove_blobs([record.content_ref])
        logger.info("file_deleted", owner_id=owner_id, id=file_id, name=record.name)
        return DeleteResult(id=file_id, blob_removed=not warnings, warnings=warnings)

    def clear_by_owner(self, owner_id: str) -> ClearResult:
        with self.catalog.writer() as catalog:
            owned = catalog.owned_by(owner_id)
            if not owned:
                return ClearResult(deleted_count=0)
            catalog.files = [f for f in catalog.files if f.owner_id != owner_id]
            self._commit(catalog, owner_id=owner_id)
            warnings = self._remove_blobs([r.content_ref for r in owned])
        logger.info("files_cleared", owner_id=owner_id, count=len(owned))
        return ClearResult(deleted_count=len(owned), warnings=warnings)

    # --- helpers ---

    def _check_type(self, upload: FileUpload) -> None:
        if upload.extension not in self.allowed_extensions:
            raise UnsupportedType(
                f"Unsupported file type. Allowed: {', '.join(self.allowed_extensions)}",
                {"name": upload.name},
            )

    def _new_id(self, now: datetime) -> str:
        return f"{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"

    def _stage(
        self,
        catalog: Catalog,
        owner_id: str,
        upload: FileUpload,
        content: bytes,
        now: datetime,
    ) -> tuple[FileRecord, str | None]:
        """Write the blob and upsert the record in memory.

        Returns the record and the content ref it replaced, if any.
        """
        file_id = upload.id or self._new_id(now)
        i = catalog.index_of(file_id, owner_id)
        existing = None if i is None else catalog.files[i]

        ref = self.blobs.put(self.ref_factory(), content)
        record = FileRecord(
            id=file_id,
            owner_id=owner_id,
            name=upload.name,
            mime_type=upload.mime_type or DEFAULT_MIME_TYPE,
            size_bytes=len(content) if upload.size_bytes is None else upload.size_bytes,
            uploader_name=upload.uploader_name or DEFAULT_UPLOADER,
            content_ref=ref,
            created_at=existing.created_at if existing else now,
            modified_at=now,
        )
        if i is None:
            catalog.files.append(record)
        else:
            catalog.files[i] = record
        old_ref = existing.content_ref if existing and existing.content_ref != ref else None
        return record, old_ref

    def _commit(self, catalog: Catalog, new_refs: Sequence[str] = (), **context) -> None:
        if self.catalog.save(catalog):
            return
        self._remove_blobs(new_refs)
        raise IOFault(NOT_PERSISTED, context)

    def _remove_blobs(self, refs: Iterable[str], quiet_missing: bool = False) -> list[str]:
        """Best-effort blob deletion; failures come back as warnings."""
        warnings = []
        for ref in refs:
            try:
                removed = self.blobs.delete(ref)
            except IOFault as e:
                logger.warning("blob_delete_failed", ref=ref, error=str(e))
                warnings.append(f"Could not delete blob {ref}: {e.context.get('error', e.message)}")
                continue
            if not removed and not quiet_missing:
                logger.warning("blob_already_missing", ref=ref)
                warnings.append(f"Blob {ref} was not found in storage")
        return warnings
