"""
Consistency checks between the catalog and the blob store.

``audit`` only reads. ``repair`` drops catalog entries whose blob is gone
(one save), then deletes blobs nothing references and sweeps stale temp
files left by interrupted writes. The steps are not atomic together: if
repair is interrupted after the save, the next audit reports the remaining
orphans.
"""

from __future__ import annotations

from collections import Counter

import structlog

from drive.core.errors import IOFault
from drive.models import (
    AuditReport,
    Issue,
    IssueKind,
    RepairAction,
    RepairKind,
    RepairReport,
    StorageInfo,
)
from drive.storage import BlobStore, CatalogStore

logger = structlog.get_logger(__name__)


class ConsistencyAuditor:
    def __init__(self, catalog: CatalogStore, blobs: BlobStore) -> None:
        self.catalog = catalog
        self.blobs = blobs

    def audit(self) -> AuditReport:
        catalog = self.catalog.load()
        issues: list[Issue] = []
        for record in catalog.files:
            if not self.blobs.exists(record.content_ref):
                issues.append(
                    Issue(
                        kind=IssueKind.MISSING_BLOB,
                        content_ref=record.content_ref,
                        file_id=record.id,
                        owner_id=record.owner_id,
                        name=record.name,
                        message="File is in the catalog but its content is missing",
                    )
                )

        on_disk = self.blobs.list_all()
        for ref in sorted(on_disk - catalog.referenced_blobs()):
            issues.append(
                Issue(
                    kind=IssueKind.ORPHAN_BLOB,
                    content_ref=ref,
                    message="Content is stored without a catalog entry",
                )
            )

        report = AuditReport(total_files=len(catalog.files), disk_files=len(on_disk), issues=issues)
        logger.info("audit_completed", healthy=report.is_healthy, issues=len(issues))
        return report

    def repair(self) -> RepairReport:
        actions: list[RepairAction] = []
        warnings: list[str] = []
        # writer() raises CatalogCorrupt on an unreadable snapshot
        with self.catalog.writer() as catalog:
            kept = []
            for record in catalog.files:
                if self.blobs.exists(record.content_ref):
                    kept.append(record)
                    continue
                actions.append(
                    RepairAction(
                        action=RepairKind.REMOVED_METADATA,
                        content_ref=record.content_ref,
                        file_id=record.id,
                        owner_id=record.owner_id,
                        name=record.name,
                    )
                )
            if actions:
                catalog.files = kept
                if not self.catalog.save(catalog):
                    raise IOFault("Catalog not persisted", {"removed": len(actions)})

            for ref in sorted(self.blobs.list_all() - catalog.referenced_blobs()):
                try:
                    removed = self.blobs.delete(ref)
                except IOFault as e:
                    logger.warning("orphan_delete_failed", ref=ref, error=str(e))
                    warnings.append(f"Could not delete orphan blob {ref}")
                    continue
                if removed:
                    actions.append(RepairAction(action=RepairKind.DELETED_ORPHAN, content_ref=ref))

            try:
                swept = self.blobs.sweep_temp()
            except IOFault as e:
                logger.warning("temp_sweep_failed", error=str(e))
                warnings.append(f"Could not remove stale temp files: {e.context.get('error', e.message)}")
                swept = []
            actions.extend(RepairAction(action=RepairKind.DELETED_TEMP, content_ref=name) for name in swept)

        logger.info("repair_completed", actions=len(actions), warnings=len(warnings))
        return RepairReport(actions=actions, warnings=warnings)

    def storage_info(self) -> StorageInfo:
        catalog = self.catalog.load()
        sizes: Counter[str] = Counter()
        for record in catalog.files:
            sizes[record.owner_id] += record.size_bytes
        return StorageInfo(
            total_files=len(catalog.files),
            total_size=sum(sizes.values()),
            physical_files=len(self.blobs.list_all()),
            sizes_by_owner=dict(sizes),
        )
