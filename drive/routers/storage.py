from fastapi import APIRouter, Depends

from drive.dependencies import get_auditor, get_backups
from drive.services import BackupManager, ConsistencyAuditor

router = APIRouter(prefix="/api", tags=["storage"])


@router.get("/storage/info")
def storage_info(auditor: ConsistencyAuditor = Depends(get_auditor)):
    return {"success": True, "storage": auditor.storage_info().model_dump()}


# --- compare catalog against stored content ---
@router.get("/storage/integrity")
def storage_integrity(auditor: ConsistencyAuditor = Depends(get_auditor)):
    report = auditor.audit()
    return {
        "success": True,
        "integrity": {
            "is_healthy": report.is_healthy,
            "total_files": report.total_files,
            "disk_files": report.disk_files,
            "issues_count": len(report.issues),
            "issues": [i.model_dump(mode="json") for i in report.issues],
        },
    }


# --- drop dangling entries and orphan content ---
@router.post("/storage/repair")
def storage_repair(auditor: ConsistencyAuditor = Depends(get_auditor)):
    report = auditor.repair()
    return {
        "success": True,
        "repairs": {
            "count": len(report.actions),
            "operations": [a.model_dump(mode="json") for a in report.actions],
            "warnings": report.warnings,
        },
    }


@router.post("/backup")
def create_backup(backups: BackupManager = Depends(get_backups)):
    return {"success": True, "backup": backups.create_backup().model_dump(mode="json")}


@router.get("/backups")
def list_backups(backups: BackupManager = Depends(get_backups)):
    entries = backups.list_backups()
    return {
        "success": True,
        "backups": [b.model_dump(mode="json") for b in entries],
        "count": len(entries),
    }
