import csv
import io
import time
from datetime import datetime, timezone
from typing import Any, Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field, ValidationError

from drive.dependencies import get_file_service
from drive.models import BulkItemResult, BulkResult, FileUpload, StoredFile
from drive.services import FileService

router = APIRouter(prefix="/api", tags=["files"])


class UploadRequest(FileUpload):
    user_id: str = Field(min_length=1)
    data: str = Field(min_length=1)


class BulkFile(FileUpload):
    data: str


class BulkUploadRequest(BaseModel):
    user_id: str = Field(min_length=1)
    # Validated item by item so one bad entry fails alone
    files: list[dict[str, Any]]


class SyncRequest(BaseModel):
    user_id: str = Field(min_length=1)
    local_file_ids: list[str] = []


def _upload_fields(body: FileUpload) -> FileUpload:
    return FileUpload.model_validate(body.model_dump(include=set(FileUpload.model_fields)))


def _item_error(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(p) for p in first["loc"])
    return f"{field}: {first['msg']}" if field else first["msg"]


def _with_data(stored: StoredFile) -> dict:
    # Images arrive as base64 data URLs, so content is text on the wire
    return {
        **stored.record.model_dump(mode="json"),
        "data": stored.content.decode("utf-8", errors="replace"),
    }


# --- list a user's files (metadata only) ---
@router.get("/files")
def list_files(user_id: str = Query(min_length=1), service: FileService = Depends(get_file_service)):
    files = service.list_by_owner(user_id)
    return {
        "success": True,
        "files": [f.model_dump(mode="json") for f in files],
        "count": len(files),
    }


# --- search a user's files ---
@router.get("/files/search")
def search_files(
    user_id: str = Query(min_length=1),
    query: str = Query(min_length=1),
    service: FileService = Depends(get_file_service),
):
    files = service.search(user_id, query)
    return {
        "success": True,
        "files": [f.model_dump(mode="json") for f in files],
        "count": len(files),
        "query": query,
    }


# --- get one file with its content ---
@router.get("/files/{file_id}")
def get_file(file_id: str, user_id: str = Query(min_length=1), service: FileService = Depends(get_file_service)):
    return {"success": True, "file": _with_data(service.get(file_id, user_id))}


# --- upload or overwrite a file ---
@router.post("/files")
def upload_file(body: UploadRequest, service: FileService = Depends(get_file_service)):
    result = service.put(body.user_id, _upload_fields(body), body.data.encode("utf-8"))
    return {
        "success": True,
        "message": "File uploaded",
        "file": result.record.model_dump(mode="json"),
        "warnings": result.warnings,
    }


# --- upload many files at once ---
@router.post("/files/bulk")
def bulk_upload(body: BulkUploadRequest, service: FileService = Depends(get_file_service)):
    invalid: dict[int, BulkItemResult] = {}
    items = []
    for i, raw in enumerate(body.files):
        try:
            f = BulkFile.model_validate(raw)
        except ValidationError as e:
            invalid[i] = BulkItemResult(name=str(raw.get("name") or ""), success=False, error=_item_error(e))
            continue
        items.append((_upload_fields(f), f.data.encode("utf-8")))

    stored = service.bulk_put(body.user_id, items) if items else BulkResult(results=[])
    outcomes = iter(stored.results)
    result = BulkResult(
        results=[invalid[i] if i in invalid else next(outcomes) for i in range(len(body.files))],
        warnings=stored.warnings,
    )
    return {
        "success": True,
        "results": [r.model_dump() for r in result.results],
        "total_processed": result.total_processed,
        "success_count": result.success_count,
        "warnings": result.warnings,
    }


# --- delete a file ---
@router.delete("/files/{file_id}")
def delete_file(file_id: str, user_id: str = Query(min_length=1), service: FileService = Depends(get_file_service)):
    result = service.delete(file_id, user_id)
    return {"success": True, "message": "File deleted", "warnings": result.warnings}


# --- delete all of a user's files ---
@router.delete("/files")
def clear_files(user_id: str = Query(min_length=1), service: FileService = Depends(get_file_service)):
    result = service.clear_by_owner(user_id)
    return {
        "success": True,
        "deleted_count": result.deleted_count,
        "warnings": result.warnings,
    }


# --- full download of a user's files for client sync ---
@router.post("/sync")
def sync_files(body: SyncRequest, service: FileService = Depends(get_file_service)):
    result = service.sync(body.user_id)
    return {
        "success": True,
        "files": [_with_data(f) for f in result.files],
        "local_file_ids": body.local_file_ids,
        "warnings": result.warnings,
    }


@router.get("/stats")
def file_stats(user_id: str | None = None, service: FileService = Depends(get_file_service)):
    return {"success": True, "stats": service.stats(user_id).model_dump()}


# --- export a user's file list ---
@router.get("/export")
def export_files(
    user_id: str = Query(min_length=1),
    format: Literal["json", "csv"] = "json",
    service: FileService = Depends(get_file_service),
):
    files = service.list_by_owner(user_id)
    filename = f"files_{user_id}_{int(time.time() * 1000)}.{format}"
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}

    if format == "csv":
        out = io.StringIO()
        writer = csv.writer(out)
        writer.writerow(["ID", "Name", "Type", "Size", "Uploader", "Created", "Modified"])
        for f in files:
            writer.writerow([
                f.id,
                f.name,
                f.mime_type,
                f.size_bytes,
                f.uploader_name,
                f.created_at.isoformat(),
                f.modified_at.isoformat(),
            ])
        return Response(content=out.getvalue(), media_type="text/csv", headers=headers)

    return JSONResponse(
        {
            "user_id": user_id,
            "export_date": datetime.now(timezone.utc).isoformat(),
            "files_count": len(files),
            "files": [f.model_dump(mode="json", exclude={"blob_exists"}) for f in files],
        },
        headers=headers,
    )
