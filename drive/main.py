from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from drive import __version__
from drive.core.config import Settings, get_settings
from drive.core.errors import (
    AuthenticationFailed,
    CatalogCorrupt,
    DriveError,
    NotFound,
    UnsupportedType,
)
from drive.core.logging import configure_logging
from drive.dependencies import build_drive
from drive.routers import auth, files, storage

logger = structlog.get_logger(__name__)

_STATUS = {
    NotFound: 404,
    UnsupportedType: 400,
    AuthenticationFailed: 401,
    CatalogCorrupt: 503,
}


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging(settings.log_level, json=settings.log_json)
        drive = build_drive(settings)
        drive.catalog.load()  # seeds a fresh catalog on first start
        app.state.drive = drive
        logger.info("drive_ready", catalog=str(settings.catalog_path), blobs=settings.blob_backend)
        yield
        drive.catalog.close()

    app = FastAPI(title="Mini Drive", version=__version__, lifespan=lifespan)

    @app.exception_handler(DriveError)
    async def drive_error(request: Request, exc: DriveError):
        status = next((code for cls, code in _STATUS.items() if isinstance(exc, cls)), 500)
        if status >= 500:
            logger.error("request_failed", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=status, content={"success": False, "error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def validation_error(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": "Invalid request", "details": jsonable_errors(exc)},
        )

    # include our routers
    app.include_router(auth.router)
    app.include_router(files.router)
    app.include_router(storage.router)

    @app.get("/api/health")
    def health():
        return {
            "status": "OK",
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    return app


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    return [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]


app = create_app()
