from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from backup_console.config import settings
from backup_console.dependencies import new_registry
from backup_console.errors import BackupConsoleError
from backup_console.extensions import db
from backup_console.routers.backups import routes as backups

log = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    db.create_all()
    yield
    db.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title=settings.APP_NAME, version=settings.APP_VERSION, lifespan=lifespan)
    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.SECRET_KEY,
        same_site=settings.SESSION_COOKIE_SAMESITE,
        https_only=settings.SESSION_COOKIE_SECURE,
    )
    app.state.consoles = new_registry()

    app.include_router(backups.router)
    app.include_router(backups.school_router)
    app.include_router(backups.schools_router)

    @app.exception_handler(BackupConsoleError)
    async def console_error(request: Request, exc: BackupConsoleError):
        log.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            {"ok": False, "error": exc.message, "code": exc.code},
            status_code=exc.status_code,
        )

    @app.get("/", name="main.index")
    def index():
        return {"app": settings.APP_NAME, "version": settings.APP_VERSION}

    return app


app = create_app()
