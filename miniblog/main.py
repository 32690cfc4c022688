import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from miniblog.api.http import health_router, auth_router, posts_router
from miniblog.core.config import Settings, settings as default_settings
from miniblog.core.db import build_repository
from miniblog.core.log import configure_logging
from miniblog.db.repositories import StorageConnectionError

logger = logging.getLogger(__name__)


def _error_details(errors) -> list:
    return [
        {"loc": list(error["loc"]), "msg": error["msg"], "type": error["type"]}
        for error in errors
    ]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Сборка приложения: хранилище создается при старте и закрывается при остановке"""
    settings = settings or default_settings
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.repository = build_repository(settings)
        try:
            yield
        finally:
            await app.state.repository.close()

    app = FastAPI(
        title="Miniblog",
        description="Personal blog: posts, drafts, search and view counters",
        version="1.0.0",
        lifespan=lifespan
    )
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": exc.detail},
            headers=getattr(exc, "headers", None)
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid data", "errors": _error_details(exc.errors())}
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid data", "errors": _error_details(exc.errors())}
        )

    @app.exception_handler(StorageConnectionError)
    async def storage_error_handler(request: Request, exc: StorageConnectionError):
        logger.error(f"Storage unavailable while handling {request.method} {request.url.path}: {exc}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"message": "Storage unavailable"}
        )

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(posts_router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port)
