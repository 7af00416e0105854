from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from field_chat.api.middleware.request_context import RequestContextMiddleware
from field_chat.api.v1.routers import (
    attachments,
    conversations,
    health,
    messages,
)
from field_chat.application.exceptions import (
    AppError,
    ConflictError,
    ForbiddenError,
    NotFoundError,
    PayloadTooLargeError,
    UnauthorizedError,
    UnsupportedMediaTypeError,
    UploadFailedError,
    ValidationError,
)
from field_chat.config import settings
from field_chat.infrastructure.db.session import engine

logger = logging.getLogger(__name__)

# Most specific first: PayloadTooLarge and UnsupportedMediaType are ValidationErrors
ERROR_STATUS: tuple[tuple[type[AppError], int], ...] = (
    (PayloadTooLargeError, 413),
    (UnsupportedMediaTypeError, 415),
    (ValidationError, 422),
    (UnauthorizedError, 401),
    (ForbiddenError, 403),
    (NotFoundError, 404),
    (ConflictError, 409),
    (UploadFailedError, 502),
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    yield
    await engine.dispose()


def create_app() -> FastAPI:
    app = FastAPI(title="Field Chat Service", version="0.1.0", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestContextMiddleware)

    app.add_exception_handler(AppError, _app_error_handler)

    for module in (health, conversations, messages, attachments):
        app.include_router(module.router)

    return app


def status_for(exc: AppError) -> int:
    for error_cls, status_code in ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code
    return 400


async def _app_error_handler(_req: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, AppError)
    status_code = status_for(exc)
    if status_code >= 500:
        logger.warning("%s: %s", type(exc).__name__, exc.detail)
    return JSONResponse(status_code=status_code, content={"detail": exc.detail})
