"""Vendor Compliance API - FastAPI application

Vendors upload their monthly compliance documents, consultants review them
and admins oversee the process. REST routes live under /api/v1; realtime
notifications are served on /ws/notifications; health and metrics sit at
the root for probes and scrapers.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from domain.compliance.ports import StorageError
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router
from auth.router import router as auth_router
from users.router import router as users_router
from submissions.router import router as submissions_router
from submissions.router_review import router as review_router
from notifications.router import router as notifications_router, ws_router
from audit.router import router as audit_router

settings = get_settings()
configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"
API_VERSION = "0.1.0"

API_ROUTERS = (
    auth_router,
    users_router,
    submissions_router,
    review_router,
    notifications_router,
    audit_router,
)

_docs_enabled = settings.ENV != "production"


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        f"Vendor Compliance API starting: env={settings.ENV}, storage={settings.STORAGE_BACKEND}, "
        f"email_enabled={settings.EMAIL_ENABLED}"
    )
    yield
    logger.info("Vendor Compliance API stopped")


app = FastAPI(
    title="Vendor Compliance API",
    description="Monthly vendor compliance document submission and consultant review",
    version=API_VERSION,
    docs_url="/docs" if _docs_enabled else None,
    redoc_url="/redoc" if _docs_enabled else None,
    openapi_url="/openapi.json" if _docs_enabled else None,
    lifespan=lifespan,
)

# Request IDs first so every later log line is correlated
app.add_middleware(RequestIDMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=[origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


def _error(status_code: int, error: str, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message, **extra})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """422 with field-level details (bad upload period, unknown review status, ...)."""
    logger.warning(f"Validation error on {request.method} {request.url.path}")
    return _error(
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "validation_error",
        "Request validation failed",
        details=jsonable_encoder(exc.errors()),
    )


@app.exception_handler(StorageError)
async def storage_exception_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error(f"Document storage error on {request.method} {request.url.path}: {exc}")
    return _error(
        status.HTTP_503_SERVICE_UNAVAILABLE,
        "storage_error",
        "Document storage is unavailable. Please try again later.",
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    # Full error in the log only; the client gets a generic message
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "database_error",
        "A database error occurred. Please try again later.",
    )


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception on {request.method} {request.url.path}", exc_info=exc)
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "internal_error",
        "An unexpected error occurred. Please try again later.",
    )


app.include_router(observability_router)
for api_router in API_ROUTERS:
    app.include_router(api_router, prefix=API_PREFIX)
app.include_router(ws_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, Any]:
    return {
        "name": "Vendor Compliance API",
        "version": API_VERSION,
        "docs": "/docs" if _docs_enabled else None,
    }


@app.get(API_PREFIX, include_in_schema=False)
async def api_root() -> dict[str, Any]:
    """Entry points of the v1 API."""
    return {
        "version": "v1",
        "endpoints": {
            "auth": f"{API_PREFIX}/auth",
            "users": f"{API_PREFIX}/users",
            "document_submissions": f"{API_PREFIX}/document-submissions",
            "notifications": f"{API_PREFIX}/notifications",
            "audit": f"{API_PREFIX}/audit",
            "realtime": "/ws/notifications",
        },
    }


if __name__ == "__main__":
    import os
    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
        reload=settings.ENV == "development",
        log_level=settings.LOG_LEVEL.lower(),
    )
