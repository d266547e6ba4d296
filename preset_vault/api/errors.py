"""Exception handlers rendering domain errors as ``{"detail": {"error", "message", ...}}``."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from preset_vault.config import Settings, get_settings
from preset_vault.core.errors import (
    ImportTooLargeError,
    InvalidVersionError,
    NotFoundError,
    PresetConflictError,
    PresetError,
    PresetValidationError,
    TenantMismatchError,
    UnauthorizedError,
)

logger = structlog.get_logger()

# Most specific first.
STATUS_CODES: list[tuple[type[PresetError], int]] = [
    (ImportTooLargeError, 413),
    (PresetValidationError, 400),
    (InvalidVersionError, 400),
    (NotFoundError, 404),
    (TenantMismatchError, 403),
    (PresetConflictError, 409),
    (UnauthorizedError, 401),
]


def status_for(exc: PresetError) -> int:
    for cls, status in STATUS_CODES:
        if isinstance(exc, cls):
            return status
    return 400


def _error_response(status: int, error: str, message: str, details: dict[str, Any] | None = None) -> JSONResponse:
    detail = {"error": error, "message": message, **(details or {})}
    return JSONResponse(status_code=status, content={"detail": detail})


def _settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


async def preset_error_handler(request: Request, exc: PresetError) -> JSONResponse:
    if isinstance(exc, TenantMismatchError) and not _settings(request).expose_tenant_mismatch:
        # Another tenant's row is indistinguishable from a missing one.
        return _error_response(
            404,
            f"{exc.resource}_not_found",
            f"{exc.resource.capitalize()} not found",
            exc.details,
        )
    return _error_response(status_for(exc), exc.code, exc.message, exc.details)


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    issues = [
        {
            "path": ".".join(str(p) for p in err.get("loc", ())),
            "code": err.get("type", ""),
            "message": err.get("msg", ""),
        }
        for err in exc.errors()
    ]
    return _error_response(400, PresetValidationError.code, "Request validation failed", {"issues": issues})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.failed", method=request.method, path=request.url.path)
    return _error_response(500, "internal_error", "Internal server error")


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PresetError, preset_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
