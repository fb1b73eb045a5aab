"""Exception handlers: typed errors to stable JSON bodies.

Every error body is ``{"success": false, "message": ..., "code": ...}``.
401 bodies also carry ``clear_session`` so clients know whether to drop
stored credentials; identity-establishing routes answer ``false``.
"""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from laundry.errors import LaundryError
from laundry.security.gateway import clears_session

log = structlog.get_logger()


def error_body(exc: LaundryError, path: str) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": exc.message, "code": exc.code}
    if exc.status_code == 401:
        body["clear_session"] = clears_session(path)
    return body


async def handle_laundry_error(request: Request, exc: LaundryError) -> JSONResponse:
    if exc.status_code >= 500:
        log.error(
            "request_failed",
            path=request.url.path,
            code=exc.code,
            error=exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc, request.url.path))


async def handle_validation_error(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "message": "Invalid request",
            "code": "REQUEST_INVALID",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LaundryError, handle_laundry_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError,
        handle_validation_error,  # type: ignore[arg-type]
    )
