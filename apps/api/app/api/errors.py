from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import settings
from app.services.error_codes import ErrorCode
from app.services.exceptions import ConsistencyFaultError, ServiceError

logger = structlog.get_logger(__name__)

_HTTP_CODES = {
    401: ErrorCode.UNAUTHORIZED,
    404: ErrorCode.NOT_FOUND,
    405: ErrorCode.METHOD_NOT_ALLOWED,
    429: ErrorCode.RATE_LIMITED,
}


def error_body(code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "error": message, "code": code}
    if details and settings.expose_error_details:
        body["details"] = details
    return body


def http_error_from_service(err: ServiceError) -> JSONResponse:
    if isinstance(err, ConsistencyFaultError):
        # Already logged with full detail where it was raised
        return JSONResponse(
            status_code=err.status_code,
            content=error_body(ErrorCode.INTERNAL_ERROR.value, "internal server error"),
        )
    return JSONResponse(
        status_code=err.status_code,
        content=error_body(err.code, err.message, err.details),
    )


async def _service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    return http_error_from_service(exc)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _HTTP_CODES.get(exc.status_code, ErrorCode.HTTP_ERROR).value
    message = exc.detail if isinstance(exc.detail, str) else "request failed"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(code, message),
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_body(ErrorCode.VALIDATION_ERROR.value, "invalid request", {"errors": errors}),
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", method=request.method, path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=error_body(
            ErrorCode.INTERNAL_ERROR.value,
            "internal server error",
            {"type": type(exc).__name__, "message": str(exc)},
        ),
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ServiceError, _service_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
