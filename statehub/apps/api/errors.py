from __future__ import annotations

import logging
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from statehub.apps.api.response import error_response
from statehub.core.errors import (
    ConflictError,
    InvalidArgumentError,
    NotFoundError,
    StatehubError,
    UnavailableError,
)


logger = logging.getLogger(__name__)

# Domain error -> HTTP status; first match wins so subclasses map with their parent.
_STATUS_BY_ERROR: tuple[tuple[type[StatehubError], int], ...] = (
    (NotFoundError, 404),
    (InvalidArgumentError, 400),
    (ConflictError, 409),
    (UnavailableError, 503),
)

# Codes for framework-raised HTTP errors that carry no code of their own.
_FRAMEWORK_CODES: dict[int, str] = {
    400: "INVALID_ARGUMENT",
    401: "AUTH_UNAUTHORIZED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    503: "SERVICE_UNAVAILABLE",
}


def status_for_error(exc: StatehubError) -> int:
    return next((status for error_type, status in _STATUS_BY_ERROR if isinstance(exc, error_type)), 500)


def _framework_error(exc: StarletteHTTPException) -> tuple[str, str, dict[str, Any] | None]:
    # Gate rejections raise HTTPException(detail={"code", "message", ...}); Starlette routing uses plain strings.
    fallback_code = _FRAMEWORK_CODES.get(exc.status_code, "HTTP_ERROR")
    detail = exc.detail
    if not isinstance(detail, dict):
        return fallback_code, str(detail or "Request failed"), None
    extra = {key: value for key, value in detail.items() if key not in ("code", "message")}
    return str(detail.get("code") or fallback_code), str(detail.get("message") or "Request failed"), extra or None


async def statehub_exception_handler(request: Request, exc: StatehubError) -> JSONResponse:
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("request_failed path=%s code=%s", request.url.path, exc.code, exc_info=exc)
    payload = error_response(
        request=request,
        code=exc.code,
        message=exc.message,
        details=jsonable_encoder(exc.details),
    )
    return JSONResponse(content=payload, status_code=status_code)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _framework_error(exc)
    payload = error_response(request=request, code=code, message=message, details=details)
    return JSONResponse(content=payload, status_code=exc.status_code, headers=exc.headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    payload = error_response(
        request=request,
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(content=payload, status_code=422)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Stack traces go to the log only.
    logger.error("request_unhandled_error path=%s", request.url.path, exc_info=exc)
    payload = error_response(request=request, code="INTERNAL_ERROR", message="Internal server error")
    return JSONResponse(content=payload, status_code=500)
