"""Centralized rendering of every failure into the error envelope.

Routes raise ``HTTPException`` with a status code and a human message; request
validation failures are collected into field-level ``errors``; anything else
is an internal error whose details only leave the process outside production.
"""

from __future__ import annotations

import logging
import traceback
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import get_settings
from app.core.rate_limit import API_RATE_LIMIT_MESSAGE

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_body(message: str, errors: list[dict[str, Any]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        message = f"Route {request.method} {request.url.path} not found"

    _log_error(exc.status_code, message)
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [_field_error(item) for item in exc.errors()]
    _log_error(status.HTTP_400_BAD_REQUEST, "Validation failed")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors),
    )


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Sync on purpose: SlowAPIMiddleware calls the registered handler without awaiting it.
    message = exc.detail if exc.limit.error_message else API_RATE_LIMIT_MESSAGE
    logger.warning("rate limit exceeded method=%s path=%s limit=%s", request.method, request.url.path, exc.limit.limit)
    return JSONResponse(status_code=status.HTTP_429_TOO_MANY_REQUESTS, content=error_body(message))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "unhandled error method=%s path=%s",
        request.method,
        request.url.path,
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    body = error_body(INTERNAL_ERROR_MESSAGE)
    if not get_settings().is_production:
        body["stack"] = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def _field_error(item: dict[str, Any]) -> dict[str, Any]:
    location = [str(part) for part in item.get("loc", ()) if part not in {"body", "query", "path", "header"}]
    error: dict[str, Any] = {"message": item.get("msg", "Invalid value")}
    if location:
        error["field"] = ".".join(location)
    return error


def _log_error(status_code: int, message: str) -> None:
    if status_code >= 500:
        logger.error("[ERROR] %s - %s", status_code, message)
    elif not get_settings().is_production:
        logger.warning("[ERROR] %s - %s", status_code, message)
