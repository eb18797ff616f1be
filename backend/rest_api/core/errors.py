"""
Exception handlers.

Every error leaves the API in one envelope:
    {"success": false, "message": str, "code"?: str, "errors"?: [{field, message}]}
"""

from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic.alias_generators import to_camel
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from shared.config.logging import rest_api_logger as logger
from shared.config.settings import settings
from shared.security.rate_limit import rate_limit_exceeded_handler

_VALUE_ERROR_PREFIX = "Value error, "
# Leading loc segments that name the request part rather than the field
_LOC_SOURCES = {"body", "query", "path", "header", "cookie"}


def error_body(message: str, code: str | None = None, errors: list[dict[str, str]] | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"success": False, "message": message}
    if code:
        body["code"] = code
    if errors:
        body["errors"] = errors
    return body


def _field_name(loc: tuple | list) -> str:
    parts = [str(p) for p in loc if not isinstance(p, int)]
    if parts and parts[0] in _LOC_SOURCES:
        parts = parts[1:]
    return ".".join(to_camel(p) if "_" in p else p for p in parts) or "body"


def _field_message(error: dict[str, Any]) -> str:
    message = str(error.get("msg", "Invalid value"))
    if message.startswith(_VALUE_ERROR_PREFIX):
        message = message[len(_VALUE_ERROR_PREFIX):]
    return message


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """AppException subclasses and plain HTTPExceptions (404 routes, 405...)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(
            str(exc.detail),
            code=getattr(exc, "code", None),
            errors=getattr(exc, "errors", None),
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"field": _field_name(err.get("loc", ())), "message": _field_message(err)}
        for err in exc.errors()
    ]
    logger.info("Request validation failed", path=request.url.path, errors=len(errors))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", errors=errors),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    body = error_body("Server error")
    if settings.debug and not settings.is_production:
        body["error"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
