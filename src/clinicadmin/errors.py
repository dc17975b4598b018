from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException


logger = logging.getLogger("clinicadmin.api")


class ApiError(HTTPException):
    """Error with an HTTP status and a client-facing message.

    Services raise this directly; the handlers below render it into the
    standard ``{success, message, data}`` envelope.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(status_code=status_code, detail=message)
        self.message = message

    @classmethod
    def bad_request(cls, message: str) -> "ApiError":
        return cls(status.HTTP_400_BAD_REQUEST, message)

    @classmethod
    def not_found(cls, message: str) -> "ApiError":
        return cls(status.HTTP_404_NOT_FOUND, message)

    @classmethod
    def conflict(cls, message: str) -> "ApiError":
        return cls(status.HTTP_409_CONFLICT, message)


def error_envelope(status_code: int, message: str, headers: Optional[dict] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "data": None},
        headers=headers,
    )


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    """Flatten pydantic errors into ``Validation failed: a.b: msg; ...``."""

    parts = []
    for error in errors:
        loc = ".".join(str(p) for p in error.get("loc", ()))
        parts.append(f"{loc}: {error.get('msg', 'Invalid value')}")
    return "Validation failed: " + "; ".join(parts)


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
    return error_envelope(exc.status_code, message, getattr(exc, "headers", None))


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return error_envelope(status.HTTP_400_BAD_REQUEST, format_validation_errors(list(exc.errors())))


async def _integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return error_envelope(status.HTTP_409_CONFLICT, "The request conflicts with existing data.")


async def _unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_envelope(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        "An unexpected error occurred on the server.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(IntegrityError, _integrity_error_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
