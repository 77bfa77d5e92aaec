# convert_server/errors.py
import logging
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """HTTP error rendered as {"success": false, "error", "message", ...extra}."""

    status_code_default = 500

    def __init__(
        self,
        error: str,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        headers: Optional[dict[str, str]] = None,
        **extra: Any,
    ):
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=error,
            headers=headers,
        )
        self.error = error
        self.message = message
        self.extra = extra


class ValidationFailed(ApiError):
    status_code_default = 400


class Unauthorized(ApiError):
    status_code_default = 401

    def __init__(self, error: str, message: Optional[str] = None, **extra: Any):
        super().__init__(error, message, headers={"WWW-Authenticate": "Bearer"}, **extra)


class Forbidden(ApiError):
    status_code_default = 403


class NotFound(ApiError):
    status_code_default = 404


class Conflict(ApiError):
    status_code_default = 409


class QuotaExceeded(ApiError):
    status_code_default = 429


class NotImplementedYet(ApiError):
    status_code_default = 501


def envelope(data: Any) -> dict:
    return {"success": True, "data": data}


def error_body(error: str, message: Optional[str] = None, **extra: Any) -> dict:
    body = {"success": False, "error": error}
    if message:
        body["message"] = message
    body.update(extra)
    return body


async def _api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(
        jsonable_encoder(error_body(exc.error, exc.message, **exc.extra)),
        status_code=exc.status_code,
        headers=exc.headers,
    )


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(
        error_body(str(exc.detail)),
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        {"field": ".".join(str(part) for part in err.get("loc", ())), "message": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        jsonable_encoder(error_body("Invalid request data", "Request validation failed", details=details)),
        status_code=400,
    )


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        error_body("Internal server error", "An unexpected error occurred"),
        status_code=500,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, _api_error_handler)
    app.add_exception_handler(StarletteHTTPException, _http_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
    app.add_exception_handler(Exception, _unhandled_error_handler)
