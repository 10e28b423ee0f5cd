"""API error types and the JSON envelope they render to."""

import logging
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """An HTTP error carrying a stable machine-readable code."""

    def __init__(self, status_code: int, code: str, message: str):
        super().__init__(status_code=status_code, detail=message)
        self.code = code
        self.message = message


class ValidationFailed(ApiError):
    def __init__(self, message: str, code: str = "VALIDATION_ERROR"):
        super().__init__(400, code, message)


class Conflict(ApiError):
    def __init__(self, code: str, message: str):
        super().__init__(409, code, message)


class Unauthorized(ApiError):
    def __init__(self, code: str = "UNAUTHORIZED", message: str = "Authentication required"):
        super().__init__(401, code, message)


class NotFound(ApiError):
    def __init__(self, message: str = "Not found"):
        super().__init__(404, "NOT_FOUND", message)


def success_response(data: Any) -> dict:
    return {"success": True, "data": data}


def error_body(code: str, message: str) -> dict:
    return {"success": False, "error": {"code": code, "message": message}}


def install_error_handlers(app: FastAPI) -> None:
    """Render every error as ``{"success": false, "error": {code, message}}``."""

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(exc.code, exc.message),
            headers=exc.headers,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        code = "NOT_FOUND" if exc.status_code == 404 else "HTTP_ERROR"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(code, str(exc.detail)),
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        messages = []
        for error in exc.errors():
            location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
            messages.append(f"{location}: {error.get('msg')}" if location else error.get("msg"))
        return JSONResponse(
            status_code=400,
            content=error_body("VALIDATION_ERROR", "; ".join(messages) or "Invalid request"),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content=error_body("INTERNAL_ERROR", "Internal server error"),
        )
