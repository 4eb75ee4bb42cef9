"""
Error handling: exception types and the handlers that map them onto the
``{success, message, errors}`` envelope
"""

import uuid
import traceback
import logging
from typing import Optional
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.schemas.common import error_envelope

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def client_ip(request: Request) -> Optional[str]:
    """Caller address, honouring the proxy headers"""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.headers.get("x-real-ip"):
        return request.headers["x-real-ip"]
    return request.client.host if request.client else None


class RequestFailure:
    """What gets logged about a failed request; none of it reaches the client"""

    def __init__(self, request: Request, error: Exception, status_code: int = 500):
        self.error_id = str(uuid.uuid4())
        self.path = request.url.path
        self.method = request.method
        self.ip = client_ip(request)
        self.user_agent = request.headers.get("user-agent")
        self.error = error
        self.status_code = status_code

    def log(self):
        logger.error(
            f"Error {self.error_id}: {type(self.error).__name__} in {self.method} {self.path}",
            extra={
                "error_id": self.error_id,
                "endpoint": self.path,
                "method": self.method,
                "status_code": self.status_code,
                "client_ip": self.ip,
                "user_agent": self.user_agent,
                "error_type": type(self.error).__name__,
                "error_message": str(self.error),
                "stack_trace": "".join(
                    traceback.format_exception(type(self.error), self.error, self.error.__traceback__)
                ),
            }
        )


class DatabaseError(Exception):
    """Raised by services when a write fails; the original error is kept for logging"""

    def __init__(self, message: str, original_error: Optional[Exception] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


def _format_validation_error(error: dict) -> str:
    location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
    message = error.get("msg", "Invalid value")
    # pydantic prefixes messages raised from validators
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


class ErrorHandler:
    """Centralized error handling service"""

    @staticmethod
    async def http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return JSONResponse(
            status_code=exc.status_code,
            content=error_envelope(detail),
            headers=getattr(exc, "headers", None),
        )

    @staticmethod
    async def validation_exception(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = [_format_validation_error(error) for error in exc.errors()]
        logger.info(f"Validation failed for {request.method} {request.url.path}: {errors}")
        return JSONResponse(
            status_code=400,
            content=error_envelope("Validation failed", errors=errors),
        )

    @staticmethod
    async def rate_limit_exceeded(request: Request, exc: RateLimitExceeded) -> JSONResponse:
        logger.warning(f"Rate limit exceeded for {request.method} {request.url.path}: {exc.detail}")
        return JSONResponse(
            status_code=429,
            content=error_envelope(f"Rate limit exceeded: {exc.detail}"),
        )

    @staticmethod
    async def unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
        failure = RequestFailure(request, exc)
        failure.log()
        return JSONResponse(
            status_code=500,
            content=error_envelope(INTERNAL_ERROR_MESSAGE, error_id=failure.error_id),
        )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(StarletteHTTPException, ErrorHandler.http_exception)
    app.add_exception_handler(HTTPException, ErrorHandler.http_exception)
    app.add_exception_handler(RequestValidationError, ErrorHandler.validation_exception)
    app.add_exception_handler(RateLimitExceeded, ErrorHandler.rate_limit_exceeded)
    app.add_exception_handler(Exception, ErrorHandler.unhandled_exception)
