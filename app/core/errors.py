"""
Error taxonomy shared by services, stores and routers.

Services raise these; the handlers registered by ``register_exception_handlers``
turn them into ``{"message": ..., "error": ...}`` JSON responses.
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    default_message = "Server Error"

    def __init__(self, message: Optional[str] = None, status_code: Optional[int] = None):
        self.message = message or self.default_message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_body(self) -> dict:
        return {"message": self.message}


class ValidationError(AppError):
    status_code = 400
    default_message = "Missing Required Fields"


class ConflictError(AppError):
    status_code = 400
    default_message = "Conflict"


class AuthError(AppError):
    status_code = 401
    default_message = "Invalid Credentials"


class Unauthenticated(AuthError):
    default_message = "Not authorized, no token"


class NotFoundError(AppError):
    status_code = 404
    default_message = "Not Found"


class StoreError(AppError):
    """A collaborator (DynamoDB, S3) failed. ``cause`` is reported to the caller."""

    def __init__(self, cause: str, message: Optional[str] = None):
        super().__init__(message)
        self.cause = cause

    def to_body(self) -> dict:
        return {"message": self.message, "error": self.cause}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"message": "Invalid Request", "error": str(exc.errors())},
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unexpected error on {request.method} {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Server Error", "error": str(exc)})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
