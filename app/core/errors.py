"""
API Error Types and Handlers

Every failure leaves the service as a JSON body of the form
{"error": "<message>"}. Endpoints raise the ApiError subclasses below;
framework-level errors (405s, body validation, database driver errors)
are mapped onto the same shape by the handlers registered in app.main.
"""

import logging

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ApiError(HTTPException):
    """Base exception for errors returned to API callers."""

    status_code_default = 500

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(
            status_code=status_code or self.status_code_default,
            detail=message,
        )


class ValidationFailed(ApiError):
    """Malformed input: bad JSON, missing fields, malformed headers."""
    status_code_default = 400


class Unauthorized(ApiError):
    """Invalid or expired login code or session."""
    status_code_default = 401


class ConfigurationError(ApiError):
    """A required secret or setting is missing for this request."""
    status_code_default = 500


class ProcessingError(ApiError):
    """A downstream step failed after input was accepted."""
    status_code_default = 500


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    detail = "Method not allowed" if exc.status_code == 405 else exc.detail
    return JSONResponse(
        {"error": detail},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Rejected request body on %s: %s", request.url.path, exc.errors())
    return JSONResponse({"error": "Invalid JSON body"}, status_code=400)


async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Pass the driver message through; these responses go to trusted operators."""
    message = str(getattr(exc, "orig", None) or exc)
    logger.error("Database error on %s: %s", request.url.path, message)
    return JSONResponse({"error": message}, status_code=500)
