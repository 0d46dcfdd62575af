"""
Application error types and the JSON error handlers registered on the app.
"""
import enum
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, IntegrityError

from spendwise.config import settings

logger = logging.getLogger(__name__)


class ErrorType(str, enum.Enum):
    VALIDATION = "ValidationError"
    AUTHENTICATION = "AuthenticationError"
    NOT_FOUND = "NotFoundError"
    DATABASE = "DatabaseError"
    RATE_LIMIT = "RateLimitError"


_DEFAULT_STATUS = {
    ErrorType.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorType.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorType.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorType.DATABASE: status.HTTP_400_BAD_REQUEST,
    ErrorType.RATE_LIMIT: status.HTTP_429_TOO_MANY_REQUESTS,
}


class AppError(Exception):
    """Error raised by services; rendered as {"error": {"type", "message"}}."""

    def __init__(self, error_type: ErrorType, message: str, status_code: int = None,
                 headers: dict = None):
        super().__init__(message)
        self.type = error_type
        self.message = message
        self.status_code = status_code or _DEFAULT_STATUS[error_type]
        self.headers = headers


def _error_body(error_type: ErrorType, message: str) -> dict:
    return {"error": {"type": error_type.value, "message": message}}


def _format_validation_errors(exc: RequestValidationError) -> list:
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ())]
        errors.append({
            "location": loc[0] if loc else None,
            "field": ".".join(loc[1:]) if len(loc) > 1 else None,
            "message": error.get("msg"),
        })
    return errors


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.type, exc.message),
        headers=exc.headers,
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"errors": _format_validation_errors(exc)},
    )


async def database_error_handler(request: Request, exc: Exception):
    logger.warning("Rejected write on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_error_body(ErrorType.DATABASE, "Invalid data provided"),
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = str(exc) if settings.is_development else "Something went wrong"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "Internal Server Error", "message": message},
    )


def register_error_handlers(app: FastAPI):
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(IntegrityError, database_error_handler)
    app.add_exception_handler(DataError, database_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
