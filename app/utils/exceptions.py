import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError

logger = logging.getLogger(__name__)


class StayPrivateException(Exception):
    """Base exception for the application"""
    kind = "internal"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_reason = "internal_error"
    default_message = "Something went wrong"

    def __init__(self, message: Optional[str] = None, reason: Optional[str] = None):
        self.message = message or self.default_message
        self.reason = reason or self.default_reason
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {
            "ok": False,
            "error": {
                "kind": self.kind,
                "reason": self.reason,
                "message": self.message,
            },
        }


class AuthenticationError(StayPrivateException):
    """Authentication related errors"""
    kind = "unauthenticated"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_reason = "not_authenticated"
    default_message = "Not authenticated"


class AuthorizationError(StayPrivateException):
    """Authorization related errors"""
    kind = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_reason = "forbidden"
    default_message = "Not allowed"


class ValidationError(StayPrivateException):
    """Validation related errors"""
    kind = "invalid_input"
    status_code = status.HTTP_400_BAD_REQUEST
    default_reason = "invalid_body"
    default_message = "Invalid request body"


class NotFoundError(StayPrivateException):
    """Resource not found errors"""
    kind = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_reason = "not_found"
    default_message = "Not found"


class ConflictError(StayPrivateException):
    """Resource conflict errors"""
    kind = "conflict"
    status_code = status.HTTP_409_CONFLICT
    default_reason = "conflict"
    default_message = "Conflicts with the current state"


class UnavailableError(StayPrivateException):
    """Persistence store could not be reached"""
    kind = "unavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_reason = "store_unavailable"
    default_message = "Service temporarily unavailable, try again"


def _error_response(exc: StayPrivateException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def app_exception_handler(request: Request, exc: StayPrivateException) -> JSONResponse:
    logger.warning(
        "%s %s failed: %s/%s (%s)",
        request.method, request.url.path, exc.kind, exc.reason, exc.message,
    )
    return _error_response(exc)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query"))
        message = f"{location}: {first.get('msg')}" if location else str(first.get("msg"))
    else:
        message = None
    return await app_exception_handler(request, ValidationError(message=message, reason="invalid_body"))


async def integrity_exception_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("%s %s hit a store constraint: %s", request.method, request.url.path, exc.orig)
    return _error_response(
        ConflictError("Conflicts with an existing record", reason="constraint_violation")
    )


async def data_exception_handler(request: Request, exc: DataError) -> JSONResponse:
    logger.warning("%s %s: value rejected by the store: %s", request.method, request.url.path, exc.orig)
    return _error_response(ValidationError("Value out of range for this field", reason="invalid_value"))


async def store_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("%s %s: persistence store failure: %s", request.method, request.url.path, exc)
    return _error_response(UnavailableError())


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as an {"ok": false, "error": {...}} envelope"""
    app.add_exception_handler(StayPrivateException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(IntegrityError, integrity_exception_handler)
    app.add_exception_handler(DataError, data_exception_handler)
    app.add_exception_handler(DBAPIError, store_exception_handler)
    app.add_exception_handler(ConnectionError, store_exception_handler)
