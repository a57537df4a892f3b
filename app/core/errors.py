"""Centralized error handling for the API.

Standardized error codes, exception-to-response mapping and a global
exception handler. Every error response has the shape::

    {"error": {"code": "...", "message": "...", "details": {...}}}

``details`` is omitted when empty.
"""

from typing import Any, Dict, List, Optional, Type

import structlog
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_405_METHOD_NOT_ALLOWED,
    HTTP_409_CONFLICT,
    HTTP_429_TOO_MANY_REQUESTS,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_503_SERVICE_UNAVAILABLE,
)

from app.core.logging import get_request_id
from app.core.metrics import MetricsCollector
from app.providers.exceptions import (
    DatabaseError,
    DuplicateVideoError,
    InvalidStorageReferenceError,
    MalformedRowError,
    ProviderError,
    StorageUnavailableError,
)
from app.services.query_builder import QueryValidationError
from app.services.url_resolver import (
    AccessDeniedError,
    ResolutionErrorType,
    UrlResolutionError,
)
from app.services.video_lookup import (
    InvalidInputError,
    VideoNotFoundError,
    VideoValidationError,
)

logger = structlog.get_logger(__name__)


class ErrorCode:
    """Machine-readable error codes for API responses."""

    # Client Errors (4xx)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INPUT = "INVALID_INPUT"
    INVALID_REFERENCE = "INVALID_REFERENCE"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    ACCESS_DENIED = "ACCESS_DENIED"
    NOT_FOUND = "NOT_FOUND"
    METHOD_NOT_ALLOWED = "METHOD_NOT_ALLOWED"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server Errors (5xx)
    INVALID_URL = "INVALID_URL"
    DATABASE_ERROR = "DATABASE_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"

    # Backend outages, reported as 500
    STORAGE_UNAVAILABLE = "STORAGE_UNAVAILABLE"

    # Service Unavailable (503)
    SERVICE_UNHEALTHY = "SERVICE_UNHEALTHY"


ERROR_CODE_TO_STATUS: Dict[str, int] = {
    # 400 Bad Request
    ErrorCode.VALIDATION_ERROR: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_INPUT: HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_REFERENCE: HTTP_400_BAD_REQUEST,
    # 401 / 403
    ErrorCode.UNAUTHORIZED: HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: HTTP_403_FORBIDDEN,
    ErrorCode.ACCESS_DENIED: HTTP_403_FORBIDDEN,
    # 404 / 405 / 409 / 429
    ErrorCode.NOT_FOUND: HTTP_404_NOT_FOUND,
    ErrorCode.METHOD_NOT_ALLOWED: HTTP_405_METHOD_NOT_ALLOWED,
    ErrorCode.CONFLICT: HTTP_409_CONFLICT,
    ErrorCode.RATE_LIMIT_EXCEEDED: HTTP_429_TOO_MANY_REQUESTS,
    # 500 Internal Server Error
    ErrorCode.INVALID_URL: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.DATABASE_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.INTERNAL_ERROR: HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorCode.STORAGE_UNAVAILABLE: HTTP_500_INTERNAL_SERVER_ERROR,
    # 503 Service Unavailable
    ErrorCode.SERVICE_UNHEALTHY: HTTP_503_SERVICE_UNAVAILABLE,
}


# Backend SQL state codes to error codes
DATABASE_CODE_TO_ERROR_CODE: Dict[str, str] = {
    "23505": ErrorCode.CONFLICT,  # unique violation
    "23503": ErrorCode.INVALID_REFERENCE,  # foreign key violation
    "42P01": ErrorCode.DATABASE_ERROR,  # undefined table
    "PGRST116": ErrorCode.NOT_FOUND,  # no rows returned
}


# Messages safe to show when the underlying error must stay in the logs
GENERIC_MESSAGES: Dict[str, str] = {
    ErrorCode.INVALID_URL: "The video asset reference is invalid",
    ErrorCode.DATABASE_ERROR: "A database error occurred",
    ErrorCode.INTERNAL_ERROR: "An unexpected error occurred",
    ErrorCode.STORAGE_UNAVAILABLE: "Storage backend is unavailable. Try again later",
}


# Order matters: subclasses must come before their base classes
EXCEPTION_TO_ERROR_CODE: Dict[Type[Exception], str] = {
    QueryValidationError: ErrorCode.VALIDATION_ERROR,
    VideoValidationError: ErrorCode.VALIDATION_ERROR,
    InvalidInputError: ErrorCode.INVALID_INPUT,
    AccessDeniedError: ErrorCode.ACCESS_DENIED,
    VideoNotFoundError: ErrorCode.NOT_FOUND,
    DuplicateVideoError: ErrorCode.CONFLICT,
    StorageUnavailableError: ErrorCode.STORAGE_UNAVAILABLE,
    MalformedRowError: ErrorCode.INTERNAL_ERROR,
    InvalidStorageReferenceError: ErrorCode.INVALID_URL,
    # ProviderError must be last (after its subclasses)
    ProviderError: ErrorCode.DATABASE_ERROR,
}

# Service exceptions the global handler maps; each is registered on the app
SERVICE_EXCEPTIONS = tuple(EXCEPTION_TO_ERROR_CODE) + (UrlResolutionError,)


class APIError(Exception):
    """Structured API error converted to the uniform payload by the global handler."""

    def __init__(
        self,
        error_code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        """Initialize an API error.

        Args:
            error_code: Machine-readable error code from ErrorCode class.
            message: Human-readable error message.
            details: Optional structured details (field errors, reasons).
        """
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(message)

    @property
    def status_code(self) -> int:
        return ERROR_CODE_TO_STATUS.get(self.error_code, HTTP_500_INTERNAL_SERVER_ERROR)


def map_database_code(code: Optional[str]) -> str:
    """Map a backend SQL state code to an error code, DATABASE_ERROR if unknown."""
    return DATABASE_CODE_TO_ERROR_CODE.get(code or "", ErrorCode.DATABASE_ERROR)


def _field_details(errors: List[Any]) -> Dict[str, Any]:
    return {"errors": [error.to_dict() for error in errors]}


def map_exception_to_api_error(exc: Exception) -> APIError:
    """Map service and provider exceptions to APIError.

    Expected failures keep their message. Integrity and backend failures get
    a generic message; the raw error stays in the logs.

    Args:
        exc: The exception to map.

    Returns:
        An APIError with the appropriate error code and message.
    """
    if isinstance(exc, (QueryValidationError, VideoValidationError)):
        return APIError(
            ErrorCode.VALIDATION_ERROR,
            "Validation failed for one or more fields",
            _field_details(exc.errors),
        )

    if isinstance(exc, InvalidInputError):
        return APIError(ErrorCode.INVALID_INPUT, str(exc), {"field": exc.field})

    if isinstance(exc, AccessDeniedError):
        return APIError(ErrorCode.ACCESS_DENIED, "Access denied", exc.verdict.to_dict())

    if isinstance(exc, UrlResolutionError):
        if exc.error_type == ResolutionErrorType.NETWORK_ERROR:
            code = ErrorCode.STORAGE_UNAVAILABLE
        else:
            code = ErrorCode.INVALID_URL
        return APIError(code, GENERIC_MESSAGES[code])

    if isinstance(exc, DatabaseError):
        code = map_database_code(exc.code)
        details = {"database_code": exc.code} if exc.code else None
        message = str(exc) if code in (ErrorCode.CONFLICT, ErrorCode.NOT_FOUND) else None
        return APIError(code, message or GENERIC_MESSAGES.get(code, str(exc)), details)

    for exc_type, error_code in EXCEPTION_TO_ERROR_CODE.items():
        if isinstance(exc, exc_type):
            return APIError(error_code, GENERIC_MESSAGES.get(error_code, str(exc)))

    return APIError(ErrorCode.INTERNAL_ERROR, GENERIC_MESSAGES[ErrorCode.INTERNAL_ERROR])


def build_error_response(
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Build the uniform error payload.

    Args:
        error_code: Machine-readable error code.
        message: Human-readable error message.
        details: Optional structured details.

    Returns:
        Dictionary with a single ``error`` key.
    """
    error: Dict[str, Any] = {"code": error_code, "message": message}
    if details:
        error["details"] = details
    request_id = get_request_id()
    if request_id:
        error["request_id"] = request_id
    return {"error": error}


def _request_validation_details(exc: RequestValidationError) -> Dict[str, Any]:
    errors = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query")]
        errors.append({"field": ".".join(location), "message": error.get("msg", "Invalid value")})
    return {"errors": errors}


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Global exception handler for FastAPI.

    Converts every exception into the uniform error payload with the right
    HTTP status code.

    Args:
        request: The FastAPI request object.
        exc: The exception that was raised.

    Returns:
        JSONResponse with the error payload.
    """
    path = request.url.path
    headers: Optional[Dict[str, str]] = None

    if isinstance(exc, APIError):
        api_error = exc
        logger.warning("api_error", error_code=exc.error_code, message=exc.message, path=path)

    elif isinstance(exc, RequestValidationError):
        api_error = APIError(
            ErrorCode.VALIDATION_ERROR,
            "Validation failed for one or more fields",
            _request_validation_details(exc),
        )
        logger.info("request_validation_failed", path=path)

    elif isinstance(exc, HTTPException):
        error_code = _status_to_error_code(exc.status_code)
        api_error = APIError(error_code, str(exc.detail) if exc.detail else "An error occurred")
        headers = getattr(exc, "headers", None)
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            error_code=error_code,
            path=path,
        )
        MetricsCollector.record_error(error_code, path)
        return JSONResponse(
            status_code=exc.status_code,
            content=build_error_response(error_code, api_error.message),
            headers=headers,
        )

    elif isinstance(exc, SERVICE_EXCEPTIONS):
        api_error = map_exception_to_api_error(exc)
        log = logger.error if api_error.status_code >= 500 else logger.warning
        log(
            "service_error",
            error_code=api_error.error_code,
            error_type=type(exc).__name__,
            message=str(exc),
            path=path,
        )

    else:
        # Unexpected error, log with full traceback
        api_error = APIError(ErrorCode.INTERNAL_ERROR, GENERIC_MESSAGES[ErrorCode.INTERNAL_ERROR])
        logger.error(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error=str(exc),
            path=path,
            exc_info=True,
        )

    MetricsCollector.record_error(api_error.error_code, path)
    return JSONResponse(
        status_code=api_error.status_code,
        content=build_error_response(api_error.error_code, api_error.message, api_error.details),
        headers=headers,
    )


def _status_to_error_code(status_code: int) -> str:
    """Infer an error code from an HTTP status code."""
    if status_code == HTTP_400_BAD_REQUEST:
        return ErrorCode.VALIDATION_ERROR
    elif status_code == HTTP_401_UNAUTHORIZED:
        return ErrorCode.UNAUTHORIZED
    elif status_code == HTTP_403_FORBIDDEN:
        return ErrorCode.FORBIDDEN
    elif status_code == HTTP_404_NOT_FOUND:
        return ErrorCode.NOT_FOUND
    elif status_code == HTTP_405_METHOD_NOT_ALLOWED:
        return ErrorCode.METHOD_NOT_ALLOWED
    elif status_code == HTTP_409_CONFLICT:
        return ErrorCode.CONFLICT
    elif status_code == HTTP_429_TOO_MANY_REQUESTS:
        return ErrorCode.RATE_LIMIT_EXCEEDED
    elif status_code == HTTP_503_SERVICE_UNAVAILABLE:
        return ErrorCode.SERVICE_UNHEALTHY
    else:
        return ErrorCode.INTERNAL_ERROR
