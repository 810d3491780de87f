"""
Error envelope shared by every failing endpoint.

Each error body has the shape
    {"error": {"code", "message", "timestamp", "details"?, "request_id"?}}
so the dashboard can branch on `code` regardless of which layer failed.
The webhook endpoint is the exception: it reports failures in its own
200 response and never reaches these handlers.
"""

import traceback
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy.exc import SQLAlchemyError, IntegrityError, OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .logging_config import get_logger
from .config import settings

logger = get_logger(__name__)


class ErrorCode:
    """Stable codes the dashboard switches on"""

    # Request level (1xxx)
    INTERNAL_SERVER_ERROR = "ERR_1000"
    VALIDATION_ERROR = "ERR_1001"
    NOT_FOUND = "ERR_1002"
    UNAUTHORIZED = "ERR_1003"
    FORBIDDEN = "ERR_1004"

    # Store (2xxx)
    DATABASE_ERROR = "ERR_2000"
    INTEGRITY_ERROR = "ERR_2001"
    CONNECTION_ERROR = "ERR_2002"

    # Payments (3xxx)
    DUPLICATE_ORDER = "ERR_3000"


_HTTP_STATUS_CODES = {
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.VALIDATION_ERROR,
}


class AppException(Exception):
    """Base for errors raised deliberately by services and dependencies"""

    def __init__(
        self,
        message: str,
        error_code: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundException(AppException):
    """e.g. NotFoundException("Transaction", "ORD_1") -> 'Transaction not found: ORD_1'"""

    def __init__(self, resource: str, identifier: str):
        super().__init__(
            message=f"{resource} not found: {identifier}",
            error_code=ErrorCode.NOT_FOUND,
            status_code=status.HTTP_404_NOT_FOUND,
            details={"resource": resource, "identifier": identifier}
        )


class ConflictException(AppException):
    def __init__(self, resource: str, identifier: str, error_code: str = ErrorCode.INTEGRITY_ERROR):
        super().__init__(
            message=f"{resource} already exists: {identifier}",
            error_code=error_code,
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "identifier": identifier}
        )


class UnauthorizedException(AppException):
    def __init__(self, message: str = "Authentication required"):
        super().__init__(
            message=message,
            error_code=ErrorCode.UNAUTHORIZED,
            status_code=status.HTTP_401_UNAUTHORIZED
        )


def format_error_response(
    error_code: str,
    message: str,
    status_code: int,
    details: Optional[Dict[str, Any]] = None,
    request_id: Optional[str] = None
) -> Dict[str, Any]:
    """Build the error envelope; empty details and request ids are omitted"""
    body: Dict[str, Any] = {
        "code": error_code,
        "message": message,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if details:
        body["details"] = details
    if request_id:
        body["request_id"] = request_id
    return {"error": body}


def _error_response(
    request: Request,
    status_code: int,
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(format_error_response(
            error_code=error_code,
            message=message,
            status_code=status_code,
            details=details,
            request_id=getattr(request.state, "request_id", None),
        )),
        headers=headers,
    )


def _request_context(request: Request) -> Dict[str, Any]:
    return {"path": request.url.path, "method": request.method}


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    # 4xx are expected client outcomes, only 5xx carry a traceback
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"Application error: {exc.message}",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "extra_data": {
                **_request_context(request),
                "error_code": exc.error_code,
                "status_code": exc.status_code,
                "details": exc.details,
            }
        },
        exc_info=exc.status_code >= 500
    )

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == status.HTTP_401_UNAUTHORIZED else None
    return _error_response(request, exc.status_code, exc.error_code, exc.message, exc.details, headers)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-raised HTTP errors (unknown route, missing bearer token) in the same envelope"""
    error_code = _HTTP_STATUS_CODES.get(
        exc.status_code,
        ErrorCode.INTERNAL_SERVER_ERROR if exc.status_code >= 500 else ErrorCode.VALIDATION_ERROR,
    )
    return _error_response(
        request, exc.status_code, error_code, str(exc.detail), headers=getattr(exc, "headers", None)
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]

    logger.warning(
        "Validation error",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "extra_data": {**_request_context(request), "errors": errors}
        }
    )

    return _error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        ErrorCode.VALIDATION_ERROR,
        "Request validation failed",
        {"validation_errors": errors},
    )


async def sqlalchemy_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    if isinstance(exc, IntegrityError):
        status_code, error_code, message = (
            status.HTTP_409_CONFLICT, ErrorCode.INTEGRITY_ERROR, "Database integrity constraint violated"
        )
    elif isinstance(exc, OperationalError):
        status_code, error_code, message = (
            status.HTTP_503_SERVICE_UNAVAILABLE, ErrorCode.CONNECTION_ERROR, "Database unavailable"
        )
    else:
        status_code, error_code, message = (
            status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.DATABASE_ERROR, "Database operation failed"
        )

    logger.error(
        f"Database error: {str(exc)}",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "extra_data": {**_request_context(request), "error_type": type(exc).__name__}
        },
        exc_info=True
    )

    # Raw driver messages can leak schema details
    details = None if settings.ENVIRONMENT == "production" else {"database_error": str(exc)}
    return _error_response(request, status_code, error_code, message, details)


async def generic_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    logger.critical(
        f"Unhandled exception: {str(exc)}",
        extra={
            "request_id": getattr(request.state, "request_id", None),
            "extra_data": {**_request_context(request), "exception_type": type(exc).__name__}
        },
        exc_info=True
    )

    if settings.ENVIRONMENT == "production":
        message, details = "An unexpected error occurred", None
    else:
        message, details = str(exc), {"traceback": traceback.format_exc().splitlines()}

    return _error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, ErrorCode.INTERNAL_SERVER_ERROR, message, details
    )


def register_exception_handlers(app):
    """Most specific first; Exception is the catch-all"""
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(SQLAlchemyError, sqlalchemy_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
