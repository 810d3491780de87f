"""
Request tracing and response hardening.

Every response carries X-Request-ID (reused from the caller when it sends
a sane one, so gateway delivery ids show up in our logs) and
X-Process-Time in milliseconds.
"""

import re
import time
import uuid
from typing import Callable, Dict
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from .logging_config import get_logger

logger = get_logger(__name__)

SLOW_REQUEST_SECONDS = 2.0

_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._:-]{1,128}$")

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Strict-Transport-Security": "max-age=31536000; includeSubDomains",
    "Referrer-Policy": "no-referrer",
}


def resolve_request_id(request: Request) -> str:
    incoming = request.headers.get("x-request-id")
    if incoming and _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return str(uuid.uuid4())


def _request_fields(request: Request) -> Dict:
    return {
        "method": request.method,
        "path": request.url.path,
    }


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request and its completion, flags slow ones"""

    EXCLUDED_PATHS = ("/health", "/docs", "/openapi.json", "/redoc")

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = resolve_request_id(request)
        request.state.request_id = request_id
        started = time.perf_counter()

        should_log = not request.url.path.startswith(self.EXCLUDED_PATHS)

        if should_log:
            logger.info(
                f"Incoming request: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "extra_data": {
                        **_request_fields(request),
                        "query_params": dict(request.query_params),
                        "client_host": request.client.host if request.client else None,
                        "user_agent": request.headers.get("user-agent"),
                        "content_length": request.headers.get("content-length"),
                    }
                }
            )

        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request failed: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "extra_data": {
                        **_request_fields(request),
                        "process_time_ms": int((time.perf_counter() - started) * 1000),
                        "exception": str(exc),
                    }
                },
                exc_info=True
            )
            raise

        elapsed = time.perf_counter() - started
        elapsed_ms = int(elapsed * 1000)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(elapsed_ms)

        if should_log:
            if response.status_code >= 500:
                log = logger.error
            elif response.status_code >= 400:
                log = logger.warning
            else:
                log = logger.info

            log(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    # Set by the auth dependency on dashboard routes
                    "user_id": getattr(request.state, "user_id", None),
                    "extra_data": {
                        **_request_fields(request),
                        "status_code": response.status_code,
                        "process_time_ms": elapsed_ms,
                    }
                }
            )

        if elapsed > SLOW_REQUEST_SECONDS:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path}",
                extra={
                    "request_id": request_id,
                    "extra_data": {**_request_fields(request), "process_time_ms": elapsed_ms}
                }
            )

        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in SECURITY_HEADERS.items():
            response.headers.setdefault(header, value)
        return response


def register_middleware(app):
    """Starlette runs the last added middleware outermost"""
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)

    logger.info("Middleware registered successfully")
