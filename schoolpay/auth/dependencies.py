"""
Dashboard authentication.

Admin sessions are issued by Clerk; the API only verifies the bearer token
Clerk signed and exposes the user id to route handlers. The webhook
endpoint does not use this dependency.
"""

from typing import Annotated, Optional

import httpx
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from clerk_backend_api import Clerk
from clerk_backend_api.security.types import AuthenticateRequestOptions
from clerk_backend_api.models import ClerkBaseError

from ..config import settings
from ..error_handlers import AppException, ErrorCode, UnauthorizedException
from ..logging_config import get_logger

logger = get_logger(__name__)

clerk_client = Clerk(bearer_auth=settings.CLERK_SECRET_KEY)

# Missing credentials are reported through UnauthorizedException so the
# response carries the standard error envelope
bearer_scheme = HTTPBearer(auto_error=False)


def _authorized_parties() -> Optional[list]:
    return [settings.FRONTEND_URL] if settings.FRONTEND_URL else None


async def get_current_user_id(
    request: Request,
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]
) -> str:
    """Return the Clerk user id of the dashboard caller, 401 otherwise"""
    if credentials is None:
        raise UnauthorizedException("Missing bearer token")

    try:
        # Clerk inspects an httpx request rather than a Starlette one
        clerk_request = httpx.Request(
            method=request.method,
            url=str(request.url),
            headers=dict(request.headers)
        )
        request_state = clerk_client.authenticate_request(
            clerk_request,
            AuthenticateRequestOptions(authorized_parties=_authorized_parties())
        )
    except ClerkBaseError as e:
        logger.warning(
            "Clerk rejected the session token",
            extra={"extra_data": {"error": str(e), "path": request.url.path}}
        )
        raise UnauthorizedException("Could not validate credentials")
    except Exception:
        logger.error("Unexpected error during authentication", exc_info=True)
        raise AppException(
            message="Authentication service unavailable",
            error_code=ErrorCode.INTERNAL_SERVER_ERROR,
        )

    if not request_state.is_signed_in:
        raise UnauthorizedException(f"Authentication failed: {request_state.reason}")

    user_id = (request_state.payload or {}).get("sub")
    if not user_id:
        raise UnauthorizedException("Invalid token: missing user ID")

    request.state.user_id = user_id
    return user_id
