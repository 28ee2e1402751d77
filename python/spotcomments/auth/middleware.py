"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Global middleware that validates a session bearer when present
- get_viewer: Dependency for routes that require a validated session
- get_optional_viewer: Dependency for public routes that annotate by caller

Authentication here is optional per request: public reads accept anonymous
callers, so a missing header is not an error at the middleware level. A header
that is present but invalid is remembered on request.state and surfaced only
when a route actually requires a session.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from spotcomments.auth.session_token import SessionTokenService
from spotcomments.errors import ApiError, ApiErrorCode, UnauthorizedError
from spotcomments.logging import bind_user

logger = logging.getLogger(__name__)

# Header names
AUTHORIZATION_HEADER = "authorization"

# Paths that never inspect credentials
PUBLIC_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}


@dataclass(frozen=True)
class Viewer:
    """Validated caller identity.

    Attributes:
        user_id: Internal user id (session uid claim).
        external_subject_id: Identity-provider subject (session sub claim).
    """

    user_id: UUID
    external_subject_id: str


class AuthMiddleware(BaseHTTPMiddleware):
    """Session authentication middleware.

    Order of checks:
    1. Skip if public path or preflight
    2. No Authorization header: continue anonymously
    3. Validate via SessionTokenService
    4. Attach Viewer (or the validation error) to request state
    """

    def __init__(self, app: ASGIApp, session_tokens: SessionTokenService):
        super().__init__(app)
        self.session_tokens = session_tokens

    async def dispatch(self, request: Request, call_next):
        request.state.viewer = None
        request.state.auth_error = None

        if request.url.path in PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        auth_header = request.headers.get(AUTHORIZATION_HEADER)
        if not auth_header:
            return await call_next(request)

        try:
            claims = self.session_tokens.validate(auth_header)
        except ApiError as e:
            logger.warning(
                "auth_failure",
                extra={"reason": e.message, "request_path": request.url.path},
            )
            request.state.auth_error = e
            return await call_next(request)

        request.state.viewer = Viewer(
            user_id=claims.user_id,
            external_subject_id=claims.external_subject_id,
        )
        bind_user(str(claims.user_id))

        return await call_next(request)


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: The stored validation error, or E_UNAUTHENTICATED when the
            request carried no credentials.
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is not None:
        return viewer

    auth_error = getattr(request.state, "auth_error", None)
    if auth_error is not None:
        raise auth_error
    raise UnauthorizedError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")


def get_optional_viewer(request: Request) -> Viewer | None:
    """FastAPI dependency for public routes.

    Returns the viewer if a valid session was presented, else None. An invalid
    bearer on a public route degrades to anonymous.
    """
    return getattr(request.state, "viewer", None)

