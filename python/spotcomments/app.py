"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, auth middleware, CORS, request-id
middleware, and routes.

Identity provider selection:
- Privy when PRIVY_APP_ID and PRIVY_APP_SECRET are configured
- Dev provider (`dev.<subject>` tokens) otherwise; staging/prod settings
  refuse to load without Privy credentials

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)
- This ensures all responses, including preflights, get X-Request-ID

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. CORSMiddleware (answers preflight, injects CORS headers)
3. AuthMiddleware (validates any bearer, sets viewer)
4. Route handler
"""

import json
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from spotcomments.api.routes import create_api_router
from spotcomments.auth.middleware import AuthMiddleware
from spotcomments.auth.session_token import SessionTokenService
from spotcomments.config import get_settings
from spotcomments.errors import ApiErrorCode
from spotcomments.identity.providers import IdentityProvider, create_identity_provider
from spotcomments.logging import configure_logging, get_logger
from spotcomments.middleware.cors import CORSMiddleware
from spotcomments.middleware.request_id import RequestIDMiddleware
from spotcomments.responses import error_json, register_exception_handlers

# Configure structured logging at import time
configure_logging()

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle resources.

    The identity provider owns an HTTP client for profile lookups; it is
    closed on shutdown.
    """
    yield

    app.state.identity_provider.close()
    logger.info("identity_provider_closed")


def create_app(
    identity_provider: IdentityProvider | None = None,
    session_tokens: SessionTokenService | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        identity_provider: Optional provider override (for testing).
        session_tokens: Optional session token service override (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Playlist Comments API",
        description="Comments on Spotify playlists and tracks",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.session_tokens = session_tokens or SessionTokenService(
        secret=settings.session_signing_secret,
        ttl_seconds=settings.session_ttl_seconds,
    )
    app.state.identity_provider = identity_provider or create_identity_provider(settings)

    register_exception_handlers(app)

    @app.middleware("http")
    async def catch_json_decode_errors(request: Request, call_next):
        """Catch JSON decode errors before they reach route handlers."""
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            content_type = request.headers.get("content-type", "")
            if "application/json" in content_type:
                body = await request.body()
                if body:
                    try:
                        json.loads(body)
                    except (json.JSONDecodeError, UnicodeDecodeError):
                        return error_json(
                            400, ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"
                        )
        return await call_next(request)

    app.include_router(create_api_router())

    app.add_middleware(AuthMiddleware, session_tokens=app.state.session_tokens)
    logger.info(
        "auth_middleware_enabled",
        env=settings.spotcomments_env.value,
        identity_provider=type(app.state.identity_provider).__name__,
    )

    # Added after auth so preflights are answered before auth runs
    app.add_middleware(CORSMiddleware, allowed_origins=settings.cors_origin_list)
    logger.info("cors_middleware_enabled", origins=settings.cors_origin_list)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
