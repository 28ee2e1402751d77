"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, session tokens, identity provider.
Process-wide collaborators are created once by create_app and read from
app.state here.
"""

from fastapi import Request

from spotcomments.auth.session_token import SessionTokenService
from spotcomments.config import Settings, get_settings
from spotcomments.db.session import get_db
from spotcomments.identity.providers import IdentityProvider

__all__ = ["get_db", "get_identity_provider", "get_session_tokens", "get_app_settings"]


def get_session_tokens(request: Request) -> SessionTokenService:
    """Get the shared session token service from app state."""
    return request.app.state.session_tokens


def get_identity_provider(request: Request) -> IdentityProvider:
    """Get the identity provider selected at startup."""
    return request.app.state.identity_provider


def get_app_settings() -> Settings:
    return get_settings()
