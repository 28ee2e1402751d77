"""Identity exchange and profile routes."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from spotcomments.api.deps import (
    get_app_settings,
    get_db,
    get_identity_provider,
    get_session_tokens,
)
from spotcomments.auth.middleware import Viewer, get_viewer
from spotcomments.auth.session_token import SessionTokenService
from spotcomments.config import Settings
from spotcomments.identity.providers import IdentityProvider
from spotcomments.schemas.auth import (
    DevLoginOut,
    DevLoginRequest,
    ExchangeOut,
    ExchangeRequest,
    UserProfileOut,
)
from spotcomments.services import identity as identity_service

router = APIRouter(prefix="/auth")


@router.post("/exchange")
def exchange_token(
    body: ExchangeRequest,
    db: Annotated[Session, Depends(get_db)],
    provider: Annotated[IdentityProvider, Depends(get_identity_provider)],
    session_tokens: Annotated[SessionTokenService, Depends(get_session_tokens)],
) -> ExchangeOut:
    """Exchange an external identity token for an app session token.

    Errors:
        E_INVALID_TOKEN (401): Identity token rejected.
        E_AUTH_UNAVAILABLE (503): Identity provider keys unreachable.
    """
    return identity_service.exchange(db, provider, session_tokens, body.privy_token)


@router.get("/me")
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> UserProfileOut:
    """Profile of the session's user.

    Errors:
        E_USER_NOT_FOUND (404): Session refers to a user that no longer exists.
    """
    return identity_service.get_user_profile(db, viewer.user_id)


@router.post("/dev-login")
def dev_login(
    body: DevLoginRequest,
    db: Annotated[Session, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_app_settings)],
) -> DevLoginOut:
    """Mint a dev identity token for an email. Disabled when Privy is configured."""
    return identity_service.dev_login(db, settings, body.email)
