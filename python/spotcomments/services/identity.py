"""Identity bridge service.

Exchanges an external identity token for an app session token, creating the
internal user record on first sight of a subject.

The user upsert is race-safe: concurrent first exchanges for the same
subject converge on one users row. The loser of the insert race hits the
unique constraint, rolls back, and re-reads the winner's row.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from spotcomments.auth.session_token import SessionTokenService
from spotcomments.config import Settings
from spotcomments.db.models import User, utcnow
from spotcomments.db.session import transaction
from spotcomments.errors import ApiError, ApiErrorCode, InvalidRequestError, NotFoundError
from spotcomments.identity.providers import DEV_TOKEN_PREFIX, IdentityProvider
from spotcomments.logging import get_logger
from spotcomments.schemas.auth import DevLoginOut, ExchangeOut, UserProfileOut

logger = get_logger(__name__)

DEV_SUBJECT_PREFIX = "dev_"
DEV_SUBJECT_HEX_LENGTH = 24


@dataclass(frozen=True)
class ExchangeResult:
    """Issued session and the internal user it resolves to."""

    token: str
    external_subject_id: str
    user_id: UUID


def get_user_by_subject(db: Session, subject: str) -> User | None:
    return db.scalars(select(User).where(User.privy_user_id == subject)).first()


def _apply_email(db: Session, user: User, email: str | None) -> None:
    if email and user.email != email:
        with transaction(db):
            user.email = email
            user.updated_at = utcnow()


def upsert_user(db: Session, subject: str, email: str | None = None) -> User:
    """Return the user for subject, creating it if absent.

    A non-empty email replaces the stored one; None leaves it untouched.

    Raises:
        ApiError(E_INTERNAL): Insert lost a race but the winner's row is
            still not visible.
    """
    user = get_user_by_subject(db, subject)
    if user is not None:
        _apply_email(db, user, email)
        return user

    try:
        with transaction(db):
            user = User(privy_user_id=subject, email=email)
            db.add(user)
            db.flush()
    except IntegrityError:
        # Lost race: another exchange created the row first
        user = get_user_by_subject(db, subject)
        if user is None:
            logger.error("user_upsert_race_unresolved", subject_length=len(subject))
            raise ApiError(ApiErrorCode.E_INTERNAL, "Failed to create user") from None

        logger.info("user_upsert_race_recovered", user_id=str(user.id))
        _apply_email(db, user, email)
        return user

    logger.info("user_created", user_id=str(user.id))
    return user


def exchange_identity_token(
    db: Session,
    provider: IdentityProvider,
    session_tokens: SessionTokenService,
    external_token: str | None,
) -> ExchangeResult:
    """Verify an external identity token and issue a session for its subject.

    Email lookup is best-effort: a provider failure there never fails the
    exchange.

    Raises:
        ApiError(E_INVALID_TOKEN): Provider rejected the token.
        ApiError(E_AUTH_UNAVAILABLE): Provider keys unreachable.
    """
    if not external_token:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "privyToken is required")

    subject = provider.verify(external_token)

    try:
        email = provider.fetch_email(subject)
    except Exception as e:
        logger.warning("identity_email_lookup_failed", error_type=type(e).__name__)
        email = None

    user = upsert_user(db, subject, email)
    issued = session_tokens.issue(user.id, subject)

    logger.info("session_issued", user_id=str(user.id))
    return ExchangeResult(token=issued.token, external_subject_id=subject, user_id=user.id)


def exchange(
    db: Session,
    provider: IdentityProvider,
    session_tokens: SessionTokenService,
    external_token: str | None,
) -> ExchangeOut:
    """Route-facing wrapper returning the wire shape {token, privyUserId}."""
    result = exchange_identity_token(db, provider, session_tokens, external_token)
    return ExchangeOut(token=result.token, privy_user_id=result.external_subject_id)


def get_user_profile(db: Session, user_id: UUID) -> UserProfileOut:
    """Return the profile of the session's user.

    Raises:
        NotFoundError(E_USER_NOT_FOUND): The session outlived its user row.
    """
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError(ApiErrorCode.E_USER_NOT_FOUND, "User not found")
    return UserProfileOut.model_validate(user)


def dev_subject_for_email(email: str) -> str:
    """Deterministic dev subject: dev_ + first 24 hex chars of the email bytes."""
    return DEV_SUBJECT_PREFIX + email.encode("utf-8").hex()[:DEV_SUBJECT_HEX_LENGTH]


def dev_login(db: Session, settings: Settings, email: str) -> DevLoginOut:
    """Mint a dev identity token for an email (dev mode only).

    The user is upserted with the email so /auth/me shows it; the returned
    token is then exchanged like any external token. The subject is derived
    from the email exactly as given, so differently cased spellings are
    distinct dev users.

    Raises:
        InvalidRequestError(E_DEV_LOGIN_DISABLED): A real provider is configured.
    """
    if settings.privy_configured:
        raise InvalidRequestError(
            ApiErrorCode.E_DEV_LOGIN_DISABLED, "Dev login is disabled when Privy is configured"
        )

    if "@" not in email:
        raise InvalidRequestError(ApiErrorCode.E_INVALID_REQUEST, "A valid email is required")

    subject = dev_subject_for_email(email)
    upsert_user(db, subject, email)
    return DevLoginOut(privy_token=DEV_TOKEN_PREFIX + subject)
