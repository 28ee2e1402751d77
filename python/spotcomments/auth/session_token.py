"""App session tokens: mint and verify the bearer credential of the extension.

- HS256 signed with SESSION_SIGNING_SECRET (never leaves the server env)
- Claims: iss=spotcomments, aud=spotcomments-extension, sub=<external subject>,
  uid=<internal user id>, iat, exp=iat+ttl (7 days by default)
- Stateless: validation is purely cryptographic/structural and never touches
  the database, so it runs on every request
- Not revocable before expiry; logout only discards the client copy
"""

import time
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

import jwt

from spotcomments.errors import ApiErrorCode, UnauthorizedError
from spotcomments.logging import get_logger

logger = get_logger(__name__)

SESSION_TOKEN_ISSUER = "spotcomments"
SESSION_TOKEN_AUDIENCE = "spotcomments-extension"
SESSION_TOKEN_ALGORITHM = "HS256"

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60


@dataclass(frozen=True)
class SessionClaims:
    """Identity extracted from a valid session token.

    Attributes:
        user_id: Internal user id (uid claim).
        external_subject_id: Identity-provider subject (sub claim).
        expires_at: Token expiry.
    """

    user_id: UUID
    external_subject_id: str
    expires_at: datetime


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_at: datetime


class SessionTokenService:
    """Issues and validates app session tokens.

    The same instance (same secret) must be used for issuing and validating;
    a token signed with any other secret is rejected.
    """

    def __init__(self, secret: str, ttl_seconds: int):
        if not secret:
            raise ValueError("Session signing secret must not be empty")
        self._secret = secret
        self.ttl_seconds = ttl_seconds

    def issue(self, user_id: UUID, external_subject_id: str) -> IssuedSession:
        """Mint a session token binding user_id to a validity window."""
        now = int(time.time())
        exp = now + self.ttl_seconds
        payload = {
            "iss": SESSION_TOKEN_ISSUER,
            "aud": SESSION_TOKEN_AUDIENCE,
            "sub": external_subject_id,
            "uid": str(user_id),
            "iat": now,
            "exp": exp,
        }
        token = jwt.encode(payload, self._secret, algorithm=SESSION_TOKEN_ALGORITHM)
        return IssuedSession(token=token, expires_at=datetime.fromtimestamp(exp, tz=UTC))

    def validate(self, bearer_value: str | None) -> SessionClaims:
        """Validate an Authorization header value (or bare token).

        Args:
            bearer_value: "Bearer <token>" or the token itself.

        Returns:
            The caller's identity.

        Raises:
            UnauthorizedError: Missing, malformed, bad signature, or expired.
        """
        token = extract_bearer_token(bearer_value)

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[SESSION_TOKEN_ALGORITHM],
                issuer=SESSION_TOKEN_ISSUER,
                audience=SESSION_TOKEN_AUDIENCE,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iat", "iss", "aud", "sub", "uid"]},
            )
        except jwt.ExpiredSignatureError as e:
            logger.warning("auth_failure", reason="expired_token")
            raise UnauthorizedError(message="Session expired") from e
        except jwt.InvalidSignatureError as e:
            logger.warning("auth_failure", reason="invalid_signature")
            raise UnauthorizedError(message="Invalid session signature") from e
        except jwt.InvalidTokenError as e:
            logger.warning("auth_failure", reason="invalid_token", error=str(e))
            raise UnauthorizedError(message="Invalid session token") from e

        try:
            user_id = UUID(str(payload["uid"]))
        except (ValueError, TypeError) as e:
            logger.warning("auth_failure", reason="invalid_uid")
            raise UnauthorizedError(message="Invalid session token") from e

        subject = payload["sub"]
        if not isinstance(subject, str) or not subject:
            logger.warning("auth_failure", reason="invalid_sub")
            raise UnauthorizedError(message="Invalid session token")

        return SessionClaims(
            user_id=user_id,
            external_subject_id=subject,
            expires_at=datetime.fromtimestamp(payload["exp"], tz=UTC),
        )


def extract_bearer_token(bearer_value: str | None) -> str:
    """Extract the token from an Authorization header value.

    A value without a scheme is treated as a bare token. Any other scheme
    (e.g. Basic) is rejected.

    Raises:
        UnauthorizedError: If the value is missing or malformed.
    """
    if not bearer_value or not bearer_value.strip():
        raise UnauthorizedError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")

    value = bearer_value.strip()
    if " " in value:
        scheme, _, token = value.partition(" ")
        if scheme.lower() != "bearer":
            raise UnauthorizedError(message="Invalid authorization header format")
        token = token.strip()
    elif value.lower() == "bearer":
        token = ""
    else:
        token = value

    if not token:
        raise UnauthorizedError(message="Invalid authorization header format")
    return token
