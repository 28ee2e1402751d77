"""Identity provider implementations.

Provides:
- IdentityProvider: Protocol for external identity verification
- PrivyIdentityProvider: Verifies Privy access tokens and reads profile emails
- DevIdentityProvider: Local/test stand-in accepting `dev.<subject>` tokens

Exactly one provider is active per process. create_identity_provider picks it
from configuration only: Privy when PRIVY_APP_ID and PRIVY_APP_SECRET are both
set, the dev provider otherwise. Nothing at request time can switch modes.
"""

import logging
import threading
from typing import Any, Protocol

import httpx
import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from spotcomments.config import Settings
from spotcomments.errors import ApiError, ApiErrorCode

logger = logging.getLogger(__name__)

PRIVY_ISSUER = "privy.io"
PRIVY_ALGORITHMS = ["ES256"]
DEV_TOKEN_PREFIX = "dev."

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

# Email lookup is best-effort; keep it short
PROFILE_TIMEOUT_SECONDS = 5.0


class IdentityProvider(Protocol):
    """Protocol for external identity providers."""

    def verify(self, token: str) -> str:
        """Verify an external identity token and return its subject.

        Raises:
            ApiError(E_INVALID_TOKEN): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): Verification keys unreachable.
        """
        ...

    def fetch_email(self, subject: str) -> str | None:
        """Look up the subject's email. Returns None when unknown.

        May raise; callers treat any failure as "no email".
        """
        ...

    def close(self) -> None: ...


def _invalid_token(message: str) -> ApiError:
    return ApiError(ApiErrorCode.E_INVALID_TOKEN, message)


class PrivyIdentityProvider:
    """Production provider backed by Privy.

    Validates:
    - Signature: ES256, key from PRIVY_VERIFICATION_KEY or the app JWKS
    - exp with 60s clock skew
    - iss == "privy.io"
    - aud == PRIVY_APP_ID
    - sub present (the Privy DID)
    """

    def __init__(
        self,
        app_id: str,
        app_secret: str,
        api_base_url: str,
        jwks_url: str | None = None,
        verification_key: str | None = None,
        http_client: httpx.Client | None = None,
        cache_ttl: int = 3600,
    ):
        self.app_id = app_id
        self.app_secret = app_secret
        self.api_base_url = api_base_url.rstrip("/")
        self.jwks_url = jwks_url
        self.verification_key = verification_key
        self.cache_ttl = cache_ttl

        self._http_client = http_client
        self._owns_http_client = http_client is None
        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    def _get_jwks_client(self) -> PyJWKClient:
        with self._jwks_lock:
            if self._jwks_client is None:
                if not self.jwks_url:
                    raise ApiError(
                        ApiErrorCode.E_AUTH_UNAVAILABLE, "Identity verification unavailable"
                    )
                self._jwks_client = PyJWKClient(
                    self.jwks_url,
                    cache_keys=True,
                    lifespan=self.cache_ttl,
                )
            return self._jwks_client

    def _refresh_jwks(self) -> None:
        """Drop the cached JWKS client so the next lookup refetches keys."""
        with self._jwks_lock:
            self._jwks_client = None

    def _get_signing_key(self, token: str) -> Any:
        if self.verification_key:
            return self.verification_key

        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token).key
        except PyJWKClientError as e:
            if "Unable to find" not in str(e) and "kid" not in str(e).lower():
                logger.warning(
                    "auth_failure", extra={"reason": "jwks_unavailable", "error": str(e)}
                )
                raise ApiError(
                    ApiErrorCode.E_AUTH_UNAVAILABLE, "Identity verification unavailable"
                ) from e

        # Key rotation: refetch once on kid miss
        logger.info("Refreshing Privy JWKS due to kid miss")
        self._refresh_jwks()
        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token).key
        except PyJWKClientError as e:
            logger.warning("auth_failure", extra={"reason": "kid_not_found"})
            raise _invalid_token("Invalid token: signing key not found") from e

    def verify(self, token: str) -> str:
        if not token:
            raise _invalid_token("Identity token is required")

        try:
            signing_key = self._get_signing_key(token)
        except DecodeError as e:
            logger.warning("auth_failure", extra={"reason": "decode_error", "error": str(e)})
            raise _invalid_token("Invalid token format") from e

        try:
            payload = jwt.decode(
                token,
                signing_key,
                algorithms=PRIVY_ALGORITHMS,
                audience=self.app_id,
                issuer=PRIVY_ISSUER,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "aud", "sub"]},
            )
        except ExpiredSignatureError as e:
            logger.warning("auth_failure", extra={"reason": "expired_token"})
            raise _invalid_token("Token expired") from e
        except InvalidSignatureError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_signature"})
            raise _invalid_token("Invalid token signature") from e
        except InvalidIssuerError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_issuer"})
            raise _invalid_token("Invalid token issuer") from e
        except InvalidAudienceError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_audience"})
            raise _invalid_token("Invalid token audience") from e
        except DecodeError as e:
            logger.warning("auth_failure", extra={"reason": "decode_error", "error": str(e)})
            raise _invalid_token("Invalid token format") from e
        except InvalidTokenError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_token", "error": str(e)})
            raise _invalid_token("Invalid token") from e

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            logger.warning("auth_failure", extra={"reason": "missing_sub"})
            raise _invalid_token("Invalid token: missing sub")

        return subject

    def _client(self) -> httpx.Client:
        if self._http_client is None:
            self._http_client = httpx.Client(
                timeout=httpx.Timeout(PROFILE_TIMEOUT_SECONDS, connect=PROFILE_TIMEOUT_SECONDS)
            )
        return self._http_client

    def fetch_email(self, subject: str) -> str | None:
        response = self._client().get(
            f"{self.api_base_url}/api/v1/users/{subject}",
            auth=(self.app_id, self.app_secret),
            headers={"privy-app-id": self.app_id},
        )
        response.raise_for_status()
        return extract_email(response.json())

    def close(self) -> None:
        if self._owns_http_client and self._http_client is not None:
            self._http_client.close()
            self._http_client = None


def extract_email(user_payload: dict) -> str | None:
    """Return the first linked email address of a Privy user object."""
    for account in user_payload.get("linked_accounts") or []:
        if account.get("type") == "email" and account.get("address"):
            return account["address"]
    email = user_payload.get("email")
    if isinstance(email, dict):
        return email.get("address")
    return None


class DevIdentityProvider:
    """Local/test provider.

    Accepts only tokens of the form `dev.<subject>`; anything else is rejected,
    so a real identity token can never be silently treated as a subject.
    Emails are never known.
    """

    def verify(self, token: str) -> str:
        if not token or not token.startswith(DEV_TOKEN_PREFIX):
            logger.warning("auth_failure", extra={"reason": "not_a_dev_token"})
            raise _invalid_token("Invalid identity token")

        subject = token[len(DEV_TOKEN_PREFIX) :].strip()
        if not subject:
            raise _invalid_token("Invalid identity token")
        return subject

    def fetch_email(self, subject: str) -> str | None:
        return None

    def close(self) -> None:
        return None


def create_identity_provider(
    settings: Settings, http_client: httpx.Client | None = None
) -> IdentityProvider:
    """Select the identity provider from configuration."""
    if settings.privy_configured:
        logger.info("Identity bridge using Privy")
        return PrivyIdentityProvider(
            app_id=settings.privy_app_id,
            app_secret=settings.privy_app_secret,
            api_base_url=settings.privy_api_base_url,
            jwks_url=settings.effective_privy_jwks_url,
            verification_key=settings.privy_verification_key,
            http_client=http_client,
        )

    logger.warning("Identity bridge in dev mode: PRIVY_APP_ID/PRIVY_APP_SECRET not set")
    return DevIdentityProvider()
