"""Application settings loaded from environment variables.

Environment Configuration:
    SPOTCOMMENTS_ENV: Deployment environment (local | test | staging | prod)
    DATABASE_URL: SQLAlchemy connection string (required)
    APP_VERSION: Version reported by GET /health

Session Configuration:
    SESSION_SIGNING_SECRET: HMAC secret for app session tokens
        (dev default allowed in local/test only)
    SESSION_TTL_SECONDS: Session lifetime (default 7 days)

Identity Provider Configuration (Privy):
    PRIVY_APP_ID: Privy application id (also the expected token audience)
    PRIVY_APP_SECRET: Privy application secret (REST API basic auth)
    PRIVY_VERIFICATION_KEY: Optional PEM verification key (skips JWKS fetch)
    PRIVY_JWKS_URL: Optional JWKS URL override
    PRIVY_API_BASE_URL: Privy REST API base URL

When PRIVY_APP_ID/PRIVY_APP_SECRET are not both set, the identity bridge runs
in dev mode and accepts `dev.<subject>` tokens. Staging/prod refuse to start
in that state.

CORS:
    CORS_ORIGINS: Comma-separated list of allowed web origins.
        chrome-extension:// origins are always allowed.
"""

from enum import Enum
from functools import lru_cache
from typing import Annotated

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

DEV_SESSION_SIGNING_SECRET = "dev_insecure_secret_change_me"
DEFAULT_CORS_ORIGINS = "https://open.spotify.com,https://localhost:8443,http://localhost:5050"
MIN_SIGNING_SECRET_LENGTH = 32


class Environment(str, Enum):
    """Valid deployment environments."""

    LOCAL = "local"
    TEST = "test"
    STAGING = "staging"
    PROD = "prod"


class Settings(BaseSettings):
    """Application configuration.

    Settings are loaded from environment variables.
    Validation rules:
    - DATABASE_URL is always required
    - SESSION_SIGNING_SECRET must be a real secret (>= 32 chars) in staging and prod
    - PRIVY_APP_ID and PRIVY_APP_SECRET are required in staging and prod
    """

    spotcomments_env: Environment = Field(default=Environment.LOCAL, alias="SPOTCOMMENTS_ENV")
    database_url: Annotated[str, Field(alias="DATABASE_URL")]
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")

    # Session token settings
    session_signing_secret: str = Field(
        default=DEV_SESSION_SIGNING_SECRET, alias="SESSION_SIGNING_SECRET"
    )
    session_ttl_seconds: int = Field(default=7 * 24 * 3600, alias="SESSION_TTL_SECONDS")

    # Privy identity provider settings
    privy_app_id: str | None = Field(default=None, alias="PRIVY_APP_ID")
    privy_app_secret: str | None = Field(default=None, alias="PRIVY_APP_SECRET")
    privy_verification_key: str | None = Field(default=None, alias="PRIVY_VERIFICATION_KEY")
    privy_jwks_url: str | None = Field(default=None, alias="PRIVY_JWKS_URL")
    privy_api_base_url: str = Field(default="https://auth.privy.io", alias="PRIVY_API_BASE_URL")

    cors_origins: str = Field(default=DEFAULT_CORS_ORIGINS, alias="CORS_ORIGINS")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @model_validator(mode="after")
    def validate_required_settings(self) -> "Settings":
        """Ensure deployed environments carry real credentials."""
        if self.session_ttl_seconds < 1:
            raise ValueError("SESSION_TTL_SECONDS must be >= 1")

        if self.spotcomments_env in (Environment.STAGING, Environment.PROD):
            if (
                self.session_signing_secret == DEV_SESSION_SIGNING_SECRET
                or len(self.session_signing_secret) < MIN_SIGNING_SECRET_LENGTH
            ):
                raise ValueError(
                    "SESSION_SIGNING_SECRET must be set to a secret of at least "
                    f"{MIN_SIGNING_SECRET_LENGTH} characters for "
                    f"SPOTCOMMENTS_ENV={self.spotcomments_env.value}"
                )
            if not self.privy_configured:
                raise ValueError(
                    "PRIVY_APP_ID and PRIVY_APP_SECRET are required for "
                    f"SPOTCOMMENTS_ENV={self.spotcomments_env.value}"
                )

        return self

    @property
    def privy_configured(self) -> bool:
        """Whether real identity-provider credentials are present."""
        return bool(self.privy_app_id and self.privy_app_secret)

    @property
    def effective_privy_jwks_url(self) -> str | None:
        """Return the JWKS URL, derived from the app id when not overridden."""
        if self.privy_jwks_url:
            return self.privy_jwks_url
        if self.privy_app_id:
            base = self.privy_api_base_url.rstrip("/")
            return f"{base}/api/v1/apps/{self.privy_app_id}/jwks.json"
        return None

    @property
    def cors_origin_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings.

    Returns:
        Settings instance loaded from environment.

    Raises:
        ValidationError: If required settings are missing or invalid.
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache. Useful for testing."""
    get_settings.cache_clear()
