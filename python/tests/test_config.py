"""Tests for application configuration."""

import pytest
from pydantic import ValidationError

from spotcomments.config import DEV_SESSION_SIGNING_SECRET, Settings

STRONG_SECRET = "s" * 48


def _make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides."""
    defaults = {
        "DATABASE_URL": "postgresql+psycopg://localhost/test",
        "SPOTCOMMENTS_ENV": "test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestSettingsDefaults:
    def test_defaults(self):
        s = _make_settings(SESSION_SIGNING_SECRET=DEV_SESSION_SIGNING_SECRET)
        assert s.session_ttl_seconds == 7 * 24 * 3600
        assert s.app_version == "1.0.0"
        assert s.privy_api_base_url == "https://auth.privy.io"
        assert s.privy_configured is False

    def test_cors_origin_list_parses_and_strips(self):
        s = _make_settings(CORS_ORIGINS=" https://a.example , ,https://b.example")
        assert s.cors_origin_list == ["https://a.example", "https://b.example"]

    def test_default_cors_origins_include_spotify(self):
        s = _make_settings()
        assert "https://open.spotify.com" in s.cors_origin_list

    def test_zero_ttl_rejected(self):
        with pytest.raises(ValidationError, match="SESSION_TTL_SECONDS"):
            _make_settings(SESSION_TTL_SECONDS=0)


class TestPrivyConfiguration:
    def test_privy_requires_both_id_and_secret(self):
        assert _make_settings(PRIVY_APP_ID="app").privy_configured is False
        assert _make_settings(PRIVY_APP_SECRET="secret").privy_configured is False
        assert _make_settings(PRIVY_APP_ID="app", PRIVY_APP_SECRET="secret").privy_configured

    def test_jwks_url_derived_from_app_id(self):
        s = _make_settings(PRIVY_APP_ID="app123", PRIVY_APP_SECRET="secret")
        assert s.effective_privy_jwks_url == "https://auth.privy.io/api/v1/apps/app123/jwks.json"

    def test_jwks_url_override_wins(self):
        s = _make_settings(
            PRIVY_APP_ID="app123",
            PRIVY_APP_SECRET="secret",
            PRIVY_JWKS_URL="https://keys.example/jwks.json",
        )
        assert s.effective_privy_jwks_url == "https://keys.example/jwks.json"

    def test_no_jwks_url_without_app_id(self):
        assert _make_settings().effective_privy_jwks_url is None


class TestDeployedEnvironments:
    """staging/prod refuse to start with dev credentials."""

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_dev_secret_rejected(self, env):
        with pytest.raises(ValidationError, match="SESSION_SIGNING_SECRET"):
            _make_settings(
                SPOTCOMMENTS_ENV=env,
                SESSION_SIGNING_SECRET=DEV_SESSION_SIGNING_SECRET,
                PRIVY_APP_ID="app",
                PRIVY_APP_SECRET="secret",
            )

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_short_secret_rejected(self, env):
        with pytest.raises(ValidationError, match="SESSION_SIGNING_SECRET"):
            _make_settings(
                SPOTCOMMENTS_ENV=env,
                SESSION_SIGNING_SECRET="short",
                PRIVY_APP_ID="app",
                PRIVY_APP_SECRET="secret",
            )

    @pytest.mark.parametrize("env", ["staging", "prod"])
    def test_missing_privy_rejected(self, env):
        with pytest.raises(ValidationError, match="PRIVY_APP_ID"):
            _make_settings(SPOTCOMMENTS_ENV=env, SESSION_SIGNING_SECRET=STRONG_SECRET)

    def test_prod_with_real_credentials_accepted(self):
        s = _make_settings(
            SPOTCOMMENTS_ENV="prod",
            SESSION_SIGNING_SECRET=STRONG_SECRET,
            PRIVY_APP_ID="app",
            PRIVY_APP_SECRET="secret",
        )
        assert s.privy_configured

    def test_local_allows_dev_defaults(self):
        s = _make_settings(SPOTCOMMENTS_ENV="local")
        assert s.privy_configured is False
