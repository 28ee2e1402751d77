"""Test helpers for authentication and common test operations.

Provides:
- Session token minting (valid, expired, wrong secret)
- Header generation for test requests
- User and comment creation helpers
- ES256 Privy-style identity tokens
"""

import time
from uuid import UUID, uuid4

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec
from sqlalchemy.orm import Session

from spotcomments.auth.session_token import (
    SESSION_TOKEN_ALGORITHM,
    SESSION_TOKEN_AUDIENCE,
    SESSION_TOKEN_ISSUER,
)
from spotcomments.db.models import Comment, User

TEST_SIGNING_SECRET = "test-session-signing-secret-0123456789abcdef"
TEST_SESSION_TTL_SECONDS = 3600

VALID_TRACK_URI = "spotify:track:4uLU6hMCjMI75M1A2tKUQC"
OTHER_TRACK_URI = "spotify:track:7ouMYWpwJ422jRcDASZB7P"

PRIVY_TEST_APP_ID = "test-privy-app"
PRIVY_TEST_APP_SECRET = "test-privy-secret"
PRIVY_TEST_API_BASE = "https://privy.test"


def mint_session_token(
    user_id: UUID | str,
    subject: str = "did:privy:test-user",
    expires_in: int = TEST_SESSION_TTL_SECONDS,
    secret: str = TEST_SIGNING_SECRET,
    issuer: str = SESSION_TOKEN_ISSUER,
    audience: str = SESSION_TOKEN_AUDIENCE,
    **extra_claims,
) -> str:
    """Mint a session token the way the server does, with overridable claims."""
    now = int(time.time())
    payload = {
        "iss": issuer,
        "aud": audience,
        "sub": subject,
        "uid": str(user_id),
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, secret, algorithm=SESSION_TOKEN_ALGORITHM)


def mint_expired_session_token(user_id: UUID | str) -> str:
    """Mint a session token that expired 1 hour ago (beyond clock skew)."""
    return mint_session_token(user_id, expires_in=-3600)


def auth_headers(user_id: UUID | str, **kwargs) -> dict[str, str]:
    return {"Authorization": f"Bearer {mint_session_token(user_id, **kwargs)}"}


def create_test_user(db: Session, subject: str | None = None, email: str | None = None) -> User:
    user = User(privy_user_id=subject or f"did:privy:{uuid4().hex}", email=email)
    db.add(user)
    db.commit()
    return user


def create_test_comment(
    db: Session,
    playlist_id: str,
    text: str = "a comment",
    track_uri: str | None = None,
    user_id: UUID | None = None,
) -> Comment:
    comment = Comment(playlist_id=playlist_id, track_uri=track_uri, text=text, user_id=user_id)
    db.add(comment)
    db.commit()
    return comment


def generate_es256_keypair() -> tuple[ec.EllipticCurvePrivateKey, str]:
    """Return an EC P-256 private key and its public key as PEM."""
    private_key = ec.generate_private_key(ec.SECP256R1())
    public_pem = (
        private_key.public_key()
        .public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )
        .decode()
    )
    return private_key, public_pem


def mint_privy_token(
    private_key: ec.EllipticCurvePrivateKey,
    subject: str = "did:privy:abc123",
    app_id: str = PRIVY_TEST_APP_ID,
    issuer: str = "privy.io",
    expires_in: int = 3600,
    kid: str | None = None,
) -> str:
    now = int(time.time())
    payload = {
        "sid": "session-id",
        "sub": subject,
        "iss": issuer,
        "aud": app_id,
        "iat": now,
        "exp": now + expires_in,
    }
    headers = {"kid": kid} if kid else None
    return jwt.encode(payload, private_key, algorithm="ES256", headers=headers)
