"""Authentication and authorization.

This module provides:
- App session token issuing and validation
- Optional-auth middleware attaching the validated viewer to request state
- The comment authorization policy
"""

from spotcomments.auth.middleware import AuthMiddleware, Viewer, get_optional_viewer, get_viewer
from spotcomments.auth.session_token import SessionClaims, SessionTokenService

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "get_optional_viewer",
    "SessionClaims",
    "SessionTokenService",
]
