"""External identity providers for the identity bridge."""

from spotcomments.identity.providers import (
    DevIdentityProvider,
    IdentityProvider,
    PrivyIdentityProvider,
    create_identity_provider,
)

__all__ = [
    "DevIdentityProvider",
    "IdentityProvider",
    "PrivyIdentityProvider",
    "create_identity_provider",
]
