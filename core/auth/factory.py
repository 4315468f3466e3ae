"""Factory for the identity provider."""

from core.settings import settings
from .base import AuthProvider, AnonymousAuthProvider
from .jwt_provider import JwtAuthProvider


_provider_instance: AuthProvider | None = None


def get_auth_provider() -> AuthProvider:
    """Get the configured identity provider.

    - JWT_SECRET_KEY set: JwtAuthProvider
    - otherwise: AnonymousAuthProvider (no caller is ever identified)

    Returns:
        AuthProvider instance
    """
    global _provider_instance

    if _provider_instance is None:
        if settings.JWT_SECRET_KEY:
            _provider_instance = JwtAuthProvider()
        else:
            _provider_instance = AnonymousAuthProvider()

    return _provider_instance


def reset_auth_provider():
    """Reset the provider instance (useful for testing)."""
    global _provider_instance
    _provider_instance = None
