"""Abstract base class for identity providers."""

from abc import ABC, abstractmethod
from typing import Optional, Dict, Any

import jwt


class AuthProvider(ABC):
    """Abstract base class for identity providers.

    The section API does not enforce access. The identity of the caller is
    only used to keep per-user responses apart in the cache.
    """

    @abstractmethod
    def validate_token(self, token: str) -> Dict[str, Any]:
        """Validate a token and return its claims.

        Args:
            token: Token string from the ``token`` or ``Authorization`` header

        Returns:
            Dict containing token claims

        Raises:
            jwt.InvalidTokenError: If the token is invalid or expired
        """
        pass

    def get_current_user(self, token: Optional[str]) -> Optional[str]:
        """Username for a token, or None when there is no valid token."""
        if not token:
            return None
        try:
            claims = self.validate_token(token)
        except jwt.InvalidTokenError:
            return None
        user = claims.get("username") or claims.get("sub")
        return str(user) if user is not None else None


class AnonymousAuthProvider(AuthProvider):
    """Used when no signing key is configured; every caller is anonymous."""

    def validate_token(self, token: str) -> Dict[str, Any]:
        raise jwt.InvalidTokenError("No identity provider configured")
