"""JWT identity provider."""

import jwt
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional

from core.settings import settings
from .base import AuthProvider


class JwtAuthProvider(AuthProvider):
    """Reads the caller from a JWT signed with JWT_SECRET_KEY."""

    def __init__(self, secret_key: Optional[str] = None, algorithm: Optional[str] = None):
        self.secret_key = secret_key or settings.JWT_SECRET_KEY
        self.algorithm = algorithm or settings.JWT_ALGORITHM

    def validate_token(self, token: str) -> Dict[str, Any]:
        """Validate JWT token.

        Args:
            token: JWT token string

        Returns:
            Dict containing token claims

        Raises:
            jwt.InvalidTokenError: If token is invalid or expired
        """
        return jwt.decode(
            token,
            self.secret_key,
            algorithms=[self.algorithm],
        )

    def create_access_token(self, username: str, expires_minutes: int = 60) -> str:
        """Create a JWT for a user, mainly for tooling and tests."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": username,
            "username": username,
            "exp": now + timedelta(minutes=expires_minutes),
            "iat": now,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
