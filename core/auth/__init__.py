"""Identity providers for the section API."""

from .base import AuthProvider
from .factory import get_auth_provider

__all__ = ["AuthProvider", "get_auth_provider"]
