from typing import Optional

from core.settings import settings


def allowed_origin(origin: Optional[str], allowed: Optional[list[str]] = None) -> str:
    """Value for Access-Control-Allow-Origin: the request origin when allowed, else "null"."""
    allowed = settings.allowed_origins if allowed is None else allowed
    if origin and origin in allowed:
        return origin
    return "null"
