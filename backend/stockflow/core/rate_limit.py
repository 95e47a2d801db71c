"""Shared rate limiter instance for use across route files."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from stockflow.core.config import settings


def get_store_or_ip(request: Request) -> str:
    """Rate limit per register: X-Store-Id header when sent, else client IP."""
    store_id = request.headers.get("X-Store-Id", "").strip()
    if store_id.isdigit():
        return f"store:{store_id}"
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_store_or_ip,
    enabled=settings.rate_limit_enabled,
    default_limits=[f"{settings.rate_limit_requests}/{settings.rate_limit_window} seconds"],
)
