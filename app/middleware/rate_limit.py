"""
Global Rate Limiting

slowapi limiter applied to every route as a coarse abuse guard. Sensitive
endpoints (signup, login, password reset, orders) additionally use the
per-policy sliding windows in app.services.rate_limit_service.
"""

from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from app.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["300/minute"],
    storage_uri=settings.redis_url or "memory://",
    headers_enabled=False,
    swallow_errors=True,
)


def configure_rate_limiting(app, enabled: bool = True):
    """
    Attach the limiter to the FastAPI application.

    Args:
        app: FastAPI application instance
        enabled: False turns the global limit off (used by tests)
    """
    limiter.enabled = enabled
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
