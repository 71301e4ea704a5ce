"""
Security Headers Middleware

Adds browser hardening headers to every response. Gallery pages load
images from object storage, so its public origin is allowed in img-src.
"""

from typing import Callable
from urllib.parse import urlsplit

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from app.config import settings


def storage_origin(public_url: str) -> str:
    """``https://cdn.example.com/galleries`` -> ``https://cdn.example.com``"""
    parts = urlsplit(public_url)
    if not parts.scheme or not parts.netloc:
        return ""
    return f"{parts.scheme}://{parts.netloc}"


def build_csp(image_origin: str = "") -> str:
    img_sources = " ".join(filter(None, ["'self'", "data:", image_origin]))
    return (
        "default-src 'self'; "
        f"img-src {img_sources}; "
        "connect-src 'self'; "
        "frame-ancestors 'none'; "
        "base-uri 'self'; "
        "form-action 'self' https://checkout.stripe.com"
    )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Headers added: X-Content-Type-Options, X-Frame-Options, Referrer-Policy,
    Content-Security-Policy, Permissions-Policy and, outside debug mode,
    Strict-Transport-Security.
    """

    def __init__(self, app, enable_hsts: bool | None = None, hsts_max_age: int = 31536000, csp_policy: str | None = None):
        super().__init__(app)
        self.enable_hsts = enable_hsts if enable_hsts is not None else not settings.debug
        self.hsts_max_age = hsts_max_age
        self.csp_policy = csp_policy or build_csp(storage_origin(settings.storage_public_url))

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = self.csp_policy
        response.headers["Permissions-Policy"] = "geolocation=(), microphone=(), camera=()"

        if self.enable_hsts:
            response.headers["Strict-Transport-Security"] = f"max-age={self.hsts_max_age}; includeSubDomains"

        if "Server" in response.headers:
            del response.headers["Server"]
        return response
