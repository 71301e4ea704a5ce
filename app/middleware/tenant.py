"""
Tenant Resolution Middleware

Resolves the current studio from:
  1. X-Tenant-Slug request header  (API clients)
  2. Subdomain of the request host (browser clients, e.g. mystudio.localhost)
  3. A tenant's custom domain      (e.g. photos.mystudio.com)

Sets request.state.tenant_id and request.state.tenant_slug for downstream
handlers. Only active tenants are resolved.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.domain.entities import TenantStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from fastapi import Request
    from starlette.responses import Response

logger = logging.getLogger(__name__)


def _extract_slug_from_host(host: str, app_domain: str) -> str | None:
    """
    Extract the tenant slug from a subdomain.

    Examples:
        host="mystudio.localhost", app_domain="localhost" → "mystudio"
        host="localhost",          app_domain="localhost" → None
        host="a.b.localhost",      app_domain="localhost" → None
    """
    host = host.split(":")[0].lower()
    if host != app_domain and host.endswith("." + app_domain):
        slug = host[: -(len(app_domain) + 1)]
        if "." not in slug:
            return slug
    return None


class TenantMiddleware(BaseHTTPMiddleware):
    """
    Resolve the current tenant and attach it to request.state.

    Attributes set on request.state:
        tenant_id   (str | None)  primary key of the resolved tenant
        tenant_slug (str | None)  slug of the resolved tenant
    """

    def __init__(self, app, session_factory=None):
        super().__init__(app)
        self.session_factory = session_factory

    def _get_session_factory(self):
        if self.session_factory is None:
            # Deferred import avoids circular dependency at module load time
            from app.database import AsyncSessionLocal

            self.session_factory = AsyncSessionLocal
        return self.session_factory

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # Always initialise state so downstream code can safely read without AttributeError
        request.state.tenant_id = None
        request.state.tenant_slug = None

        slug: str | None = request.headers.get("X-Tenant-Slug")
        host = request.headers.get("host", "").split(":")[0].lower()
        if not slug:
            slug = _extract_slug_from_host(host, settings.app_domain)

        lookup_domain = None if slug or "." not in host or host.endswith(settings.app_domain) else host
        if slug or lookup_domain:
            from app.services.tenant_service import get_tenant_by_domain, get_tenant_by_slug

            async with self._get_session_factory()() as db:
                if slug:
                    tenant = await get_tenant_by_slug(slug.lower(), db)
                else:
                    tenant = await get_tenant_by_domain(lookup_domain, db)

            if tenant and tenant.status == TenantStatus.active.value:
                request.state.tenant_id = tenant.id
                request.state.tenant_slug = tenant.slug
                logger.debug("TenantMiddleware: resolved tenant_id=%s slug=%s", tenant.id, tenant.slug)

        return await call_next(request)
