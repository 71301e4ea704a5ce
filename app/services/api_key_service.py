"""
API Key Service

Studios on a tier with ``api_access`` can create one API key for
server-to-server calls. Keys look like ``lum_<48 hex chars>``; only their
sha256 hash is stored, so a key is shown once and rotating replaces it.

Requests authenticate with the ``X-API-Key`` header (see require_api_tenant).
A key stops working when the studio is no longer active or loses
``api_access``.
"""

import hashlib
import logging
import secrets

from fastapi import Depends, Header
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.domain.entities import TenantStatus
from app.exceptions import AuthenticationError, InvalidTokenError
from app.models.tenant import Tenant
from app.services.feature_service import FeatureResolver, get_feature_resolver, require_feature
from app.services.tenant_service import require_tenant

logger = logging.getLogger(__name__)

API_KEY_PREFIX = "lum_"


def hash_api_key(raw_key: str) -> str:
    return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()


def generate_api_key() -> tuple[str, str]:
    """Return ``(raw_key, key_hash)``."""
    raw_key = API_KEY_PREFIX + secrets.token_hex(24)
    return raw_key, hash_api_key(raw_key)


async def rotate_api_key(tenant_id: str, db: AsyncSession, resolver: FeatureResolver | None = None) -> str:
    """Create a new key, invalidating any previous one, and return it."""
    await require_feature(tenant_id, "api_access", db, resolver)
    tenant = await require_tenant(tenant_id, db)

    raw_key, key_hash = generate_api_key()
    replaced = tenant.api_key_hash is not None
    tenant.api_key_hash = key_hash
    await db.commit()
    logger.info("API key %s: tenant=%s", "rotated" if replaced else "created", tenant_id)
    return raw_key


async def revoke_api_key(tenant_id: str, db: AsyncSession) -> bool:
    """Drop the current key. True if there was one."""
    tenant = await require_tenant(tenant_id, db)
    if tenant.api_key_hash is None:
        return False
    tenant.api_key_hash = None
    await db.commit()
    logger.info("API key revoked: tenant=%s", tenant_id)
    return True


async def api_key_status(tenant_id: str, db: AsyncSession, resolver: FeatureResolver | None = None) -> dict:
    tenant = await require_tenant(tenant_id, db)
    resolver = resolver or FeatureResolver(db)
    return {
        "has_key": tenant.api_key_hash is not None,
        "has_access": await resolver.has_feature(tenant_id, "api_access"),
    }


async def authenticate_api_key(raw_key: str, db: AsyncSession) -> Tenant:
    """
    Return the active studio owning ``raw_key``.

    Raises:
        InvalidTokenError: malformed or unknown key, or inactive studio
    """
    if not raw_key.startswith(API_KEY_PREFIX):
        raise InvalidTokenError("Invalid API key")

    result = await db.execute(
        select(Tenant).where(Tenant.api_key_hash == hash_api_key(raw_key), Tenant.status == TenantStatus.active.value)
    )
    tenant = result.scalars().first()
    if tenant is None:
        logger.info("Rejected unknown API key")
        raise InvalidTokenError("Invalid API key")
    return tenant


async def require_api_tenant(
    x_api_key: str | None = Header(None, alias="X-API-Key"),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
) -> Tenant:
    """Dependency for API-key routes: 401 without a valid key, 403 without api_access."""
    if not x_api_key:
        raise AuthenticationError("API key required")
    tenant = await authenticate_api_key(x_api_key, db)
    await require_feature(tenant.id, "api_access", db, resolver)
    return tenant
