"""
Feature Service

Resolves whether a tenant may use a feature:

  1. an explicit TenantFeatureFlag row for (tenant, feature) wins, in either direction
  2. otherwise the tenant's tier must rank at or above the feature's minimum tier

Unknown tenants and unknown feature names resolve to False.

A FeatureResolver is created per request (see get_feature_resolver) and
memoises each tenant's tier and overrides, so repeated checks in one
request cost one pair of queries.
"""

import logging

from fastapi import Depends, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.constants.tiers import FEATURES, TenantTier, tier_includes
from app.database import get_db
from app.exceptions import FeatureNotAvailableError
from app.models.tenant import Tenant, TenantFeatureFlag

logger = logging.getLogger(__name__)


def resolve_feature(tier: str | None, feature: str, overrides: dict[str, bool] | None = None) -> bool:
    """Pure resolution rule shared by the resolver and the tests."""
    if feature not in FEATURES:
        logger.warning("Unknown feature requested: %s", feature)
        return False
    if overrides and feature in overrides:
        return overrides[feature]
    if tier is None:
        return False
    minimum_tier, _ = FEATURES[feature]
    return tier_includes(tier, minimum_tier)


class FeatureResolver:
    """Request-scoped cache of tenant tiers and feature overrides."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self._tiers: dict[str, str | None] = {}
        self._overrides: dict[str, dict[str, bool]] = {}

    async def _load(self, tenant_id: str) -> tuple[str | None, dict[str, bool]]:
        if tenant_id not in self._tiers:
            result = await self.db.execute(select(Tenant).where(Tenant.id == tenant_id))
            tenant = result.scalars().first()
            if tenant is None:
                self._tiers[tenant_id] = None
                self._overrides[tenant_id] = {}
            else:
                flags = await self.db.execute(
                    select(TenantFeatureFlag).where(TenantFeatureFlag.tenant_id == tenant_id)
                )
                self._tiers[tenant_id] = tenant.tier
                self._overrides[tenant_id] = {flag.feature: flag.enabled for flag in flags.scalars().all()}
        return self._tiers[tenant_id], self._overrides[tenant_id]

    async def has_feature(self, tenant_id: str | None, feature: str) -> bool:
        if not tenant_id:
            return False
        tier, overrides = await self._load(tenant_id)
        return resolve_feature(tier, feature, overrides)

    async def get_tenant_features(self, tenant_id: str) -> dict[str, bool]:
        tier, overrides = await self._load(tenant_id)
        return {name: resolve_feature(tier, name, overrides) for name in FEATURES}

    async def get_tier(self, tenant_id: str) -> TenantTier | None:
        tier, _ = await self._load(tenant_id)
        return TenantTier(tier) if tier else None

    def invalidate(self, tenant_id: str | None = None) -> None:
        """Drop cached state after a tier or override change."""
        if tenant_id is None:
            self._tiers.clear()
            self._overrides.clear()
        else:
            self._tiers.pop(tenant_id, None)
            self._overrides.pop(tenant_id, None)


async def has_feature(tenant_id: str, feature: str, db: AsyncSession, resolver: FeatureResolver | None = None) -> bool:
    resolver = resolver or FeatureResolver(db)
    return await resolver.has_feature(tenant_id, feature)


async def get_tenant_features(
    tenant_id: str, db: AsyncSession, resolver: FeatureResolver | None = None
) -> dict[str, bool]:
    resolver = resolver or FeatureResolver(db)
    return await resolver.get_tenant_features(tenant_id)


async def require_feature(
    tenant_id: str, feature: str, db: AsyncSession, resolver: FeatureResolver | None = None
) -> None:
    """Raise FeatureNotAvailableError unless the tenant has ``feature``."""
    if not await has_feature(tenant_id, feature, db, resolver):
        logger.info("Feature denied: tenant=%s feature=%s", tenant_id, feature)
        raise FeatureNotAvailableError(feature)


def get_feature_resolver(request: Request, db: AsyncSession = Depends(get_db)) -> FeatureResolver:
    """FastAPI dependency returning the resolver bound to this request."""
    resolver = getattr(request.state, "feature_resolver", None)
    if resolver is None:
        resolver = FeatureResolver(db)
        request.state.feature_resolver = resolver
    return resolver
