"""
Tests for studio API keys
"""

import pytest

from app.constants.tiers import TenantTier
from app.domain.entities import TenantStatus
from app.exceptions import FeatureNotAvailableError, InvalidTokenError
from app.services import api_key_service
from app.services.api_key_service import API_KEY_PREFIX, generate_api_key, hash_api_key
from conftest import make_tenant


class TestGenerateApiKey:
    def test_format_and_hash(self):
        raw_key, key_hash = generate_api_key()
        assert raw_key.startswith(API_KEY_PREFIX)
        assert len(raw_key) == len(API_KEY_PREFIX) + 48
        assert key_hash == hash_api_key(raw_key)
        assert raw_key not in key_hash

    def test_keys_are_unique(self):
        assert generate_api_key()[0] != generate_api_key()[0]


class TestRotateApiKey:
    @pytest.mark.asyncio
    async def test_requires_api_access(self, db):
        tenant = await make_tenant(db, tier=TenantTier.PRO)
        with pytest.raises(FeatureNotAvailableError):
            await api_key_service.rotate_api_key(tenant.id, db)

    @pytest.mark.asyncio
    async def test_rotation_invalidates_previous_key(self, db):
        tenant = await make_tenant(db, tier=TenantTier.STUDIO)
        first = await api_key_service.rotate_api_key(tenant.id, db)
        second = await api_key_service.rotate_api_key(tenant.id, db)

        assert (await api_key_service.authenticate_api_key(second, db)).id == tenant.id
        with pytest.raises(InvalidTokenError):
            await api_key_service.authenticate_api_key(first, db)

    @pytest.mark.asyncio
    async def test_status_and_revoke(self, db):
        tenant = await make_tenant(db, tier=TenantTier.STUDIO)
        assert await api_key_service.api_key_status(tenant.id, db) == {"has_key": False, "has_access": True}

        raw_key = await api_key_service.rotate_api_key(tenant.id, db)
        assert (await api_key_service.api_key_status(tenant.id, db))["has_key"] is True

        assert await api_key_service.revoke_api_key(tenant.id, db) is True
        assert await api_key_service.revoke_api_key(tenant.id, db) is False
        with pytest.raises(InvalidTokenError):
            await api_key_service.authenticate_api_key(raw_key, db)


class TestAuthenticateApiKey:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw_key", ["", "sk_live_abc", API_KEY_PREFIX + "0" * 48])
    async def test_rejects_malformed_and_unknown_keys(self, db, raw_key):
        with pytest.raises(InvalidTokenError) as exc_info:
            await api_key_service.authenticate_api_key(raw_key, db)
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_suspended_studio_key_stops_working(self, db):
        tenant = await make_tenant(db, tier=TenantTier.STUDIO)
        raw_key = await api_key_service.rotate_api_key(tenant.id, db)
        tenant.status = TenantStatus.suspended.value
        await db.commit()

        with pytest.raises(InvalidTokenError):
            await api_key_service.authenticate_api_key(raw_key, db)
