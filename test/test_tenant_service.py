"""
Tests for studio sign-up, login and tenant administration
"""

from unittest.mock import MagicMock

import pytest
from sqlalchemy import func, select

from app.auth import verify_password
from app.constants.roles import RoleName
from app.constants.tiers import TenantTier
from app.domain.entities import TenantStatus
from app.exceptions import InvalidCredentialsError, InvalidStatusTransitionError, ValidationError
from app.models.tenant import Tenant
from app.services import tenant_service
from app.services.feature_service import has_feature
from conftest import TEST_PASSWORD, make_tenant, make_user


class TestSignup:
    @pytest.mark.asyncio
    async def test_creates_starter_tenant_and_owner(self, db):
        notifier = MagicMock()
        result = await tenant_service.signup(
            "Mia", "Mia@Example.com", "s3cret-pass", "Mystic Light Photography", db, notifier
        )

        assert result.created
        assert result.tenant.slug == "mystic-light-photography"
        assert result.tenant.tier == TenantTier.STARTER.value
        assert result.user.role == RoleName.OWNER.value
        assert result.user.email == "mia@example.com"
        assert verify_password("s3cret-pass", result.user.hashed_password)
        assert result.event.slug == result.tenant.slug
        assert notifier.notify.call_args.args == ("send_welcome_email",)

    @pytest.mark.asyncio
    async def test_existing_email_creates_nothing(self, db):
        tenant = await make_tenant(db)
        await make_user(db, tenant, email="mia@example.com")
        notifier = MagicMock()

        result = await tenant_service.signup("Mia", "MIA@example.com", "s3cret-pass", "Another", db, notifier)

        assert not result.created
        assert (await db.execute(select(func.count(Tenant.id)))).scalar() == 1
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_existing_email_still_hashes_the_password(self, db, monkeypatch):
        tenant = await make_tenant(db)
        await make_user(db, tenant, email="mia@example.com")
        hasher = MagicMock(return_value="hashed")
        monkeypatch.setattr(tenant_service, "hash_password", hasher)

        result = await tenant_service.signup("Mia", "mia@example.com", "s3cret-pass", "Another", db)

        assert not result.created
        hasher.assert_called_once_with("s3cret-pass")

    @pytest.mark.asyncio
    async def test_slug_collision_gets_suffix(self, db):
        await make_tenant(db, slug="mystic-light")
        result = await tenant_service.signup("Mia", "new@example.com", "s3cret-pass", "Mystic Light", db)
        assert result.tenant.slug.startswith("mystic-light-")
        assert result.tenant.slug != "mystic-light"

    @pytest.mark.asyncio
    async def test_invalid_email(self, db):
        with pytest.raises(ValidationError):
            await tenant_service.signup("Mia", "not-an-email", "s3cret-pass", "Studio", db)


class TestAuthenticate:
    @pytest.mark.asyncio
    async def test_valid_credentials(self, db):
        tenant = await make_tenant(db)
        user = await make_user(db, tenant)
        found = await tenant_service.authenticate_user(" Owner@MysticLight.com ", TEST_PASSWORD, db)
        assert found.id == user.id

    @pytest.mark.asyncio
    async def test_wrong_password(self, db):
        tenant = await make_tenant(db)
        await make_user(db, tenant)
        with pytest.raises(InvalidCredentialsError):
            await tenant_service.authenticate_user("owner@mysticlight.com", "wrong", db)

    @pytest.mark.asyncio
    async def test_unknown_email_runs_a_dummy_check(self, db, monkeypatch):
        checker = MagicMock()
        monkeypatch.setattr(tenant_service, "dummy_verify", checker)
        with pytest.raises(InvalidCredentialsError):
            await tenant_service.authenticate_user("nobody@example.com", TEST_PASSWORD, db)
        checker.assert_called_once_with()

    @pytest.mark.asyncio
    async def test_scoped_to_tenant(self, db):
        tenant = await make_tenant(db)
        other = await make_tenant(db, slug="other-studio")
        await make_user(db, tenant)
        with pytest.raises(InvalidCredentialsError):
            await tenant_service.authenticate_user("owner@mysticlight.com", TEST_PASSWORD, db, tenant_id=other.id)

    @pytest.mark.asyncio
    async def test_suspended_tenant_cannot_log_in(self, db):
        tenant = await make_tenant(db, status=TenantStatus.suspended.value)
        await make_user(db, tenant)
        with pytest.raises(InvalidCredentialsError):
            await tenant_service.authenticate_user("owner@mysticlight.com", TEST_PASSWORD, db)


class TestTenantAdministration:
    @pytest.mark.asyncio
    async def test_change_tier_unlocks_features(self, db):
        tenant = await make_tenant(db)
        assert not await has_feature(tenant.id, "payments", db)

        await tenant_service.change_tier(tenant.id, "pro", db)
        assert await has_feature(tenant.id, "payments", db)

    @pytest.mark.asyncio
    async def test_cancelled_tenant_stays_cancelled(self, db):
        tenant = await make_tenant(db)
        await tenant_service.set_status(tenant.id, "cancelled", db)
        with pytest.raises(InvalidStatusTransitionError):
            await tenant_service.set_status(tenant.id, "active", db)

    @pytest.mark.asyncio
    async def test_feature_override_round_trip(self, db):
        tenant = await make_tenant(db)
        await tenant_service.set_feature_override(tenant.id, "api_access", True, db)
        assert await has_feature(tenant.id, "api_access", db)

        await tenant_service.set_feature_override(tenant.id, "api_access", False, db)
        assert not await has_feature(tenant.id, "api_access", db)

        assert await tenant_service.clear_feature_override(tenant.id, "api_access", db)
        assert not await tenant_service.clear_feature_override(tenant.id, "api_access", db)

    @pytest.mark.asyncio
    async def test_unknown_feature_override(self, db):
        tenant = await make_tenant(db)
        with pytest.raises(ValidationError):
            await tenant_service.set_feature_override(tenant.id, "teleportation", True, db)
