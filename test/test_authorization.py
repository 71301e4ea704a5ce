"""
Tests for role checks and feature resolution
"""

import pytest

from app.auth import Session
from app.constants.roles import RoleName, role_rank
from app.constants.tiers import FEATURES, TenantTier
from app.exceptions import AuthenticationError, AuthorizationError, FeatureNotAvailableError, TenantMissingError
from app.services.authorization_service import (
    Authorized,
    DenialReason,
    Denied,
    authorize,
    can_admin,
    can_edit,
    can_view,
    has_role,
    raise_for_denial,
)
from app.services.feature_service import FeatureResolver, require_feature, resolve_feature
from conftest import make_tenant

ROLES = [RoleName.VIEWER, RoleName.EDITOR, RoleName.ADMIN, RoleName.OWNER]


class TestRoles:
    def test_unknown_roles_rank_zero(self):
        assert role_rank(None) == 0
        assert role_rank("superuser") == 0

    @pytest.mark.parametrize("actor", ROLES)
    @pytest.mark.parametrize("required", ROLES)
    def test_higher_role_never_loses_access(self, actor, required):
        if has_role(actor, required):
            for higher in ROLES[ROLES.index(actor):]:
                assert has_role(higher, required)

    def test_shortcuts(self):
        assert can_view(RoleName.VIEWER) and not can_edit(RoleName.VIEWER)
        assert can_edit(RoleName.EDITOR) and not can_admin(RoleName.EDITOR)
        assert can_admin(RoleName.OWNER)
        assert not can_view(None)


class TestAuthorize:
    def test_no_session(self):
        assert authorize(None) == Denied(DenialReason.UNAUTHENTICATED)

    def test_session_without_tenant(self):
        result = authorize(Session(user_id="u1", tenant_id=None, role="owner"))
        assert result.reason == DenialReason.TENANT_MISSING

    def test_insufficient_role(self):
        result = authorize(Session(user_id="u1", tenant_id="t1", role="viewer"), RoleName.EDITOR)
        assert result.reason == DenialReason.FORBIDDEN
        assert result.required_role == "editor"

    def test_allowed(self):
        session = Session(user_id="u1", tenant_id="t1", role="admin")
        assert authorize(session, RoleName.EDITOR) == Authorized(session)

    @pytest.mark.parametrize(
        "reason,exc,status_code",
        [
            (DenialReason.UNAUTHENTICATED, AuthenticationError, 401),
            (DenialReason.TENANT_MISSING, TenantMissingError, 412),
            (DenialReason.FORBIDDEN, AuthorizationError, 403),
        ],
    )
    def test_denials_map_to_distinct_errors(self, reason, exc, status_code):
        with pytest.raises(exc) as exc_info:
            raise_for_denial(Denied(reason, required_role="editor"))
        assert exc_info.value.status_code == status_code


class TestResolveFeature:
    def test_studio_has_api_access(self):
        assert resolve_feature(TenantTier.STUDIO.value, "api_access")

    def test_starter_lacks_api_access(self):
        assert not resolve_feature(TenantTier.STARTER.value, "api_access")

    def test_tier_ordering_is_monotone(self):
        for feature in FEATURES:
            if resolve_feature("starter", feature):
                assert resolve_feature("pro", feature)
            if resolve_feature("pro", feature):
                assert resolve_feature("studio", feature)

    def test_override_wins_both_ways(self):
        assert resolve_feature("starter", "api_access", {"api_access": True})
        assert not resolve_feature("studio", "galleries", {"galleries": False})

    def test_unknown_feature_is_false(self):
        assert not resolve_feature("studio", "teleportation", {"teleportation": True})

    def test_unknown_tenant_is_false(self):
        assert not resolve_feature(None, "galleries")


class TestFeatureResolver:
    @pytest.mark.asyncio
    async def test_resolves_from_database(self, db):
        from app.models.tenant import TenantFeatureFlag

        tenant = await make_tenant(db, tier=TenantTier.PRO)
        db.add(TenantFeatureFlag(tenant_id=tenant.id, feature="payments", enabled=False))
        await db.commit()

        resolver = FeatureResolver(db)
        assert await resolver.has_feature(tenant.id, "print_orders")
        assert not await resolver.has_feature(tenant.id, "payments")
        assert not await resolver.has_feature(tenant.id, "analytics")
        assert await resolver.get_tier(tenant.id) == TenantTier.PRO

        features = await resolver.get_tenant_features(tenant.id)
        assert set(features) == set(FEATURES)

    @pytest.mark.asyncio
    async def test_unknown_tenant(self, db):
        resolver = FeatureResolver(db)
        assert not await resolver.has_feature("missing", "galleries")
        assert not await resolver.has_feature(None, "galleries")

    @pytest.mark.asyncio
    async def test_require_feature_raises(self, db):
        tenant = await make_tenant(db)
        with pytest.raises(FeatureNotAvailableError) as exc_info:
            await require_feature(tenant.id, "payments", db)
        assert exc_info.value.details == {"feature": "payments"}
