"""
Tenant Service

Studio sign-up, login and tenant administration (tier, status, feature
overrides). All functions accept an injected AsyncSession.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import dummy_verify, hash_password, verify_password
from app.config import settings
from app.constants.roles import RoleName
from app.constants.tiers import FEATURES, TenantTier
from app.domain import transitions
from app.domain.entities import TenantStatus
from app.domain.events import TenantCreated
from app.domain.result import DomainError, as_dict, unwrap
from app.domain.value_objects import SLUG_MAX_LENGTH, Email, TenantSlug, slugify_studio_name
from app.exceptions import (
    InvalidCredentialsError,
    InvalidStatusTransitionError,
    TenantNotFoundError,
    ValidationError,
)
from app.models.tenant import Tenant, TenantFeatureFlag
from app.models.user import User
from app.services.email_service import Notifier
from app.utils.slugify import to_base36

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SignupResult:
    """``created`` is False when the email was already registered."""

    created: bool
    tenant: Tenant | None = None
    user: User | None = None
    event: TenantCreated | None = None


def _validation_error(error: DomainError) -> ValidationError:
    return ValidationError(error.message, field=error.field, details=as_dict(error))


async def get_tenant_by_id(tenant_id: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by primary key, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    return result.scalars().first()


async def get_tenant_by_slug(slug: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by slug, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.slug == slug))
    return result.scalars().first()


async def get_tenant_by_domain(domain: str, db: AsyncSession) -> Tenant | None:
    """Return a Tenant by custom domain, or None if not found."""
    result = await db.execute(select(Tenant).where(Tenant.custom_domain == domain))
    return result.scalars().first()


async def _available_slug(candidate: str, db: AsyncSession) -> str:
    slug = unwrap(TenantSlug.create(candidate), _validation_error).value
    if await get_tenant_by_slug(slug, db) is None:
        return slug
    suffix = to_base36(int(datetime.now(timezone.utc).timestamp() * 1000))
    return f"{slug[: SLUG_MAX_LENGTH - len(suffix) - 1].rstrip('-')}-{suffix}"


async def signup(
    name: str,
    email: str,
    password: str,
    studio_name: str,
    db: AsyncSession,
    notifier: Notifier | None = None,
) -> SignupResult:
    """
    Create a studio (starter tier) and its owner account in one transaction.

    An email that already belongs to any account creates nothing and yields
    ``created=False``; the route answers both cases identically.
    """
    normalized_email = unwrap(Email.create(email), _validation_error).value

    existing = await db.execute(select(User).where(User.email == normalized_email))
    if existing.scalars().first() is not None:
        # same bcrypt cost as a real signup
        hash_password(password)
        logger.info("Signup for already registered email; nothing created")
        return SignupResult(created=False)

    slug = await _available_slug(slugify_studio_name(studio_name), db)

    tenant = Tenant(
        name=studio_name.strip(),
        slug=slug,
        tier=TenantTier.STARTER.value,
        status=TenantStatus.active.value,
    )
    db.add(tenant)
    await db.flush()

    user = User(
        tenant_id=tenant.id,
        email=normalized_email,
        name=name.strip(),
        hashed_password=hash_password(password),
        role=RoleName.OWNER.value,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning("Signup lost a race on slug or email: slug=%s", slug)
        return SignupResult(created=False)

    await db.refresh(tenant)
    event = TenantCreated(tenant_id=tenant.id, slug=tenant.slug, name=tenant.name, tier=tenant.tier)
    logger.info("Tenant created: id=%s slug=%s", tenant.id, tenant.slug)

    if notifier is not None:
        notifier.notify(
            "send_welcome_email",
            to_email=user.email,
            user_name=user.name,
            tenant_name=tenant.name,
            login_url=f"{settings.app_url}/login?tenant={tenant.slug}",
        )
    return SignupResult(created=True, tenant=tenant, user=user, event=event)


async def authenticate_user(email: str, password: str, db: AsyncSession, tenant_id: str | None = None) -> User:
    """
    Return the user for ``email``/``password``, scoped to ``tenant_id`` when given.

    Raises:
        InvalidCredentialsError: unknown email, wrong password, pending invitation
            or inactive studio
    """
    query = select(User).where(User.email == email.strip().lower())
    if tenant_id:
        query = query.where(User.tenant_id == tenant_id)
    result = await db.execute(query.order_by(User.created_at))
    user = result.scalars().first()

    # pending invitees have no password yet
    if user is None or user.is_pending:
        dummy_verify()
        logger.info("Login failed for email in tenant=%s", tenant_id)
        raise InvalidCredentialsError()
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed for email in tenant=%s", tenant_id)
        raise InvalidCredentialsError()

    tenant = await get_tenant_by_id(user.tenant_id, db)
    if tenant is None or tenant.status != TenantStatus.active.value:
        logger.info("Login refused for inactive tenant=%s", user.tenant_id)
        raise InvalidCredentialsError()
    return user


async def require_tenant(tenant_id: str, db: AsyncSession) -> Tenant:
    tenant = await get_tenant_by_id(tenant_id, db)
    if tenant is None:
        raise TenantNotFoundError(tenant_id)
    return tenant


async def change_tier(tenant_id: str, tier: str, db: AsyncSession) -> Tenant:
    """Apply a billing tier change. Same tier is a no-op."""
    tenant = await require_tenant(tenant_id, db)
    updated, event = unwrap(transitions.change_tier(tenant.to_record(), TenantTier(tier)), _validation_error)
    if event is None:
        return tenant

    tenant.apply_record(updated)
    await db.commit()
    await db.refresh(tenant)
    logger.info("Tenant tier changed: id=%s %s -> %s", tenant.id, event.previous_tier, event.tier)
    return tenant


async def set_status(tenant_id: str, status: str, db: AsyncSession) -> Tenant:
    """Suspend, reactivate or cancel a tenant. Cancelled tenants stay cancelled."""
    tenant = await require_tenant(tenant_id, db)
    target = TenantStatus(status)
    transition = transitions.TENANT_STATUS_TRANSITIONS[target]
    updated, event = unwrap(
        transition(tenant.to_record()),
        lambda _: InvalidStatusTransitionError(tenant.status, target.value, "Tenant"),
    )
    if event is None:
        return tenant

    tenant.apply_record(updated)
    await db.commit()
    await db.refresh(tenant)
    logger.info("Tenant status changed: id=%s %s -> %s", tenant.id, event.previous_status, event.status)
    return tenant


async def set_feature_override(tenant_id: str, feature: str, enabled: bool, db: AsyncSession) -> TenantFeatureFlag:
    """Create or update the explicit override for ``feature``."""
    if feature not in FEATURES:
        raise ValidationError(f"Unknown feature: {feature}", field="feature")
    await require_tenant(tenant_id, db)

    result = await db.execute(
        select(TenantFeatureFlag).where(TenantFeatureFlag.tenant_id == tenant_id, TenantFeatureFlag.feature == feature)
    )
    flag = result.scalars().first()
    if flag is None:
        flag = TenantFeatureFlag(tenant_id=tenant_id, feature=feature, enabled=enabled)
        db.add(flag)
    else:
        flag.enabled = enabled
    await db.commit()
    logger.info("Feature override set: tenant=%s feature=%s enabled=%s", tenant_id, feature, enabled)
    return flag


async def clear_feature_override(tenant_id: str, feature: str, db: AsyncSession) -> bool:
    """Remove the override so the tier default applies again. True if one existed."""
    result = await db.execute(
        delete(TenantFeatureFlag).where(TenantFeatureFlag.tenant_id == tenant_id, TenantFeatureFlag.feature == feature)
    )
    await db.commit()
    removed = bool(result.rowcount)
    if removed:
        logger.info("Feature override cleared: tenant=%s feature=%s", tenant_id, feature)
    return removed
