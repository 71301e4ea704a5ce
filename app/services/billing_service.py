"""
Billing Service

Keeps each studio's tier in step with its Stripe subscription.

Stripe sends ``customer.subscription.created|updated|deleted`` to the
payments webhook. The subscription's first price is mapped to a tier
through ``settings.stripe_price_tiers`` (lookup_key first, then price id)
and applied with tenant_service.change_tier:

  - active, trialing, past_due      -> the price's tier
  - any other status, or deleted    -> starter

Events carry their ``created`` timestamp; one older than the last applied
event is ignored, so out-of-order deliveries cannot roll a tier back.

Studios manage payment methods and cancellation in the Stripe billing
portal (create_portal_session).
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

import stripe
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.constants.tiers import TenantTier
from app.exceptions import PaymentProviderError, ResourceNotFoundError, ValidationError
from app.models.tenant import Tenant
from app.services import tenant_service

logger = logging.getLogger(__name__)

SUBSCRIPTION_CREATED = "customer.subscription.created"
SUBSCRIPTION_UPDATED = "customer.subscription.updated"
SUBSCRIPTION_DELETED = "customer.subscription.deleted"
SUBSCRIPTION_EVENTS = frozenset({SUBSCRIPTION_CREATED, SUBSCRIPTION_UPDATED, SUBSCRIPTION_DELETED})

# Stripe subscription statuses that keep the paid tier
TIER_GRANTING_STATUSES = frozenset({"active", "trialing", "past_due"})


@dataclass(frozen=True)
class SubscriptionChange:
    subscription_id: str
    customer_id: str | None
    tenant_id: str | None
    status: str
    tier: TenantTier | None
    current_period_end: datetime | None
    cancel_at_period_end: bool
    created: int
    deleted: bool = False

    @property
    def target_tier(self) -> TenantTier | None:
        """Tier the studio should end up on; None keeps the current one."""
        if self.deleted or self.status not in TIER_GRANTING_STATUSES:
            return TenantTier.STARTER
        return self.tier


def tier_for_price(price: dict) -> TenantTier | None:
    for key in (price.get("lookup_key"), price.get("id")):
        if key and key in settings.stripe_price_tiers:
            return TenantTier(settings.stripe_price_tiers[key])
    return None


def _timestamp(value) -> datetime | None:
    return datetime.fromtimestamp(int(value), tz=timezone.utc) if value else None


def subscription_change_from_event(event) -> SubscriptionChange | None:
    """Parse a customer.subscription.* event; other event types return None."""
    if event["type"] not in SUBSCRIPTION_EVENTS:
        return None

    subscription = event["data"]["object"]
    items = (subscription.get("items") or {}).get("data") or []
    first_item = items[0] if items else {}
    price = first_item.get("price") or {}
    tier = tier_for_price(price)
    if tier is None and event["type"] != SUBSCRIPTION_DELETED:
        logger.warning(
            "Subscription %s uses unmapped price %s; tier left unchanged",
            subscription.get("id"),
            price.get("lookup_key") or price.get("id"),
        )

    return SubscriptionChange(
        subscription_id=subscription["id"],
        customer_id=subscription.get("customer"),
        tenant_id=(subscription.get("metadata") or {}).get("tenantId"),
        status=subscription.get("status") or "",
        tier=tier,
        # newer API versions report the period on the item
        current_period_end=_timestamp(subscription.get("current_period_end") or first_item.get("current_period_end")),
        cancel_at_period_end=bool(subscription.get("cancel_at_period_end")),
        created=int(event.get("created") or 0),
        deleted=event["type"] == SUBSCRIPTION_DELETED,
    )


async def _tenant_for_change(change: SubscriptionChange, db: AsyncSession) -> Tenant | None:
    if change.tenant_id:
        tenant = await tenant_service.get_tenant_by_id(change.tenant_id, db)
        if tenant is not None:
            return tenant
    if change.customer_id:
        result = await db.execute(select(Tenant).where(Tenant.stripe_customer_id == change.customer_id))
        return result.scalars().first()
    return None


async def apply_subscription_change(change: SubscriptionChange, db: AsyncSession) -> bool:
    """
    Record the subscription state on the studio and move it to the matching tier.

    Returns False for unknown studios and stale events.
    """
    tenant = await _tenant_for_change(change, db)
    if tenant is None:
        logger.warning(
            "Subscription %s matches no studio: customer=%s tenant=%s",
            change.subscription_id,
            change.customer_id,
            change.tenant_id,
        )
        return False
    if tenant.billing_event_at is not None and change.created < tenant.billing_event_at:
        logger.info("Stale subscription event ignored: tenant=%s subscription=%s", tenant.id, change.subscription_id)
        return False

    if change.customer_id:
        tenant.stripe_customer_id = change.customer_id
    tenant.stripe_subscription_id = change.subscription_id
    status = "canceled" if change.deleted else change.status
    tenant.subscription_status = status
    tenant.current_period_end = change.current_period_end
    tenant.cancel_at_period_end = change.cancel_at_period_end and not change.deleted
    tenant.billing_event_at = change.created
    tenant_id = tenant.id
    await db.commit()
    logger.info(
        "Subscription synced: tenant=%s subscription=%s status=%s",
        tenant_id,
        change.subscription_id,
        status,
    )

    target = change.target_tier
    if target is not None:
        await tenant_service.change_tier(tenant_id, target.value, db)
    return True


async def get_subscription(tenant_id: str, db: AsyncSession) -> dict:
    tenant = await tenant_service.require_tenant(tenant_id, db)
    if tenant.stripe_subscription_id is None:
        raise ResourceNotFoundError("Subscription")
    return {
        "tier": TenantTier(tenant.tier),
        "status": tenant.subscription_status,
        "current_period_end": tenant.current_period_end,
        "cancel_at_period_end": tenant.cancel_at_period_end,
        "has_stripe_customer": tenant.stripe_customer_id is not None,
    }


def _create_portal_session(customer_id: str) -> str:
    if not settings.stripe_secret_key:
        raise PaymentProviderError("Payments are not configured")
    try:
        session = stripe.billing_portal.Session.create(
            api_key=settings.stripe_secret_key,
            customer=customer_id,
            return_url=f"{settings.app_url}/dashboard/billing",
        )
    except stripe.StripeError as e:
        logger.error("Stripe billing portal creation failed: customer=%s error=%s", customer_id, e)
        raise PaymentProviderError() from e
    return session.url


async def create_portal_session(tenant_id: str, db: AsyncSession) -> str:
    """Open a Stripe billing portal session for the studio and return its URL."""
    tenant = await tenant_service.require_tenant(tenant_id, db)
    if not tenant.stripe_customer_id:
        raise ValidationError("This studio has no billing account yet", field="customer")
    url = await asyncio.to_thread(_create_portal_session, tenant.stripe_customer_id)
    logger.info("Billing portal opened: tenant=%s", tenant_id)
    return url
