"""
Pure state transitions for tenants, galleries and orders.

Every function takes a record and returns ``Ok((new_record, event))`` or a
``Fail(DomainError)``. ``event`` is None when the call changed nothing, so
callers only dispatch for real transitions.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime

from app.constants.tiers import TenantTier
from app.domain.entities import (
    GalleryRecord,
    GalleryStatus,
    GalleryVisibility,
    OrderRecord,
    OrderStatus,
    TenantRecord,
    TenantStatus,
    utcnow,
)
from app.domain.events import (
    GalleryArchived,
    GalleryCreated,
    GalleryPublished,
    OrderStatusChanged,
    TenantStatusChanged,
    TenantTierChanged,
)
from app.domain.result import ErrorKind, Ok, Result, fail
from app.domain.value_objects import GalleryCode

TITLE_MAX_LENGTH = 255

Transition = Result[tuple, object]

ORDER_FLOW = (
    OrderStatus.pending,
    OrderStatus.confirmed,
    OrderStatus.processing,
    OrderStatus.shipped,
    OrderStatus.delivered,
)
ORDER_TERMINAL = frozenset({OrderStatus.cancelled, OrderStatus.refunded})
ORDER_SIDE_EXITS = frozenset({OrderStatus.cancelled, OrderStatus.refunded})

# status -> timestamp field set on first entry
ORDER_TIMESTAMPS = {
    OrderStatus.confirmed: "paid_at",
    OrderStatus.shipped: "shipped_at",
    OrderStatus.delivered: "delivered_at",
}


def _transition_error(resource: str, current: str, target: str):
    return fail(
        ErrorKind.INVALID_TRANSITION,
        f"Cannot transition {resource} from '{current}' to '{target}'",
        "status",
    )


# Galleries


def create_gallery_record(
    gallery_id: str,
    tenant_id: str,
    code: str,
    title: str,
    description: str | None = None,
    visibility: GalleryVisibility = GalleryVisibility.code_protected,
    session_price: int | None = None,
    expires_at: datetime | None = None,
    now: datetime | None = None,
) -> Transition:
    """Validate the inputs of a new gallery and build its draft record."""
    code_result = GalleryCode.create(code)
    if not code_result.success:
        return code_result

    clean_title = (title or "").strip()
    if not clean_title:
        return fail(ErrorKind.EMPTY, "Gallery title cannot be empty", "title")
    if len(clean_title) > TITLE_MAX_LENGTH:
        return fail(ErrorKind.TOO_LONG, f"Gallery title cannot exceed {TITLE_MAX_LENGTH} characters", "title")
    if session_price is not None and session_price < 0:
        return fail(ErrorKind.INVALID_VALUE, "Session price cannot be negative", "session_price")

    now = now or utcnow()
    record = GalleryRecord(
        id=gallery_id,
        tenant_id=tenant_id,
        code=code_result.value.value,
        title=clean_title,
        description=description,
        status=GalleryStatus.draft,
        visibility=visibility,
        session_price=session_price,
        expires_at=expires_at,
        created_at=now,
        updated_at=now,
    )
    event = GalleryCreated(gallery_id=record.id, tenant_id=tenant_id, code=record.code, title=record.title)
    return Ok((record, event))


def publish_gallery(gallery: GalleryRecord, now: datetime | None = None) -> Transition:
    if gallery.status == GalleryStatus.published:
        return Ok((gallery, None))
    if gallery.status != GalleryStatus.draft:
        return _transition_error("gallery", gallery.status.value, GalleryStatus.published.value)

    updated = replace(gallery, status=GalleryStatus.published, updated_at=now or utcnow())
    return Ok((updated, GalleryPublished(gallery_id=gallery.id, tenant_id=gallery.tenant_id, code=gallery.code)))


def archive_gallery(gallery: GalleryRecord, now: datetime | None = None) -> Transition:
    if gallery.status == GalleryStatus.archived:
        return Ok((gallery, None))

    updated = replace(gallery, status=GalleryStatus.archived, updated_at=now or utcnow())
    return Ok((updated, GalleryArchived(gallery_id=gallery.id, tenant_id=gallery.tenant_id)))


def increment_photo_count(gallery: GalleryRecord, by: int = 1) -> Transition:
    if by < 0:
        return fail(ErrorKind.INVALID_VALUE, "Increment must not be negative", "photo_count")
    return Ok((replace(gallery, photo_count=gallery.photo_count + by), None))


def decrement_photo_count(gallery: GalleryRecord, by: int = 1) -> Transition:
    """Never goes below zero."""
    if by < 0:
        return fail(ErrorKind.INVALID_VALUE, "Decrement must not be negative", "photo_count")
    return Ok((replace(gallery, photo_count=max(0, gallery.photo_count - by)), None))


# Tenants


def change_tier(tenant: TenantRecord, tier: TenantTier, now: datetime | None = None) -> Transition:
    tier = TenantTier(tier)
    if tenant.tier == tier:
        return Ok((tenant, None))

    updated = replace(tenant, tier=tier, updated_at=now or utcnow())
    event = TenantTierChanged(tenant_id=tenant.id, previous_tier=tenant.tier.value, tier=tier.value)
    return Ok((updated, event))


def _set_tenant_status(
    tenant: TenantRecord,
    target: TenantStatus,
    allowed_from: frozenset,
    now: datetime | None,
) -> Transition:
    if tenant.status == target:
        return Ok((tenant, None))
    if tenant.status not in allowed_from:
        return _transition_error("tenant", tenant.status.value, target.value)

    updated = replace(tenant, status=target, updated_at=now or utcnow())
    event = TenantStatusChanged(tenant_id=tenant.id, previous_status=tenant.status.value, status=target.value)
    return Ok((updated, event))


def suspend_tenant(tenant: TenantRecord, now: datetime | None = None) -> Transition:
    return _set_tenant_status(tenant, TenantStatus.suspended, frozenset({TenantStatus.active}), now)


def activate_tenant(tenant: TenantRecord, now: datetime | None = None) -> Transition:
    return _set_tenant_status(tenant, TenantStatus.active, frozenset({TenantStatus.suspended}), now)


def cancel_tenant(tenant: TenantRecord, now: datetime | None = None) -> Transition:
    return _set_tenant_status(
        tenant, TenantStatus.cancelled, frozenset({TenantStatus.active, TenantStatus.suspended}), now
    )


TENANT_STATUS_TRANSITIONS = {
    TenantStatus.active: activate_tenant,
    TenantStatus.suspended: suspend_tenant,
    TenantStatus.cancelled: cancel_tenant,
}


# Orders


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    if current in ORDER_TERMINAL:
        return False
    # a delivered order can still be refunded, nothing else
    if current == OrderStatus.delivered:
        return target == OrderStatus.refunded
    if target in ORDER_SIDE_EXITS:
        return True
    return ORDER_FLOW.index(target) > ORDER_FLOW.index(current)


def transition_order(order: OrderRecord, target: OrderStatus, now: datetime | None = None) -> Transition:
    """
    Move an order forward along the fulfilment flow or to a terminal side exit.

    Steps may be skipped (a pending order can go straight to shipped). The
    matching timestamp is filled the first time a status is entered and is
    never overwritten.
    """
    target = OrderStatus(target)
    if order.status == target:
        return Ok((order, None))
    if not can_transition_order(order.status, target):
        return _transition_error("order", order.status.value, target.value)

    now = now or utcnow()
    changes: dict = {"status": target, "updated_at": now}
    stamp = ORDER_TIMESTAMPS.get(target)
    if stamp and getattr(order, stamp) is None:
        changes[stamp] = now

    updated = replace(order, **changes)
    event = OrderStatusChanged(
        order_id=order.id,
        tenant_id=order.tenant_id,
        previous_status=order.status.value,
        status=target.value,
    )
    return Ok((updated, event))

