"""
Immutable domain records.

These mirror the ORM rows but carry no session state; every change goes
through a function in app.domain.transitions that returns a new record.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

from app.constants.tiers import TenantTier


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class TenantStatus(str, enum.Enum):
    active = "active"
    suspended = "suspended"
    cancelled = "cancelled"


class GalleryStatus(str, enum.Enum):
    draft = "draft"
    published = "published"
    archived = "archived"


class GalleryVisibility(str, enum.Enum):
    public = "public"
    private = "private"
    code_protected = "code_protected"


class OrderStatus(str, enum.Enum):
    pending = "pending"
    confirmed = "confirmed"
    processing = "processing"
    shipped = "shipped"
    delivered = "delivered"
    cancelled = "cancelled"
    refunded = "refunded"


@dataclass(frozen=True)
class TenantRecord:
    id: str
    slug: str
    name: str
    tier: TenantTier = TenantTier.STARTER
    status: TenantStatus = TenantStatus.active
    custom_domain: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_active(self) -> bool:
        return self.status == TenantStatus.active


@dataclass(frozen=True)
class GalleryRecord:
    id: str
    tenant_id: str
    code: str
    title: str
    description: str | None = None
    status: GalleryStatus = GalleryStatus.draft
    visibility: GalleryVisibility = GalleryVisibility.code_protected
    cover_photo_id: str | None = None
    photo_count: int = 0
    session_price: int | None = None
    expires_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def is_expired(self, now: datetime | None = None) -> bool:
        if self.expires_at is None:
            return False
        return (now or utcnow()) > as_utc(self.expires_at)

    def is_accessible(self, now: datetime | None = None) -> bool:
        return self.status == GalleryStatus.published and not self.is_expired(now)


@dataclass(frozen=True)
class PhotoRecord:
    id: str
    gallery_id: str
    filename: str
    original_key: str
    web_key: str
    thumbnail_key: str
    width: int
    height: int
    size_bytes: int
    mime_type: str
    sort_order: int
    is_favorite: bool = False
    uploaded_at: datetime = field(default_factory=utcnow)

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def is_portrait(self) -> bool:
        return self.height > self.width

    @property
    def is_landscape(self) -> bool:
        return self.width > self.height


@dataclass(frozen=True)
class OrderItemRecord:
    product_id: str
    quantity: int
    unit_price: int
    total_price: int
    photo_id: str | None = None


@dataclass(frozen=True)
class OrderRecord:
    id: str
    tenant_id: str
    order_number: str
    customer_email: str
    customer_name: str
    subtotal: int
    total: int
    access_token: str
    discount: int = 0
    tax: int = 0
    currency: str = "EUR"
    status: OrderStatus = OrderStatus.pending
    items: tuple[OrderItemRecord, ...] = ()
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
