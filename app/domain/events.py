"""Domain events returned by transition functions for the caller to dispatch."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from app.domain.entities import utcnow


@dataclass(frozen=True)
class DomainEvent:
    occurred_at: datetime = field(default_factory=utcnow, kw_only=True)

    @property
    def event_name(self) -> str:
        return type(self).__name__


@dataclass(frozen=True)
class TenantCreated(DomainEvent):
    tenant_id: str
    slug: str
    name: str
    tier: str


@dataclass(frozen=True)
class TenantTierChanged(DomainEvent):
    tenant_id: str
    previous_tier: str
    tier: str


@dataclass(frozen=True)
class TenantStatusChanged(DomainEvent):
    tenant_id: str
    previous_status: str
    status: str


@dataclass(frozen=True)
class GalleryCreated(DomainEvent):
    gallery_id: str
    tenant_id: str
    code: str
    title: str


@dataclass(frozen=True)
class GalleryPublished(DomainEvent):
    gallery_id: str
    tenant_id: str
    code: str


@dataclass(frozen=True)
class GalleryArchived(DomainEvent):
    gallery_id: str
    tenant_id: str


@dataclass(frozen=True)
class OrderPlaced(DomainEvent):
    order_id: str
    tenant_id: str
    order_number: str
    total: int


@dataclass(frozen=True)
class OrderStatusChanged(DomainEvent):
    order_id: str
    tenant_id: str
    previous_status: str
    status: str


@dataclass(frozen=True)
class PaymentConfirmed(DomainEvent):
    order_id: str
    tenant_id: str
    provider_payment_id: str
    amount: int
