"""
Tenant model.

Each Tenant is one photography studio. Every per-resource table carries a
tenant_id FK and all dashboard queries are scoped by it.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.constants.tiers import TenantTier
from app.database import Base
from app.domain.entities import TenantRecord, TenantStatus


def new_id() -> str:
    return str(uuid.uuid4())


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(String(36), primary_key=True, default=new_id)
    name = Column(String(200), nullable=False)
    slug = Column(String(63), nullable=False, unique=True, index=True)  # subdomain, e.g. "mystudio"
    custom_domain = Column(String(253), nullable=True, unique=True)  # e.g. "photos.mystudio.com"
    tier = Column(String(20), nullable=False, default=TenantTier.STARTER.value)
    status = Column(String(20), nullable=False, default=TenantStatus.active.value)
    # sha256 of the current "lum_" API key; the key itself is shown once
    api_key_hash = Column(String(64), nullable=True, unique=True, index=True)
    # Stripe billing, kept in sync by customer.subscription.* webhooks
    stripe_customer_id = Column(String(255), nullable=True, unique=True)
    stripe_subscription_id = Column(String(255), nullable=True)
    subscription_status = Column(String(30), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)
    cancel_at_period_end = Column(Boolean, nullable=False, default=False)
    # created timestamp of the last applied subscription event; older ones are ignored
    billing_event_at = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    users = relationship("User", back_populates="tenant", lazy="select")
    feature_flags = relationship("TenantFeatureFlag", back_populates="tenant", cascade="all, delete-orphan")

    __table_args__ = (Index("idx_tenant_status", "status"),)

    def to_record(self) -> TenantRecord:
        return TenantRecord(
            id=self.id,
            slug=self.slug,
            name=self.name,
            tier=TenantTier(self.tier),
            status=TenantStatus(self.status),
            custom_domain=self.custom_domain,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply_record(self, record: TenantRecord) -> None:
        self.tier = record.tier.value
        self.status = record.status.value
        self.updated_at = record.updated_at


class TenantFeatureFlag(Base):
    """Explicit per-tenant override; wins over the tier default in both directions."""

    __tablename__ = "tenant_feature_flags"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    feature = Column(String(50), nullable=False)
    enabled = Column(Boolean, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    tenant = relationship("Tenant", back_populates="feature_flags")

    __table_args__ = (UniqueConstraint("tenant_id", "feature", name="uq_tenant_feature"),)
