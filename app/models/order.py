"""
Order, OrderItem and Payment models.

``order_number``, ``access_token`` and ``Payment.provider_payment_id`` are
unique; the last one makes a replayed payment webhook fail to insert.
"""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base
from app.domain.entities import OrderItemRecord, OrderRecord, OrderStatus
from app.models.tenant import new_id, utc_now


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    gallery_id = Column(String(36), ForeignKey("galleries.id", ondelete="SET NULL"), nullable=True)
    order_number = Column(String(40), nullable=False, unique=True)
    customer_email = Column(String(255), nullable=False)
    customer_name = Column(String(200), nullable=False)
    customer_phone = Column(String(50), nullable=True)
    shipping_address = Column(JSON, nullable=True)
    notes = Column(Text, nullable=True)
    subtotal = Column(Integer, nullable=False)
    discount = Column(Integer, nullable=False, default=0)
    tax = Column(Integer, nullable=False, default=0)
    total = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="EUR")
    status = Column(String(20), nullable=False, default=OrderStatus.pending.value)
    access_token = Column(String(64), nullable=False, unique=True, index=True)
    checkout_session_id = Column(String(255), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    items = relationship("OrderItem", back_populates="order", cascade="all, delete-orphan", lazy="selectin")
    payments = relationship("Payment", back_populates="order", cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_order_tenant_status", "tenant_id", "status"),
        Index("idx_order_tenant_created", "tenant_id", "created_at"),
    )

    def to_record(self) -> OrderRecord:
        return OrderRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            order_number=self.order_number,
            customer_email=self.customer_email,
            customer_name=self.customer_name,
            subtotal=self.subtotal,
            discount=self.discount or 0,
            tax=self.tax or 0,
            total=self.total,
            currency=self.currency,
            status=OrderStatus(self.status),
            access_token=self.access_token,
            items=tuple(item.to_record() for item in (self.items or [])),
            paid_at=self.paid_at,
            shipped_at=self.shipped_at,
            delivered_at=self.delivered_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply_record(self, record: OrderRecord) -> None:
        self.status = record.status.value
        self.paid_at = record.paid_at
        self.shipped_at = record.shipped_at
        self.delivered_at = record.delivered_at
        self.updated_at = record.updated_at


class OrderItem(Base):
    """Prices are copied from the product when the order is placed."""

    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True, default=new_id)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id", ondelete="RESTRICT"), nullable=False)
    photo_id = Column(String(36), ForeignKey("photos.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Integer, nullable=False)
    total_price = Column(Integer, nullable=False)

    order = relationship("Order", back_populates="items")

    def to_record(self) -> OrderItemRecord:
        return OrderItemRecord(
            product_id=self.product_id,
            photo_id=self.photo_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            total_price=self.total_price,
        )


class Payment(Base):
    __tablename__ = "payments"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    order_id = Column(String(36), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    provider_payment_id = Column(String(255), nullable=False, unique=True)
    amount = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default="succeeded")
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    order = relationship("Order", back_populates="payments")
