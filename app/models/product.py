import enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.tenant import new_id, utc_now


class ProductType(str, enum.Enum):
    print = "print"
    digital_download = "digital_download"
    magnet = "magnet"
    canvas = "canvas"
    album = "album"
    other = "other"


class Product(Base):
    """Something a studio sells against its galleries (prints, downloads...)."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(30), nullable=False, default=ProductType.print.value)
    price = Column(Integer, nullable=False)  # minor units
    currency = Column(String(3), nullable=False, default="EUR")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    tenant = relationship("Tenant", lazy="select")

    __table_args__ = (Index("idx_product_tenant_active", "tenant_id", "is_active"),)
