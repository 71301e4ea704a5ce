"""
Product Service

The studio's sellable catalogue. Requires the ``print_orders`` feature
(Pro tier and up, or an explicit override).
"""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ProductNotFoundError, ValidationError
from app.models.product import Product, ProductType
from app.schemas.product import ProductCreate
from app.services.feature_service import FeatureResolver, require_feature
from app.utils.sanitize import sanitize_description, sanitize_plain_text

logger = logging.getLogger(__name__)

CATALOGUE_FEATURE = "print_orders"


async def create_product(
    tenant_id: str,
    data: ProductCreate,
    db: AsyncSession,
    resolver: FeatureResolver | None = None,
) -> Product:
    await require_feature(tenant_id, CATALOGUE_FEATURE, db, resolver)

    name = sanitize_plain_text(data.name)
    if not name:
        raise ValidationError("Product name cannot be empty", field="name")

    product = Product(
        tenant_id=tenant_id,
        name=name,
        description=sanitize_description(data.description),
        type=ProductType(data.type).value,
        price=data.price,
        currency=settings.default_currency,
        is_active=True,
    )
    db.add(product)
    await db.commit()
    await db.refresh(product)
    logger.info("Product created: id=%s tenant=%s price=%d", product.id, tenant_id, product.price)
    return product


async def list_products(
    tenant_id: str,
    db: AsyncSession,
    resolver: FeatureResolver | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    await require_feature(tenant_id, CATALOGUE_FEATURE, db, resolver)

    query = select(Product).where(Product.tenant_id == tenant_id)
    if not include_inactive:
        query = query.where(Product.is_active.is_(True))
    result = await db.execute(query.order_by(Product.created_at))
    return list(result.scalars().all())


async def set_product_active(product_id: str, tenant_id: str, active: bool, db: AsyncSession) -> Product:
    """Deactivated products stay on existing orders but cannot be ordered again."""
    result = await db.execute(select(Product).where(Product.id == product_id, Product.tenant_id == tenant_id))
    product = result.scalars().first()
    if product is None:
        raise ProductNotFoundError(product_id)
    product.is_active = active
    await db.commit()
    await db.refresh(product)
    return product
