"""
Order Service

Client order placement against a published gallery, the unauthenticated
status lookup by access token, and the studio's order management.

Prices are read from the tenant's active products and copied onto each
order item, so later product edits never change a placed order.
"""

import logging
import secrets
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain import transitions
from app.domain.entities import GalleryStatus, OrderStatus, utcnow
from app.domain.events import OrderPlaced
from app.domain.pricing import LineItemInput, price_order
from app.domain.result import DomainError, as_dict, unwrap
from app.exceptions import (
    DuplicateResourceError,
    GalleryNotFoundError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from app.models.gallery import Gallery, Photo
from app.models.order import Order, OrderItem
from app.models.product import Product
from app.schemas.order import OrderCreate, OrderStatusItem, OrderStatusResponse
from app.services.email_service import Notifier
from app.utils.sanitize import sanitize_multiline, sanitize_plain_text
from app.utils.slugify import to_base36

logger = logging.getLogger(__name__)


def _validation_error(error: DomainError) -> ValidationError:
    return ValidationError(error.message, field=error.field, details=as_dict(error))


def generate_order_number(now: datetime | None = None) -> str:
    """``ORD-{base36 ms}-{6 hex}``, uppercased. Uniqueness is enforced by the column."""
    millis = int((now or datetime.now(timezone.utc)).timestamp() * 1000)
    return f"ORD-{to_base36(millis)}-{secrets.token_hex(3)}".upper()


def generate_access_token() -> str:
    return secrets.token_urlsafe(32)


def status_url(order: Order) -> str:
    return f"{settings.app_url}/order/{order.id}?token={order.access_token}"


async def _load_products(tenant_id: str, product_ids: list[str], db: AsyncSession) -> dict[str, Product]:
    unique_ids = list(dict.fromkeys(product_ids))
    result = await db.execute(
        select(Product).where(Product.id.in_(unique_ids), Product.tenant_id == tenant_id, Product.is_active.is_(True))
    )
    products = {product.id: product for product in result.scalars().all()}
    if len(products) != len(unique_ids):
        raise ValidationError("One or more products not found or inactive", field="items")
    return products


async def _check_photos(gallery_id: str, photo_ids: list[str], db: AsyncSession) -> None:
    unique_ids = list(dict.fromkeys(photo_ids))
    if not unique_ids:
        return
    result = await db.execute(select(Photo.id).where(Photo.id.in_(unique_ids), Photo.gallery_id == gallery_id))
    if len(set(result.scalars().all())) != len(unique_ids):
        raise ValidationError("One or more photos not found in this gallery", field="items")


async def place_order(data: OrderCreate, db: AsyncSession, notifier: Notifier | None = None) -> Order:
    """
    Create a pending order for a client of the gallery's studio.

    Raises:
        GalleryNotFoundError: unknown gallery
        ValidationError: gallery not orderable, unknown products or photos, bad totals
    """
    result = await db.execute(select(Gallery).where(Gallery.id == data.gallery_id))
    gallery = result.scalars().first()
    if gallery is None:
        raise GalleryNotFoundError(data.gallery_id)
    if gallery.status != GalleryStatus.published.value or not gallery.to_record().is_accessible(utcnow()):
        raise ValidationError("Gallery is not available for orders", field="gallery_id")

    products = await _load_products(gallery.tenant_id, [item.product_id for item in data.items], db)
    await _check_photos(gallery.id, [item.photo_id for item in data.items if item.photo_id], db)

    customer_name = sanitize_plain_text(data.customer_name)
    if not customer_name:
        raise ValidationError("Customer name cannot be empty", field="customer_name")

    currencies = {products[item.product_id].currency for item in data.items}
    if len(currencies) > 1:
        raise ValidationError("All products in an order must share one currency", field="items")

    totals = unwrap(
        price_order(
            [
                LineItemInput(
                    product_id=item.product_id,
                    unit_price=products[item.product_id].price,
                    quantity=item.quantity,
                    photo_id=item.photo_id,
                )
                for item in data.items
            ]
        ),
        _validation_error,
    )

    order = Order(
        tenant_id=gallery.tenant_id,
        gallery_id=gallery.id,
        order_number=generate_order_number(),
        customer_email=str(data.customer_email).lower(),
        customer_name=customer_name,
        customer_phone=data.customer_phone,
        shipping_address=data.shipping_address.model_dump() if data.shipping_address else None,
        notes=sanitize_multiline(data.notes),
        subtotal=totals.subtotal,
        discount=totals.discount,
        tax=totals.tax,
        total=totals.total,
        currency=currencies.pop(),
        status=OrderStatus.pending.value,
        access_token=generate_access_token(),
        items=[
            OrderItem(
                product_id=line.product_id,
                photo_id=line.photo_id,
                quantity=line.quantity,
                unit_price=line.unit_price,
                total_price=line.total_price,
            )
            for line in totals.lines
        ],
    )
    order_number = order.order_number
    db.add(order)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        logger.warning("Order number collision: %s", order_number)
        raise DuplicateResourceError("Order", "order_number", order_number) from e
    await db.refresh(order)

    event = OrderPlaced(order_id=order.id, tenant_id=order.tenant_id, order_number=order.order_number, total=order.total)
    logger.info("%s: order=%s tenant=%s total=%d", event.event_name, order.id, order.tenant_id, order.total)

    if notifier is not None:
        notifier.notify(
            "send_order_confirmation",
            to_email=order.customer_email,
            customer_name=order.customer_name,
            order_number=order.order_number,
            total=order.total,
            currency=order.currency,
            items=[
                {"name": products[line.product_id].name, "quantity": line.quantity, "unit_price": line.unit_price}
                for line in totals.lines
            ],
            status_url=status_url(order),
        )
    return order


async def get_order_by_token(order_id: str, access_token: str, db: AsyncSession) -> Order:
    """The token is the only credential; a mismatched id is reported as not found."""
    result = await db.execute(select(Order).where(Order.access_token == access_token))
    order = result.scalars().first()
    if order is None or order.id != order_id:
        raise OrderNotFoundError(order_id)
    return order


async def get_order_status(order_id: str, access_token: str, db: AsyncSession) -> OrderStatusResponse:
    order = await get_order_by_token(order_id, access_token, db)

    product_ids = [item.product_id for item in order.items]
    names: dict[str, str] = {}
    if product_ids:
        result = await db.execute(select(Product.id, Product.name).where(Product.id.in_(product_ids)))
        names = {row.id: row.name for row in result.all()}

    return OrderStatusResponse(
        order_number=order.order_number,
        status=OrderStatus(order.status),
        total=order.total,
        currency=order.currency,
        customer_name=order.customer_name,
        created_at=order.created_at,
        paid_at=order.paid_at,
        shipped_at=order.shipped_at,
        delivered_at=order.delivered_at,
        items=[
            OrderStatusItem(name=names.get(item.product_id, "Product"), quantity=item.quantity, unit_price=item.unit_price)
            for item in order.items
        ],
    )


async def get_order(order_id: str, tenant_id: str, db: AsyncSession) -> Order:
    result = await db.execute(select(Order).where(Order.id == order_id, Order.tenant_id == tenant_id))
    order = result.scalars().first()
    if order is None:
        raise OrderNotFoundError(order_id)
    return order


async def list_orders(
    tenant_id: str,
    db: AsyncSession,
    status: OrderStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Order]:
    query = select(Order).where(Order.tenant_id == tenant_id)
    if status:
        query = query.where(Order.status == OrderStatus(status).value)
    query = query.order_by(Order.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_order_status(
    order_id: str,
    tenant_id: str,
    status: OrderStatus,
    db: AsyncSession,
    notifier: Notifier | None = None,
) -> Order:
    """Move an order along its lifecycle and tell the customer. Same status is a no-op."""
    order = await get_order(order_id, tenant_id, db)
    target = OrderStatus(status)
    updated, event = unwrap(
        transitions.transition_order(order.to_record(), target),
        lambda _: InvalidStatusTransitionError(order.status, target.value, "Order"),
    )
    if event is None:
        return order

    order.apply_record(updated)
    await db.commit()
    await db.refresh(order)
    logger.info("%s: order=%s %s -> %s", event.event_name, order.id, event.previous_status, event.status)

    if notifier is not None:
        notifier.notify(
            "send_order_status_update",
            to_email=order.customer_email,
            customer_name=order.customer_name,
            order_number=order.order_number,
            status=order.status,
            status_url=status_url(order),
        )
    return order
