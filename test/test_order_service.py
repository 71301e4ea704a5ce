"""
Tests for order placement, status lookup and order management
"""

import re
from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.domain.entities import GalleryStatus, OrderStatus
from app.exceptions import (
    DuplicateResourceError,
    GalleryNotFoundError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    ValidationError,
)
from app.schemas.order import OrderCreate
from app.services import order_service
from conftest import make_gallery, make_photo, make_product, make_tenant


def order_payload(gallery_id, items, **overrides):
    data = {
        "galleryId": gallery_id,
        "customerEmail": "Client@Example.com",
        "customerName": "Jane <b>Client</b>",
        "items": items,
    }
    data.update(overrides)
    return OrderCreate.model_validate(data)


async def setup_shop(db):
    tenant = await make_tenant(db)
    gallery = await make_gallery(db, tenant)
    photo = await make_photo(db, gallery)
    product = await make_product(db, tenant, price=1000)
    return tenant, gallery, photo, product


class TestOrderNumbers:
    def test_format(self):
        number = order_service.generate_order_number(datetime(2026, 1, 1, tzinfo=timezone.utc))
        assert re.fullmatch(r"ORD-[0-9A-Z]+-[0-9A-F]{6}", number)

    def test_access_tokens_are_unique(self):
        assert len({order_service.generate_access_token() for _ in range(50)}) == 50


class TestPlaceOrder:
    @pytest.mark.asyncio
    async def test_two_prints_cost_twenty(self, db):
        tenant, gallery, photo, product = await setup_shop(db)
        notifier = MagicMock()

        order = await order_service.place_order(
            order_payload(gallery.id, [{"productId": product.id, "photoId": photo.id, "quantity": 2}]), db, notifier
        )

        assert order.status == OrderStatus.pending.value
        assert order.subtotal == 2000
        assert order.total == 2000
        assert order.currency == "EUR"
        assert order.tenant_id == tenant.id
        assert order.customer_email == "client@example.com"
        assert order.customer_name == "Jane Client"
        assert order.items[0].unit_price == 1000
        assert order.items[0].total_price == 2000

        notifier.notify.assert_called_once()
        args, kwargs = notifier.notify.call_args
        assert args == ("send_order_confirmation",)
        assert kwargs["items"] == [{"name": "Print 13x18", "quantity": 2, "unit_price": 1000}]

    @pytest.mark.asyncio
    async def test_price_is_copied_not_linked(self, db):
        _, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

        product.price = 5000
        await db.commit()
        status = await order_service.get_order_status(order.id, order.access_token, db)
        assert status.total == 1000
        assert status.items[0].unit_price == 1000

    @pytest.mark.asyncio
    async def test_unknown_gallery(self, db):
        with pytest.raises(GalleryNotFoundError):
            await order_service.place_order(order_payload("missing", [{"productId": "p"}]), db)

    @pytest.mark.asyncio
    async def test_draft_gallery_rejected(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant, status=GalleryStatus.draft)
        product = await make_product(db, tenant)
        with pytest.raises(ValidationError):
            await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

    @pytest.mark.asyncio
    async def test_inactive_product_rejected(self, db):
        tenant, gallery, _, _ = await setup_shop(db)
        retired = await make_product(db, tenant, name="Retired", is_active=False)
        with pytest.raises(ValidationError):
            await order_service.place_order(order_payload(gallery.id, [{"productId": retired.id}]), db)

    @pytest.mark.asyncio
    async def test_other_tenants_product_rejected(self, db):
        _, gallery, _, _ = await setup_shop(db)
        other = await make_tenant(db, slug="other-studio")
        foreign = await make_product(db, other)
        with pytest.raises(ValidationError):
            await order_service.place_order(order_payload(gallery.id, [{"productId": foreign.id}]), db)

    @pytest.mark.asyncio
    async def test_photo_from_other_gallery_rejected(self, db):
        tenant, gallery, _, product = await setup_shop(db)
        other = await make_gallery(db, tenant, code="MYST0002")
        stray = await make_photo(db, other)
        with pytest.raises(ValidationError):
            await order_service.place_order(
                order_payload(gallery.id, [{"productId": product.id, "photoId": stray.id}]), db
            )

    @pytest.mark.asyncio
    async def test_same_product_twice(self, db):
        _, gallery, photo, product = await setup_shop(db)
        order = await order_service.place_order(
            order_payload(
                gallery.id,
                [{"productId": product.id, "photoId": photo.id}, {"productId": product.id, "quantity": 3}],
            ),
            db,
        )
        assert order.total == 4000
        assert len(order.items) == 2

    @pytest.mark.asyncio
    async def test_mixed_currencies_rejected(self, db):
        tenant, gallery, _, product = await setup_shop(db)
        dollars = await make_product(db, tenant, name="US print", currency="USD")
        with pytest.raises(ValidationError):
            await order_service.place_order(
                order_payload(gallery.id, [{"productId": product.id}, {"productId": dollars.id}]), db
            )

    @pytest.mark.asyncio
    async def test_order_number_collision_is_a_conflict(self, db, monkeypatch):
        _, gallery, _, product = await setup_shop(db)
        gallery_id, product_id = gallery.id, product.id
        monkeypatch.setattr(order_service, "generate_order_number", lambda now=None: "ORD-FIXED-abc123")
        await order_service.place_order(order_payload(gallery_id, [{"productId": product_id}]), db)

        with pytest.raises(DuplicateResourceError) as exc_info:
            await order_service.place_order(order_payload(gallery_id, [{"productId": product_id}]), db)

        assert exc_info.value.status_code == 409
        assert exc_info.value.details["value"] == "ORD-FIXED-abc123"


class TestOrderLookup:
    @pytest.mark.asyncio
    async def test_status_by_token(self, db):
        _, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

        status = await order_service.get_order_status(order.id, order.access_token, db)
        assert status.order_number == order.order_number
        assert status.items[0].name == "Print 13x18"

    @pytest.mark.asyncio
    async def test_wrong_token_is_not_found(self, db):
        _, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

        with pytest.raises(OrderNotFoundError):
            await order_service.get_order_by_token(order.id, "guess", db)

    @pytest.mark.asyncio
    async def test_token_of_another_order_is_not_found(self, db):
        _, gallery, _, product = await setup_shop(db)
        first = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)
        second = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

        with pytest.raises(OrderNotFoundError):
            await order_service.get_order_by_token(first.id, second.access_token, db)


class TestUpdateOrderStatus:
    @pytest.mark.asyncio
    async def test_ship_notifies_customer(self, db):
        tenant, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)
        notifier = MagicMock()

        shipped = await order_service.update_order_status(order.id, tenant.id, OrderStatus.shipped, db, notifier)

        assert shipped.status == "shipped"
        assert shipped.shipped_at is not None
        notifier.notify.assert_called_once()
        assert notifier.notify.call_args.kwargs["status"] == "shipped"

    @pytest.mark.asyncio
    async def test_same_status_sends_nothing(self, db):
        tenant, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)
        notifier = MagicMock()

        await order_service.update_order_status(order.id, tenant.id, OrderStatus.pending, db, notifier)
        notifier.notify.assert_not_called()

    @pytest.mark.asyncio
    async def test_cannot_reopen_cancelled(self, db):
        tenant, gallery, _, product = await setup_shop(db)
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)
        await order_service.update_order_status(order.id, tenant.id, OrderStatus.cancelled, db)

        with pytest.raises(InvalidStatusTransitionError):
            await order_service.update_order_status(order.id, tenant.id, OrderStatus.processing, db)

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_manage(self, db):
        _, gallery, _, product = await setup_shop(db)
        other = await make_tenant(db, slug="other-studio")
        order = await order_service.place_order(order_payload(gallery.id, [{"productId": product.id}]), db)

        with pytest.raises(OrderNotFoundError):
            await order_service.get_order(order.id, other.id, db)
        assert await order_service.list_orders(other.id, db) == []
