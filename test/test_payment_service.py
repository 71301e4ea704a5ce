"""
Tests for Stripe checkout, webhook verification and payment confirmation
"""

import hashlib
import hmac
import json
import time
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
import stripe
from sqlalchemy import func, select

from app.constants.tiers import TenantTier
from app.domain.entities import OrderStatus
from app.exceptions import (
    FeatureNotAvailableError,
    OrderNotFoundError,
    PaymentMismatchError,
    PaymentProviderError,
    ValidationError,
    WebhookSignatureError,
)
from app.models.order import Payment
from app.schemas.order import OrderCreate
from app.services import order_service, payment_service
from app.services.payment_service import PaymentConfirmation
from conftest import make_gallery, make_photo, make_product, make_tenant

WEBHOOK_SECRET = "whsec_test_secret"


def sign(payload: bytes, secret: str = WEBHOOK_SECRET, timestamp: int | None = None) -> str:
    timestamp = timestamp or int(time.time())
    signed = f"{timestamp}.".encode() + payload
    signature = hmac.new(secret.encode(), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={signature}"


def checkout_event(order_id="o1", tenant_id="t1", payment_intent="pi_1", amount=2000, event_type=None):
    return {
        "id": "evt_1",
        "object": "event",
        "type": event_type or payment_service.CHECKOUT_COMPLETED,
        "data": {
            "object": {
                "id": "cs_test_1",
                "object": "checkout.session",
                "payment_intent": payment_intent,
                "amount_total": amount,
                "currency": "eur",
                "metadata": {"orderId": order_id, "tenantId": tenant_id},
            }
        },
    }


async def placed_order(db, tier=TenantTier.PRO, quantity=2):
    tenant = await make_tenant(db, tier=tier)
    gallery = await make_gallery(db, tenant)
    photo = await make_photo(db, gallery)
    product = await make_product(db, tenant, price=1000)
    order = await order_service.place_order(
        OrderCreate.model_validate(
            {
                "galleryId": gallery.id,
                "customerEmail": "client@example.com",
                "customerName": "Jane Client",
                "items": [{"productId": product.id, "photoId": photo.id, "quantity": quantity}],
            }
        ),
        db,
    )
    return tenant, order


def confirmation_for(order, payment_id="pi_1", amount=None, session_id="cs_test_1", currency="EUR"):
    return PaymentConfirmation(
        order_id=order.id,
        tenant_id=order.tenant_id,
        session_id=session_id,
        provider_payment_id=payment_id,
        amount=order.total if amount is None else amount,
        currency=currency,
    )


class TestWebhookSignature:
    def test_valid_signature_returns_event(self):
        payload = json.dumps(checkout_event()).encode()
        event = payment_service.verify_webhook_signature(payload, sign(payload), WEBHOOK_SECRET)
        assert event["type"] == payment_service.CHECKOUT_COMPLETED

    def test_tampered_payload(self):
        payload = json.dumps(checkout_event()).encode()
        header = sign(payload)
        tampered = json.dumps(checkout_event(amount=1)).encode()
        with pytest.raises(WebhookSignatureError):
            payment_service.verify_webhook_signature(tampered, header, WEBHOOK_SECRET)

    def test_wrong_secret(self):
        payload = json.dumps(checkout_event()).encode()
        with pytest.raises(WebhookSignatureError):
            payment_service.verify_webhook_signature(payload, sign(payload, "whsec_other"), WEBHOOK_SECRET)

    def test_missing_signature(self):
        with pytest.raises(WebhookSignatureError):
            payment_service.verify_webhook_signature(b"{}", "", WEBHOOK_SECRET)

    def test_unconfigured_secret(self):
        with pytest.raises(PaymentProviderError):
            payment_service.verify_webhook_signature(b"{}", "t=1,v1=x", "")


class TestConfirmationFromEvent:
    def test_extracts_fields(self):
        confirmation = payment_service.confirmation_from_event(checkout_event())
        assert confirmation == PaymentConfirmation(
            order_id="o1",
            tenant_id="t1",
            session_id="cs_test_1",
            provider_payment_id="pi_1",
            amount=2000,
            currency="EUR",
        )

    def test_other_event_types_are_ignored(self):
        assert payment_service.confirmation_from_event(checkout_event(event_type="charge.refunded")) is None

    def test_missing_metadata_is_ignored(self):
        event = checkout_event()
        event["data"]["object"]["metadata"] = {}
        assert payment_service.confirmation_from_event(event) is None


class TestConfirmPayment:
    @pytest.mark.asyncio
    async def test_confirms_pending_order(self, db):
        _, order = await placed_order(db)

        result = await payment_service.confirm_payment(confirmation_for(order), db)

        assert result.applied
        assert result.order.status == OrderStatus.confirmed.value
        assert result.order.paid_at is not None
        assert result.event.amount == 2000

    @pytest.mark.asyncio
    async def test_replay_is_a_noop(self, db):
        _, order = await placed_order(db)
        await payment_service.confirm_payment(confirmation_for(order), db)
        paid_at = order.paid_at

        replay = await payment_service.confirm_payment(confirmation_for(order), db)

        assert not replay.applied
        assert order.paid_at == paid_at
        assert (await db.execute(select(func.count(Payment.id)))).scalar() == 1

    @pytest.mark.asyncio
    async def test_second_payment_for_confirmed_order_is_ignored(self, db):
        _, order = await placed_order(db)
        await payment_service.confirm_payment(confirmation_for(order), db)

        result = await payment_service.confirm_payment(confirmation_for(order, payment_id="pi_2"), db)
        assert not result.applied
        assert (await db.execute(select(func.count(Payment.id)))).scalar() == 1

    @pytest.mark.asyncio
    async def test_amount_mismatch_changes_nothing(self, db):
        _, order = await placed_order(db)

        with pytest.raises(PaymentMismatchError):
            await payment_service.confirm_payment(confirmation_for(order, amount=1), db)

        assert order.status == OrderStatus.pending.value
        assert (await db.execute(select(func.count(Payment.id)))).scalar() == 0

    @pytest.mark.asyncio
    async def test_currency_mismatch(self, db):
        _, order = await placed_order(db)
        with pytest.raises(PaymentMismatchError):
            await payment_service.confirm_payment(confirmation_for(order, currency="USD"), db)

    @pytest.mark.asyncio
    async def test_session_mismatch(self, db):
        _, order = await placed_order(db)
        order.checkout_session_id = "cs_expected"
        await db.commit()

        with pytest.raises(PaymentMismatchError):
            await payment_service.confirm_payment(confirmation_for(order, session_id="cs_other"), db)

    @pytest.mark.asyncio
    async def test_order_of_another_tenant(self, db):
        _, order = await placed_order(db)
        confirmation = PaymentConfirmation(
            order_id=order.id,
            tenant_id="someone-else",
            session_id="cs_test_1",
            provider_payment_id="pi_1",
            amount=order.total,
            currency="EUR",
        )
        with pytest.raises(OrderNotFoundError):
            await payment_service.confirm_payment(confirmation, db)


class TestStartCheckout:
    @pytest.mark.asyncio
    async def test_creates_session_once(self, db, monkeypatch):
        _, order = await placed_order(db)
        create = MagicMock(return_value=SimpleNamespace(id="cs_test_9", url="https://checkout.stripe.com/c/pay/cs_test_9"))
        monkeypatch.setattr(stripe.checkout.Session, "create", create)
        monkeypatch.setattr(payment_service.settings, "stripe_secret_key", "sk_test_123")

        url = await payment_service.start_checkout(order.id, order.access_token, db)

        assert url == "https://checkout.stripe.com/c/pay/cs_test_9"
        assert order.checkout_session_id == "cs_test_9"
        kwargs = create.call_args.kwargs
        assert kwargs["metadata"] == {"orderId": order.id, "tenantId": order.tenant_id}
        assert kwargs["line_items"][0]["price_data"]["unit_amount"] == 1000
        assert kwargs["line_items"][0]["quantity"] == 2

        with pytest.raises(ValidationError):
            await payment_service.start_checkout(order.id, order.access_token, db)
        assert create.call_count == 1

    @pytest.mark.asyncio
    async def test_requires_payments_feature(self, db):
        _, order = await placed_order(db, tier=TenantTier.STARTER)
        with pytest.raises(FeatureNotAvailableError):
            await payment_service.start_checkout(order.id, order.access_token, db)

    @pytest.mark.asyncio
    async def test_unconfigured_provider(self, db, monkeypatch):
        _, order = await placed_order(db)
        monkeypatch.setattr(payment_service.settings, "stripe_secret_key", None)
        with pytest.raises(PaymentProviderError):
            await payment_service.start_checkout(order.id, order.access_token, db)

    @pytest.mark.asyncio
    async def test_provider_error_is_wrapped(self, db, monkeypatch):
        _, order = await placed_order(db)
        monkeypatch.setattr(stripe.checkout.Session, "create", MagicMock(side_effect=stripe.APIConnectionError("down")))
        monkeypatch.setattr(payment_service.settings, "stripe_secret_key", "sk_test_123")

        with pytest.raises(PaymentProviderError):
            await payment_service.start_checkout(order.id, order.access_token, db)
        assert order.checkout_session_id is None
