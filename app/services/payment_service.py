"""
Payment Service

Stripe Checkout for pending orders and the idempotent confirmation that
runs when Stripe reports a completed checkout session.

Stripe may deliver the same webhook more than once and in any order. A
confirmation is applied at most once: a known ``provider_payment_id`` or
an order that already left ``pending`` is a no-op, and the unique
constraint on ``payments.provider_payment_id`` settles concurrent
deliveries. Amount and session id are checked before anything is written.
"""

import asyncio
import json
import logging
from dataclasses import dataclass

import stripe
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.domain import transitions
from app.domain.entities import OrderStatus
from app.domain.events import PaymentConfirmed
from app.domain.result import unwrap
from app.exceptions import (
    InvalidStatusTransitionError,
    OrderNotFoundError,
    PaymentMismatchError,
    PaymentProviderError,
    ValidationError,
    WebhookSignatureError,
)
from app.models.order import Order, Payment
from app.models.product import Product
from app.services.feature_service import FeatureResolver, require_feature
from app.services.order_service import get_order_by_token, status_url

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class PaymentConfirmation:
    order_id: str
    tenant_id: str
    session_id: str
    provider_payment_id: str
    amount: int
    currency: str


@dataclass(frozen=True)
class ConfirmationResult:
    """``applied`` is False for replays and orders that are no longer pending."""

    applied: bool
    order: Order | None = None
    event: PaymentConfirmed | None = None


def verify_webhook_signature(payload: bytes, signature: str, secret: str | None = None) -> dict:
    """
    Check the Stripe-Signature header against the raw body and return the event.

    Raises:
        PaymentProviderError: no webhook secret configured
        WebhookSignatureError: missing or invalid signature, or unparsable body
    """
    secret = secret if secret is not None else settings.stripe_webhook_secret
    if not secret:
        logger.error("Stripe webhook secret is not configured")
        raise PaymentProviderError("Webhook secret is not configured")
    if not signature:
        raise WebhookSignatureError("Missing signature")

    try:
        stripe.Webhook.construct_event(payload, signature, secret)
    except stripe.SignatureVerificationError as e:
        logger.warning("Webhook signature verification failed: %s", e)
        raise WebhookSignatureError() from e
    except ValueError as e:
        raise WebhookSignatureError("Invalid webhook payload") from e
    # plain dicts rather than nested StripeObjects
    return json.loads(payload)


def confirmation_from_event(event) -> PaymentConfirmation | None:
    """
    Extract a confirmation from a completed checkout session event.

    Other event types, and sessions missing our metadata, return None.
    """
    if event["type"] != CHECKOUT_COMPLETED:
        return None

    session = event["data"]["object"]
    metadata = session.get("metadata") or {}
    order_id = metadata.get("orderId")
    tenant_id = metadata.get("tenantId")
    payment_id = session.get("payment_intent")
    if not (order_id and tenant_id and payment_id):
        logger.warning("Checkout session %s lacks order metadata; ignoring", session.get("id"))
        return None

    return PaymentConfirmation(
        order_id=order_id,
        tenant_id=tenant_id,
        session_id=session["id"],
        provider_payment_id=payment_id,
        amount=int(session.get("amount_total") or 0),
        currency=(session.get("currency") or "").upper(),
    )


def _create_stripe_session(order: Order, names: dict[str, str]) -> tuple[str, str]:
    if not settings.stripe_secret_key:
        raise PaymentProviderError("Payments are not configured")

    base = status_url(order)
    try:
        session = stripe.checkout.Session.create(
            api_key=settings.stripe_secret_key,
            mode="payment",
            line_items=[
                {
                    "price_data": {
                        "currency": order.currency.lower(),
                        "unit_amount": item.unit_price,
                        "product_data": {"name": names.get(item.product_id, "Product")},
                    },
                    "quantity": item.quantity,
                }
                for item in order.items
            ],
            metadata={"orderId": order.id, "tenantId": order.tenant_id},
            success_url=f"{base}&status=success",
            cancel_url=f"{base}&status=cancelled",
        )
    except stripe.StripeError as e:
        logger.error("Stripe checkout creation failed: order=%s error=%s", order.id, e)
        raise PaymentProviderError() from e
    return session.id, session.url


async def start_checkout(
    order_id: str,
    access_token: str,
    db: AsyncSession,
    resolver: FeatureResolver | None = None,
) -> str:
    """
    Open a Stripe Checkout session for a pending order and return its URL.

    One session per order; its id is stored and later matched against the
    completed-session webhook.
    """
    order = await get_order_by_token(order_id, access_token, db)
    await require_feature(order.tenant_id, "payments", db, resolver)

    if order.status != OrderStatus.pending.value:
        raise ValidationError(f"Order cannot be checked out: status is {order.status}", field="status")
    if order.checkout_session_id:
        raise ValidationError("Order already has an active checkout session", field="order_id")

    result = await db.execute(select(Product.id, Product.name).where(Product.id.in_([i.product_id for i in order.items])))
    names = {row.id: row.name for row in result.all()}

    session_id, url = await asyncio.to_thread(_create_stripe_session, order, names)
    order.checkout_session_id = session_id
    await db.commit()
    logger.info("Checkout started: order=%s session=%s", order.id, session_id)
    return url


async def confirm_payment(confirmation: PaymentConfirmation, db: AsyncSession) -> ConfirmationResult:
    """
    Mark the order confirmed and record the payment, at most once.

    Raises:
        OrderNotFoundError: no such order for the tenant
        PaymentMismatchError: session id or amount does not match the order
    """
    existing = await db.execute(
        select(Payment.id).where(Payment.provider_payment_id == confirmation.provider_payment_id)
    )
    if existing.scalars().first() is not None:
        logger.info("Duplicate payment notification ignored: payment=%s", confirmation.provider_payment_id)
        return ConfirmationResult(applied=False)

    result = await db.execute(
        select(Order).where(Order.id == confirmation.order_id, Order.tenant_id == confirmation.tenant_id)
    )
    order = result.scalars().first()
    if order is None:
        raise OrderNotFoundError(confirmation.order_id)

    if order.checkout_session_id and order.checkout_session_id != confirmation.session_id:
        logger.warning(
            "Payment session mismatch: order=%s expected=%s got=%s",
            order.id,
            order.checkout_session_id,
            confirmation.session_id,
        )
        raise PaymentMismatchError("Checkout session does not belong to this order", details={"order_id": order.id})

    if confirmation.amount != order.total or (confirmation.currency and confirmation.currency != order.currency):
        logger.warning(
            "Payment amount mismatch: order=%s expected=%d %s got=%d %s",
            order.id,
            order.total,
            order.currency,
            confirmation.amount,
            confirmation.currency,
        )
        raise PaymentMismatchError(
            "Paid amount does not match the order total",
            details={"order_id": order.id, "expected": order.total, "received": confirmation.amount},
        )

    if order.status != OrderStatus.pending.value:
        logger.info("Payment for order %s ignored: status is %s", order.id, order.status)
        return ConfirmationResult(applied=False, order=order)

    updated, _ = unwrap(
        transitions.transition_order(order.to_record(), OrderStatus.confirmed),
        lambda _: InvalidStatusTransitionError(order.status, OrderStatus.confirmed.value, "Order"),
    )
    order.apply_record(updated)
    db.add(
        Payment(
            tenant_id=order.tenant_id,
            order_id=order.id,
            provider_payment_id=confirmation.provider_payment_id,
            amount=confirmation.amount,
            currency=order.currency,
            status="succeeded",
        )
    )
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.info("Concurrent delivery already recorded payment %s", confirmation.provider_payment_id)
        return ConfirmationResult(applied=False)

    event = PaymentConfirmed(
        order_id=order.id,
        tenant_id=order.tenant_id,
        provider_payment_id=confirmation.provider_payment_id,
        amount=confirmation.amount,
    )
    logger.info("%s: order=%s payment=%s", event.event_name, order.id, confirmation.provider_payment_id)
    return ConfirmationResult(applied=True, order=order, event=event)
