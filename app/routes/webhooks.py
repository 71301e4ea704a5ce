"""
Webhook Routes

Stripe delivers checkout results and subscription changes here. The body
must be read raw for signature verification, before any JSON parsing.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.services import billing_service, payment_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


@router.post("/payments")
async def payment_webhook(
    request: Request,
    stripe_signature: str = Header("", alias="Stripe-Signature"),
    db: AsyncSession = Depends(get_db),
):
    payload = await request.body()
    event = payment_service.verify_webhook_signature(payload, stripe_signature)
    logger.info("Payment webhook received: type=%s id=%s", event["type"], event.get("id"))

    change = billing_service.subscription_change_from_event(event)
    if change is not None:
        applied = await billing_service.apply_subscription_change(change, db)
        return {"received": True, "applied": applied}

    confirmation = payment_service.confirmation_from_event(event)
    if confirmation is None:
        return {"received": True}

    result = await payment_service.confirm_payment(confirmation, db)
    return {"received": True, "applied": result.applied}
