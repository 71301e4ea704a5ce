"""
Billing Routes

The studio's Stripe subscription as last reported by webhook, and a link
into the Stripe billing portal.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.schemas.billing import PortalSessionResponse, SubscriptionResponse
from app.services import billing_service
from app.services.authorization_service import require_role

router = APIRouter()


@router.get("/billing/subscription", response_model=SubscriptionResponse)
async def get_subscription(
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await billing_service.get_subscription(session.tenant_id, db)


@router.post("/billing/portal", response_model=PortalSessionResponse)
async def open_billing_portal(
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return PortalSessionResponse(url=await billing_service.create_portal_session(session.tenant_id, db))
