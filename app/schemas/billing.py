from datetime import datetime

from pydantic import BaseModel

from app.constants.tiers import TenantTier


class SubscriptionResponse(BaseModel):
    tier: TenantTier
    status: str | None = None
    current_period_end: datetime | None = None
    cancel_at_period_end: bool = False
    has_stripe_customer: bool


class PortalSessionResponse(BaseModel):
    url: str
