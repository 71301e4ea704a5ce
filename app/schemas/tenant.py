from pydantic import BaseModel, Field

from app.constants.tiers import TenantTier


class FeatureState(BaseModel):
    name: str
    display_name: str
    minimum_tier: TenantTier
    enabled: bool


class TenantFeaturesResponse(BaseModel):
    tenant_id: str
    tier: TenantTier
    features: list[FeatureState] = Field(default_factory=list)
