from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.constants.tiers import FEATURES
from app.database import get_db
from app.schemas.tenant import FeatureState, TenantFeaturesResponse
from app.services.authorization_service import require_role
from app.services.feature_service import FeatureResolver, get_feature_resolver
from app.services.tenant_service import require_tenant

router = APIRouter()


@router.get("/features", response_model=TenantFeaturesResponse)
async def get_features(
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    """Every known feature with its tier requirement and this studio's effective state."""
    tenant = await require_tenant(session.tenant_id, db)
    enabled = await resolver.get_tenant_features(tenant.id)
    return TenantFeaturesResponse(
        tenant_id=tenant.id,
        tier=tenant.tier,
        features=[
            FeatureState(name=name, display_name=display, minimum_tier=minimum, enabled=enabled.get(name, False))
            for name, (minimum, display) in FEATURES.items()
        ],
    )
