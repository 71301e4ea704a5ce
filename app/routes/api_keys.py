"""
API Key Routes

``router`` lets studio admins create, rotate and revoke the studio's API
key; ``public_router`` is what API-key clients call.
"""

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.domain.entities import GalleryStatus
from app.models.tenant import Tenant
from app.schemas.api_key import ApiGallery, ApiGalleryList, ApiKeyCreated, ApiKeyStatus
from app.services import api_key_service, gallery_service
from app.services.api_key_service import require_api_tenant
from app.services.authorization_service import require_role
from app.services.feature_service import FeatureResolver, get_feature_resolver

router = APIRouter()
public_router = APIRouter()


@router.post("/api-keys", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    """Create the studio's API key, replacing the previous one."""
    return ApiKeyCreated(api_key=await api_key_service.rotate_api_key(session.tenant_id, db, resolver))


@router.get("/api-keys/status", response_model=ApiKeyStatus)
async def get_api_key_status(
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    return await api_key_service.api_key_status(session.tenant_id, db, resolver)


@router.delete("/api-keys", status_code=status.HTTP_204_NO_CONTENT)
async def revoke_api_key(
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    await api_key_service.revoke_api_key(session.tenant_id, db)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@public_router.get("/galleries", response_model=ApiGalleryList, response_model_by_alias=True)
async def list_published_galleries(
    skip: int = 0,
    limit: int = 50,
    tenant: Tenant = Depends(require_api_tenant),
    db: AsyncSession = Depends(get_db),
):
    galleries = await gallery_service.list_galleries(
        tenant.id, db, status=GalleryStatus.published, skip=skip, limit=min(limit, 200)
    )
    return ApiGalleryList(
        data=[
            ApiGallery(
                id=gallery.id,
                code=gallery.code,
                title=gallery.title,
                photo_count=gallery.photo_count,
                created_at=gallery.created_at,
            )
            for gallery in galleries
        ]
    )
