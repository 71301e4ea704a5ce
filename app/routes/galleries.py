"""
Dashboard Gallery Routes

Gallery and photo management for signed-in studio members. Editors can
change content; viewers can only read.
"""

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.domain.entities import GalleryStatus
from app.schemas.gallery import GalleryCreate, GalleryResponse, GalleryUpdate, PhotoResponse
from app.services import gallery_service, photo_service, tenant_service
from app.services.authorization_service import require_role
from app.services.media_service import ImageProcessor, get_image_processor

router = APIRouter()


@router.get("/galleries", response_model=list[GalleryResponse])
async def list_galleries(
    status_filter: GalleryStatus | None = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await gallery_service.list_galleries(
        session.tenant_id, db, status=status_filter, skip=skip, limit=min(limit, 200)
    )


@router.post("/galleries", response_model=GalleryResponse, status_code=status.HTTP_201_CREATED)
async def create_gallery(
    payload: GalleryCreate,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
):
    tenant = await tenant_service.require_tenant(session.tenant_id, db)
    await gallery_service.ensure_gallery_quota(tenant, db)
    return await gallery_service.create_gallery(
        tenant_id=tenant.id,
        title=payload.title,
        db=db,
        description=payload.description,
        visibility=payload.visibility,
        session_price=payload.session_price,
        expires_at=payload.expires_at,
    )


@router.get("/galleries/{gallery_id}", response_model=GalleryResponse)
async def get_gallery(
    gallery_id: str,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await gallery_service.get_gallery(gallery_id, session.tenant_id, db)


@router.patch("/galleries/{gallery_id}", response_model=GalleryResponse)
async def update_gallery(
    gallery_id: str,
    payload: GalleryUpdate,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
):
    return await gallery_service.update_gallery(gallery_id, session.tenant_id, payload, db)


@router.post("/galleries/{gallery_id}/publish", response_model=GalleryResponse)
async def publish_gallery(
    gallery_id: str,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
):
    return await gallery_service.publish_gallery(gallery_id, session.tenant_id, db)


@router.post("/galleries/{gallery_id}/archive", response_model=GalleryResponse)
async def archive_gallery(
    gallery_id: str,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
):
    return await gallery_service.archive_gallery(gallery_id, session.tenant_id, db)


@router.get("/galleries/{gallery_id}/photos", response_model=list[PhotoResponse])
async def list_photos(
    gallery_id: str,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await photo_service.list_photos(gallery_id, session.tenant_id, db)


@router.post("/galleries/{gallery_id}/photos", response_model=PhotoResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    gallery_id: str,
    file: UploadFile = File(...),
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
    processor: ImageProcessor = Depends(get_image_processor),
):
    data = await file.read()
    return await photo_service.upload_photo(
        gallery_id, session.tenant_id, file.filename or "photo", data, db, processor
    )


@router.delete("/galleries/{gallery_id}/photos/{photo_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_photo(
    gallery_id: str,
    photo_id: str,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
    processor: ImageProcessor = Depends(get_image_processor),
):
    await photo_service.delete_photo(gallery_id, session.tenant_id, photo_id, db, processor)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
