"""
Gallery Service

Tenant-scoped gallery management and the public lookup by access code.

Codes are unique across all tenants. ``create_gallery`` generates a code
from the tenant's slug prefix and retries on collision; the unique
constraint on ``galleries.code`` catches the race between the existence
check and the insert, and that retry shares the same attempt budget.
"""

import logging
from random import Random

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.constants.tiers import get_tier_limits
from app.domain import transitions
from app.domain.entities import GalleryStatus, GalleryVisibility, utcnow
from app.domain.result import DomainError, as_dict, unwrap
from app.domain.value_objects import GalleryCode, derive_code_prefix
from app.exceptions import (
    CodeGenerationExhaustedError,
    GalleryNotFoundError,
    InvalidStatusTransitionError,
    PhotoNotFoundError,
    TenantNotFoundError,
    TierLimitExceededError,
    ValidationError,
)
from app.models.gallery import Gallery, Photo
from app.models.tenant import Tenant, new_id
from app.schemas.gallery import GalleryUpdate, PublicGalleryResponse, PublicPhoto
from app.utils.sanitize import sanitize_description, sanitize_plain_text

logger = logging.getLogger(__name__)

MAX_CODE_ATTEMPTS = 10


def _validation_error(error: DomainError) -> ValidationError:
    return ValidationError(error.message, field=error.field, details=as_dict(error))


async def gallery_code_exists(code: str, db: AsyncSession) -> bool:
    result = await db.execute(select(Gallery.id).where(Gallery.code == code))
    return result.scalars().first() is not None


async def ensure_gallery_quota(tenant: Tenant, db: AsyncSession) -> None:
    """
    Raise TierLimitExceededError when the tenant is at its tier's gallery cap.

    Archived galleries still count.
    """
    maximum = get_tier_limits(tenant.tier)["max_galleries"]
    if maximum is None:
        return
    result = await db.execute(select(func.count(Gallery.id)).where(Gallery.tenant_id == tenant.id))
    count = result.scalar() or 0
    if count >= maximum:
        logger.info("Gallery quota reached: tenant=%s count=%d max=%d", tenant.id, count, maximum)
        raise TierLimitExceededError("max_galleries", maximum)


async def create_gallery(
    tenant_id: str,
    title: str,
    db: AsyncSession,
    description: str | None = None,
    visibility: GalleryVisibility = GalleryVisibility.code_protected,
    session_price: int | None = None,
    expires_at=None,
    rng: Random | None = None,
) -> Gallery:
    """
    Create a draft gallery with a fresh access code.

    Raises:
        TenantNotFoundError: unknown tenant
        ValidationError: bad title or price (nothing is written)
        CodeGenerationExhaustedError: every attempt collided (nothing is written)
    """
    result = await db.execute(select(Tenant).where(Tenant.id == tenant_id))
    tenant = result.scalars().first()
    if tenant is None:
        raise TenantNotFoundError(tenant_id)

    prefix = derive_code_prefix(tenant.slug)
    for attempt in range(1, MAX_CODE_ATTEMPTS + 1):
        code = GalleryCode.generate(prefix, rng).value
        if await gallery_code_exists(code, db):
            logger.debug("Gallery code collision: code=%s attempt=%d", code, attempt)
            continue

        record, event = unwrap(
            transitions.create_gallery_record(
                gallery_id=new_id(),
                tenant_id=tenant_id,
                code=code,
                title=sanitize_plain_text(title),
                description=sanitize_description(description),
                visibility=GalleryVisibility(visibility),
                session_price=session_price,
                expires_at=expires_at,
            ),
            _validation_error,
        )
        gallery = Gallery.from_record(record)
        db.add(gallery)
        try:
            await db.commit()
        except IntegrityError:
            await db.rollback()
            logger.info("Gallery code taken concurrently: code=%s attempt=%d", code, attempt)
            continue

        await db.refresh(gallery)
        logger.info("%s: gallery=%s tenant=%s code=%s", event.event_name, gallery.id, tenant_id, gallery.code)
        return gallery

    logger.warning("Gallery code generation exhausted: tenant=%s prefix=%s", tenant_id, prefix)
    raise CodeGenerationExhaustedError(MAX_CODE_ATTEMPTS)


async def get_gallery(gallery_id: str, tenant_id: str, db: AsyncSession) -> Gallery:
    result = await db.execute(select(Gallery).where(Gallery.id == gallery_id, Gallery.tenant_id == tenant_id))
    gallery = result.scalars().first()
    if gallery is None:
        raise GalleryNotFoundError(gallery_id)
    return gallery


async def list_galleries(
    tenant_id: str,
    db: AsyncSession,
    status: GalleryStatus | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Gallery]:
    query = select(Gallery).where(Gallery.tenant_id == tenant_id)
    if status:
        query = query.where(Gallery.status == GalleryStatus(status).value)
    query = query.order_by(Gallery.created_at.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return list(result.scalars().all())


async def update_gallery(gallery_id: str, tenant_id: str, data: GalleryUpdate, db: AsyncSession) -> Gallery:
    """Apply editable fields. Status changes go through publish/archive."""
    gallery = await get_gallery(gallery_id, tenant_id, db)
    changes = data.model_dump(exclude_unset=True)

    if "title" in changes:
        title = sanitize_plain_text(changes["title"]) or ""
        if not title:
            raise ValidationError("Gallery title cannot be empty", field="title")
        changes["title"] = title

    if "description" in changes:
        changes["description"] = sanitize_description(changes["description"])

    if changes.get("cover_photo_id"):
        result = await db.execute(
            select(Photo.id).where(Photo.id == changes["cover_photo_id"], Photo.gallery_id == gallery.id)
        )
        if result.scalars().first() is None:
            raise PhotoNotFoundError(changes["cover_photo_id"])

    if "visibility" in changes and changes["visibility"] is not None:
        changes["visibility"] = GalleryVisibility(changes["visibility"]).value

    for field, value in changes.items():
        setattr(gallery, field, value)

    await db.commit()
    await db.refresh(gallery)
    logger.info("Gallery updated: id=%s fields=%s", gallery.id, sorted(changes))
    return gallery


async def _apply_status_transition(gallery: Gallery, transition, target: GalleryStatus, db: AsyncSession) -> Gallery:
    updated, event = unwrap(
        transition(gallery.to_record()),
        lambda _: InvalidStatusTransitionError(gallery.status, target.value, "Gallery"),
    )
    if event is None:
        return gallery

    gallery.apply_record(updated)
    await db.commit()
    await db.refresh(gallery)
    logger.info("%s: gallery=%s tenant=%s", event.event_name, gallery.id, gallery.tenant_id)
    return gallery


async def publish_gallery(gallery_id: str, tenant_id: str, db: AsyncSession) -> Gallery:
    gallery = await get_gallery(gallery_id, tenant_id, db)
    return await _apply_status_transition(gallery, transitions.publish_gallery, GalleryStatus.published, db)


async def archive_gallery(gallery_id: str, tenant_id: str, db: AsyncSession) -> Gallery:
    gallery = await get_gallery(gallery_id, tenant_id, db)
    return await _apply_status_transition(gallery, transitions.archive_gallery, GalleryStatus.archived, db)


async def get_accessible_gallery(code: str, db: AsyncSession) -> Gallery | None:
    """Published, unexpired gallery for a client-entered code, or None."""
    parsed = GalleryCode.create(code)
    if not parsed.success:
        return None

    result = await db.execute(select(Gallery).where(Gallery.code == parsed.value.value))
    gallery = result.scalars().first()
    if gallery is None or not gallery.to_record().is_accessible(utcnow()):
        return None
    return gallery


def public_url(key: str) -> str:
    return f"{settings.storage_public_url.rstrip('/')}/{key}"


async def get_public_gallery(code: str, db: AsyncSession) -> PublicGalleryResponse:
    """
    Client-facing view of a gallery, photos in display order.

    Drafts, archived and expired galleries are reported as not found.
    """
    gallery = await get_accessible_gallery(code, db)
    if gallery is None:
        raise GalleryNotFoundError(code)

    result = await db.execute(
        select(Photo).where(Photo.gallery_id == gallery.id).order_by(Photo.sort_order.asc(), Photo.uploaded_at.asc())
    )
    photos = result.scalars().all()

    return PublicGalleryResponse(
        gallery_id=gallery.id,
        gallery_code=gallery.code,
        title=gallery.title,
        description=gallery.description,
        status=GalleryStatus(gallery.status),
        photo_count=gallery.photo_count,
        session_price=gallery.session_price,
        photos=[
            PublicPhoto(
                id=photo.id,
                filename=photo.filename,
                width=photo.width,
                height=photo.height,
                thumbnail=public_url(photo.thumbnail_key),
                fullsize=public_url(photo.web_key),
            )
            for photo in photos
        ],
    )
