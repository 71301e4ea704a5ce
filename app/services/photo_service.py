"""
Photo Service

Uploads into a gallery, deletion, and per-session favorites on the public
gallery page.

An upload stores its image variants before any row is written, so a
storage or decode failure leaves the database untouched. The photo row and
the gallery's photo counter are committed together.
"""

import asyncio
import logging

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.domain import transitions
from app.domain.result import unwrap
from app.domain.sorting import next_sort_order
from app.exceptions import GalleryNotFoundError, PhotoNotFoundError, StorageError, ValidationError
from app.models.gallery import Favorite, Gallery, Photo
from app.models.tenant import new_id
from app.services.gallery_service import get_accessible_gallery, get_gallery
from app.services.media_service import ImageProcessor, sanitize_filename

logger = logging.getLogger(__name__)


async def _next_sort_order(gallery_id: str, db: AsyncSession) -> int:
    result = await db.execute(select(func.max(Photo.sort_order)).where(Photo.gallery_id == gallery_id))
    return next_sort_order(result.scalar())


async def upload_photo(
    gallery_id: str,
    tenant_id: str,
    filename: str,
    data: bytes,
    db: AsyncSession,
    processor: ImageProcessor,
) -> Photo:
    """
    Process, store and register one photo.

    Raises:
        GalleryNotFoundError: gallery missing or owned by another tenant
        MediaDecodeError: data is not a readable image
        StorageError: object storage rejected an upload
    """
    gallery = await get_gallery(gallery_id, tenant_id, db)
    if not data:
        raise ValidationError("Uploaded file is empty", field="file")

    photo_id = new_id()
    processed = await asyncio.to_thread(processor.process, gallery.code, filename, data, photo_id)

    photo = Photo(
        id=photo_id,
        gallery_id=gallery.id,
        filename=sanitize_filename(filename),
        original_key=processed.original.key,
        web_key=processed.web.key,
        thumbnail_key=processed.thumbnail.key,
        width=processed.width,
        height=processed.height,
        size_bytes=processed.size_bytes,
        mime_type=processed.mime_type,
        sort_order=await _next_sort_order(gallery.id, db),
    )
    updated, _ = unwrap(transitions.increment_photo_count(gallery.to_record()), lambda e: ValidationError(e.message))
    gallery.apply_record(updated)
    db.add(photo)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        logger.error("Photo row failed after upload; removing stored variants: gallery=%s", gallery_id)
        await asyncio.to_thread(processor.discard, processed.keys)
        raise

    await db.refresh(photo)
    logger.info("Photo uploaded: id=%s gallery=%s sort_order=%d", photo.id, gallery.id, photo.sort_order)
    return photo


async def list_photos(gallery_id: str, tenant_id: str, db: AsyncSession) -> list[Photo]:
    gallery = await get_gallery(gallery_id, tenant_id, db)
    result = await db.execute(
        select(Photo).where(Photo.gallery_id == gallery.id).order_by(Photo.sort_order.asc(), Photo.uploaded_at.asc())
    )
    return list(result.scalars().all())


async def delete_photo(
    gallery_id: str,
    tenant_id: str,
    photo_id: str,
    db: AsyncSession,
    processor: ImageProcessor | None = None,
) -> None:
    """Remove the row and decrement the counter. Remaining sort orders keep their gaps."""
    gallery = await get_gallery(gallery_id, tenant_id, db)
    result = await db.execute(select(Photo).where(Photo.id == photo_id, Photo.gallery_id == gallery.id))
    photo = result.scalars().first()
    if photo is None:
        raise PhotoNotFoundError(photo_id)

    keys = [photo.original_key, photo.web_key, photo.thumbnail_key]
    updated, _ = unwrap(transitions.decrement_photo_count(gallery.to_record()), lambda e: ValidationError(e.message))
    gallery.apply_record(updated)
    if gallery.cover_photo_id == photo.id:
        gallery.cover_photo_id = None
    await db.delete(photo)
    await db.commit()
    logger.info("Photo deleted: id=%s gallery=%s", photo_id, gallery.id)

    if processor is not None:
        try:
            await asyncio.to_thread(processor.delete_variants, keys)
        except StorageError:
            logger.warning("Stored variants left behind for deleted photo %s", photo_id)


async def _public_gallery(code: str, db: AsyncSession) -> Gallery:
    gallery = await get_accessible_gallery(code, db)
    if gallery is None:
        raise GalleryNotFoundError(code)
    return gallery


async def list_favorites(code: str, session_key: str, db: AsyncSession) -> list[str]:
    gallery = await _public_gallery(code, db)
    return await _favorite_ids(gallery.id, session_key, db)


async def _favorite_ids(gallery_id: str, session_key: str, db: AsyncSession) -> list[str]:
    result = await db.execute(
        select(Favorite.photo_id)
        .where(Favorite.gallery_id == gallery_id, Favorite.session_key == session_key)
        .order_by(Favorite.created_at)
    )
    return list(result.scalars().all())


async def _require_photo(gallery: Gallery, photo_id: str, db: AsyncSession) -> None:
    result = await db.execute(select(Photo.id).where(Photo.id == photo_id, Photo.gallery_id == gallery.id))
    if result.scalars().first() is None:
        raise PhotoNotFoundError(photo_id)


async def is_favorite(gallery_id: str, photo_id: str, session_key: str, db: AsyncSession) -> bool:
    result = await db.execute(
        select(Favorite.id).where(
            Favorite.gallery_id == gallery_id,
            Favorite.photo_id == photo_id,
            Favorite.session_key == session_key,
        )
    )
    return result.scalars().first() is not None


async def add_favorite(code: str, photo_id: str, session_key: str, db: AsyncSession) -> list[str]:
    """Mark a photo; marking it twice is harmless. Returns the session's favorites."""
    gallery = await _public_gallery(code, db)
    await _require_photo(gallery, photo_id, db)
    # a rollback expires the gallery row; keep its id
    gallery_id = gallery.id

    if not await is_favorite(gallery_id, photo_id, session_key, db):
        db.add(Favorite(gallery_id=gallery_id, photo_id=photo_id, session_key=session_key))
        try:
            await db.commit()
        except IntegrityError:
            # a concurrent identical request won
            await db.rollback()

    return await _favorite_ids(gallery_id, session_key, db)


async def remove_favorite(code: str, photo_id: str, session_key: str, db: AsyncSession) -> list[str]:
    """Unmark a photo; unmarking an unmarked photo is harmless."""
    gallery = await _public_gallery(code, db)
    await _require_photo(gallery, photo_id, db)

    await db.execute(
        delete(Favorite).where(
            Favorite.gallery_id == gallery.id,
            Favorite.photo_id == photo_id,
            Favorite.session_key == session_key,
        )
    )
    await db.commit()
    return await _favorite_ids(gallery.id, session_key, db)
