"""
Tests for photo upload, deletion and client favorites
"""

from unittest.mock import AsyncMock

import pytest
from sqlalchemy import func, select

from app.domain.entities import GalleryStatus
from app.exceptions import GalleryNotFoundError, MediaDecodeError, PhotoNotFoundError, StorageError
from app.models.gallery import Favorite, Photo
from app.services import photo_service
from app.services.media_service import ImageProcessor
from conftest import InMemoryStorage, jpeg_bytes, make_gallery, make_photo, make_tenant

SESSION_KEY = "browser-session-0001"


class TestUploadPhoto:
    @pytest.mark.asyncio
    async def test_upload_registers_photo_and_counts(self, db, processor, storage):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant, status=GalleryStatus.draft)

        first = await photo_service.upload_photo(gallery.id, tenant.id, "IMG 1.jpg", jpeg_bytes(), db, processor)
        second = await photo_service.upload_photo(gallery.id, tenant.id, "IMG_2.jpg", jpeg_bytes(), db, processor)

        assert (first.sort_order, second.sort_order) == (0, 1)
        assert first.filename == "IMG_1.jpg"
        assert first.web_key in storage.objects
        await db.refresh(gallery)
        assert gallery.photo_count == 2

    @pytest.mark.asyncio
    async def test_sort_order_appends_after_gaps(self, db, processor):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        await make_photo(db, gallery, sort_order=7)

        photo = await photo_service.upload_photo(gallery.id, tenant.id, "next.jpg", jpeg_bytes(), db, processor)
        assert photo.sort_order == 8

    @pytest.mark.asyncio
    async def test_undecodable_upload_writes_nothing(self, db, processor, storage):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)

        with pytest.raises(MediaDecodeError):
            await photo_service.upload_photo(gallery.id, tenant.id, "x.jpg", b"not an image", db, processor)

        assert storage.objects == {}
        assert (await db.execute(select(func.count(Photo.id)))).scalar() == 0

    @pytest.mark.asyncio
    async def test_storage_failure_writes_nothing(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        processor = ImageProcessor(storage=InMemoryStorage(fail_on="/original/"))

        with pytest.raises(StorageError):
            await photo_service.upload_photo(gallery.id, tenant.id, "x.jpg", jpeg_bytes(), db, processor)

        await db.refresh(gallery)
        assert gallery.photo_count == 0

    @pytest.mark.asyncio
    async def test_failed_commit_removes_stored_variants(self, db, processor, storage, monkeypatch):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        gallery_id, tenant_id = gallery.id, tenant.id
        monkeypatch.setattr(db, "commit", AsyncMock(side_effect=RuntimeError("database went away")))

        with pytest.raises(RuntimeError, match="database went away"):
            await photo_service.upload_photo(gallery_id, tenant_id, "x.jpg", jpeg_bytes(), db, processor)

        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_other_tenant_cannot_upload(self, db, processor):
        owner = await make_tenant(db)
        other = await make_tenant(db, slug="other-studio")
        gallery = await make_gallery(db, owner)

        with pytest.raises(GalleryNotFoundError):
            await photo_service.upload_photo(gallery.id, other.id, "x.jpg", jpeg_bytes(), db, processor)


class TestDeletePhoto:
    @pytest.mark.asyncio
    async def test_delete_decrements_and_clears_cover(self, db, processor, storage):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        photo = await photo_service.upload_photo(gallery.id, tenant.id, "a.jpg", jpeg_bytes(), db, processor)
        gallery.cover_photo_id = photo.id
        await db.commit()

        await photo_service.delete_photo(gallery.id, tenant.id, photo.id, db, processor)

        await db.refresh(gallery)
        assert gallery.photo_count == 0
        assert gallery.cover_photo_id is None
        assert storage.objects == {}

    @pytest.mark.asyncio
    async def test_same_filename_stem_keeps_other_photo_objects(self, db, processor, storage):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        first = await photo_service.upload_photo(gallery.id, tenant.id, "IMG_1.jpg", jpeg_bytes(), db, processor)
        second = await photo_service.upload_photo(
            gallery.id, tenant.id, "IMG_1.png", jpeg_bytes(image_format="PNG"), db, processor
        )
        assert first.web_key != second.web_key

        await photo_service.delete_photo(gallery.id, tenant.id, first.id, db, processor)

        for key in (second.original_key, second.web_key, second.thumbnail_key):
            assert key in storage.objects

    @pytest.mark.asyncio
    async def test_delete_unknown_photo(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        with pytest.raises(PhotoNotFoundError):
            await photo_service.delete_photo(gallery.id, tenant.id, "missing", db)


class TestFavorites:
    @pytest.mark.asyncio
    async def test_add_is_idempotent(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        photo = await make_photo(db, gallery)

        assert await photo_service.add_favorite("MYSTAB12", photo.id, SESSION_KEY, db) == [photo.id]
        assert await photo_service.add_favorite("MYSTAB12", photo.id, SESSION_KEY, db) == [photo.id]
        assert await photo_service.list_favorites("MYSTAB12", SESSION_KEY, db) == [photo.id]

    @pytest.mark.asyncio
    async def test_sessions_are_isolated(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        photo = await make_photo(db, gallery)

        await photo_service.add_favorite("MYSTAB12", photo.id, SESSION_KEY, db)
        assert await photo_service.list_favorites("MYSTAB12", "another-session-key", db) == []

    @pytest.mark.asyncio
    async def test_remove(self, db):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        first = await make_photo(db, gallery, filename="a.jpg")
        second = await make_photo(db, gallery, sort_order=1, filename="b.jpg")

        await photo_service.add_favorite("MYSTAB12", first.id, SESSION_KEY, db)
        await photo_service.add_favorite("MYSTAB12", second.id, SESSION_KEY, db)
        assert await photo_service.remove_favorite("MYSTAB12", first.id, SESSION_KEY, db) == [second.id]
        assert await photo_service.remove_favorite("MYSTAB12", first.id, SESSION_KEY, db) == [second.id]

    @pytest.mark.asyncio
    async def test_concurrent_duplicate_is_harmless(self, db, monkeypatch):
        tenant = await make_tenant(db)
        gallery = await make_gallery(db, tenant)
        photo = await make_photo(db, gallery)
        photo_id = photo.id
        await photo_service.add_favorite("MYSTAB12", photo_id, SESSION_KEY, db)

        # the existence check misses a row another request just inserted
        monkeypatch.setattr(photo_service, "is_favorite", AsyncMock(return_value=False))

        assert await photo_service.add_favorite("MYSTAB12", photo_id, SESSION_KEY, db) == [photo_id]
        assert (await db.execute(select(func.count(Favorite.id)))).scalar() == 1

    @pytest.mark.asyncio
    async def test_photo_must_belong_to_gallery(self, db):
        tenant = await make_tenant(db)
        await make_gallery(db, tenant)
        other = await make_gallery(db, tenant, code="MYST0002")
        photo = await make_photo(db, other)

        with pytest.raises(PhotoNotFoundError):
            await photo_service.add_favorite("MYSTAB12", photo.id, SESSION_KEY, db)

    @pytest.mark.asyncio
    async def test_unpublished_gallery(self, db):
        tenant = await make_tenant(db)
        await make_gallery(db, tenant, status=GalleryStatus.draft)
        with pytest.raises(GalleryNotFoundError):
            await photo_service.list_favorites("MYSTAB12", SESSION_KEY, db)
