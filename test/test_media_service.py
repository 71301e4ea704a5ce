"""
Tests for image processing and object storage
"""

import io
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError
from PIL import Image

from app.exceptions import MediaDecodeError, StorageError, ValidationError
from app.services.media_service import ImageProcessor, ObjectStorage, sanitize_filename, variant_keys
from conftest import InMemoryStorage, jpeg_bytes


class TestFilenames:
    @pytest.mark.parametrize(
        "raw,clean",
        [
            ("IMG_0001.jpg", "IMG_0001.jpg"),
            ("../../etc/passwd", "passwd"),
            ("C:\\Users\\me\\photo one.png", "photo_one.png"),
            ("..hidden...jpg", "hidden.jpg"),
            ("", "photo"),
        ],
    )
    def test_sanitize_filename(self, raw, clean):
        assert sanitize_filename(raw) == clean

    def test_variant_keys(self):
        assert variant_keys("MYSTAB12", "p1", "IMG 0001.jpg") == {
            "original": "galleries/MYSTAB12/original/p1/IMG_0001.jpg",
            "web": "galleries/MYSTAB12/web/2048/p1.webp",
            "thumbnail": "galleries/MYSTAB12/web/800/p1.webp",
        }

    def test_same_stem_gets_distinct_keys(self):
        jpg = variant_keys("MYSTAB12", "p1", "IMG_1.jpg")
        png = variant_keys("MYSTAB12", "p2", "IMG_1.png")
        assert set(jpg.values()).isdisjoint(png.values())


class TestImageProcessor:
    def test_stores_original_and_two_variants(self, storage):
        data = jpeg_bytes(3000, 2000)
        result = ImageProcessor(storage=storage).process("MYSTAB12", "IMG_0001.jpg", data, photo_id="p1")

        assert (result.width, result.height) == (3000, 2000)
        assert result.mime_type == "image/jpeg"
        assert result.size_bytes == len(data)
        assert storage.objects[result.original.key] == (data, "image/jpeg")
        assert result.thumbnail.url == "https://cdn.test/galleries/galleries/MYSTAB12/web/800/p1.webp"

        with Image.open(io.BytesIO(storage.objects[result.web.key][0])) as web:
            assert web.format == "WEBP"
            assert max(web.size) == 2048
        with Image.open(io.BytesIO(storage.objects[result.thumbnail.key][0])) as thumb:
            assert max(thumb.size) == 800

    def test_small_images_are_not_enlarged(self, storage):
        result = ImageProcessor(storage=storage).process("MYSTAB12", "small.png", jpeg_bytes(300, 200, image_format="PNG"))
        with Image.open(io.BytesIO(storage.objects[result.web.key][0])) as web:
            assert web.size == (300, 200)
        assert result.mime_type == "image/png"

    def test_rejects_non_image(self, storage):
        with pytest.raises(MediaDecodeError):
            ImageProcessor(storage=storage).process("MYSTAB12", "notes.jpg", b"definitely not an image")
        assert storage.objects == {}

    def test_rejects_oversized_file(self, storage):
        with pytest.raises(ValidationError):
            ImageProcessor(storage=storage, max_file_size=10).process("MYSTAB12", "a.jpg", jpeg_bytes())

    def test_rejects_unsafe_gallery_code(self, storage):
        with pytest.raises(ValidationError):
            ImageProcessor(storage=storage).process("../MYST", "a.jpg", jpeg_bytes())

    def test_failed_upload_removes_stored_variants(self):
        storage = InMemoryStorage(fail_on="/web/800/")
        with pytest.raises(StorageError):
            ImageProcessor(storage=storage).process("MYSTAB12", "IMG_0001.jpg", jpeg_bytes(), photo_id="p1")

        assert storage.objects == {}
        assert storage.deleted == [
            "galleries/MYSTAB12/original/p1/IMG_0001.jpg",
            "galleries/MYSTAB12/web/2048/p1.webp",
        ]

    def test_unsafe_photo_id_is_rejected(self, storage):
        with pytest.raises(ValidationError):
            ImageProcessor(storage=storage).process("MYSTAB12", "a.jpg", jpeg_bytes(), photo_id="../p1")
        assert storage.objects == {}


class TestObjectStorage:
    def test_put_wraps_client_errors(self):
        client = MagicMock()
        client.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        storage = ObjectStorage(client=client, bucket="b", public_url="https://cdn.test/")

        with pytest.raises(StorageError) as exc_info:
            storage.put("k", b"x", "image/jpeg")
        assert exc_info.value.details == {"key": "k"}

    def test_put_returns_public_url(self):
        client = MagicMock()
        storage = ObjectStorage(client=client, bucket="b", public_url="https://cdn.test/")

        assert storage.put("galleries/A/x.jpg", b"x", "image/jpeg") == "https://cdn.test/galleries/A/x.jpg"
        client.put_object.assert_called_once_with(
            Bucket="b", Key="galleries/A/x.jpg", Body=b"x", ContentType="image/jpeg"
        )
