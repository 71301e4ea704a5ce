"""
Media Service

Image processing (Pillow) and S3-compatible object storage (boto3) for
gallery photos.

Each upload is stored three times under ``galleries/{CODE}/``, keyed by the
photo id so uploads sharing a filename never overwrite each other:
  original/{photo_id}/{filename}   untouched bytes
  web/2048/{photo_id}.webp         long edge max 2048px, WebP q85
  web/800/{photo_id}.webp          long edge max 800px, WebP q80 (thumbnail)
"""

import io
import logging
import re
import uuid
from dataclasses import dataclass
from pathlib import PurePosixPath

import boto3
from botocore.client import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.exceptions import MediaDecodeError, StorageError, ValidationError

logger = logging.getLogger(__name__)

SAFE_CODE_PATTERN = re.compile(r"^[A-Za-z0-9_-]+$")

# name -> (max edge in px, WebP quality)
IMAGE_VARIANTS = {
    "web": (2048, 85),
    "thumbnail": (800, 80),
}

ALLOWED_FORMATS = {"JPEG": "image/jpeg", "PNG": "image/png", "WEBP": "image/webp", "TIFF": "image/tiff"}


@dataclass(frozen=True)
class StoredVariant:
    key: str
    url: str


@dataclass(frozen=True)
class ProcessedImage:
    original: StoredVariant
    web: StoredVariant
    thumbnail: StoredVariant
    width: int
    height: int
    size_bytes: int
    mime_type: str

    @property
    def keys(self) -> list[str]:
        return [self.original.key, self.web.key, self.thumbnail.key]


def sanitize_filename(filename: str) -> str:
    """Keep letters, digits, dot, dash and underscore; collapse dot runs."""
    name = PurePosixPath(filename.replace("\\", "/")).name
    name = re.sub(r"[^A-Za-z0-9._-]", "_", name)
    name = re.sub(r"\.{2,}", ".", name).lstrip(".")
    return name or "photo"


def variant_keys(gallery_code: str, photo_id: str, filename: str) -> dict[str, str]:
    """Storage keys for the three variants of one photo."""
    base = f"galleries/{gallery_code}"
    return {
        "original": f"{base}/original/{photo_id}/{sanitize_filename(filename)}",
        "web": f"{base}/web/2048/{photo_id}.webp",
        "thumbnail": f"{base}/web/800/{photo_id}.webp",
    }


class ObjectStorage:
    """
    Thin wrapper over a boto3 S3 client.

    Any client or transport failure is raised as StorageError.
    """

    def __init__(self, client=None, bucket: str | None = None, public_url: str | None = None):
        self.bucket = bucket or settings.storage_bucket
        self.public_url = (public_url or settings.storage_public_url).rstrip("/")
        self._client = client

    @property
    def client(self):
        if self._client is None:
            self._client = boto3.client(
                "s3",
                endpoint_url=settings.storage_endpoint_url,
                aws_access_key_id=settings.storage_access_key,
                aws_secret_access_key=settings.storage_secret_key,
                region_name=settings.storage_region,
                config=BotoConfig(signature_version="s3v4"),
            )
        return self._client

    def url_for(self, key: str) -> str:
        return f"{self.public_url}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> str:
        try:
            self.client.put_object(Bucket=self.bucket, Key=key, Body=data, ContentType=content_type)
        except (ClientError, BotoCoreError) as e:
            logger.error("Storage upload failed: key=%s error=%s", key, e)
            raise StorageError("Failed to upload object", key=key) from e
        logger.debug("Stored object: key=%s bytes=%d", key, len(data))
        return self.url_for(key)

    def delete(self, key: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            logger.error("Storage delete failed: key=%s error=%s", key, e)
            raise StorageError("Failed to delete object", key=key) from e


def _render_webp(img: Image.Image, max_edge: int, quality: int) -> bytes:
    variant = img.copy()
    if variant.mode not in ("RGB", "RGBA"):
        variant = variant.convert("RGBA" if "A" in variant.getbands() else "RGB")
    # thumbnail() never enlarges
    variant.thumbnail((max_edge, max_edge), Image.Resampling.LANCZOS)
    buffer = io.BytesIO()
    variant.save(buffer, format="WEBP", quality=quality)
    return buffer.getvalue()


class ImageProcessor:
    """Decode an upload, render its web variants and store all three."""

    def __init__(self, storage: ObjectStorage | None = None, max_file_size: int | None = None):
        self.storage = storage or ObjectStorage()
        self.max_file_size = max_file_size or settings.media_max_file_size

    def process(self, gallery_code: str, filename: str, data: bytes, photo_id: str | None = None) -> ProcessedImage:
        """
        Validate, transform and upload one image.

        ``photo_id`` names the stored objects; a random one is used when omitted.

        Raises:
            ValidationError: unsafe gallery code or oversized file
            MediaDecodeError: the bytes are not a supported image
            StorageError: an upload failed (already stored variants are removed)
        """
        if not SAFE_CODE_PATTERN.match(gallery_code):
            raise ValidationError("Invalid gallery code format", field="gallery_code")
        photo_id = photo_id or uuid.uuid4().hex
        if not SAFE_CODE_PATTERN.match(photo_id):
            raise ValidationError("Invalid photo id", field="photo_id")
        if len(data) > self.max_file_size:
            raise ValidationError(
                f"File size exceeds maximum allowed size of {self.max_file_size // (1024 * 1024)}MB",
                field="file",
            )

        try:
            with Image.open(io.BytesIO(data)) as img:
                img.load()
                image_format = img.format
                width, height = img.size
                rendered = {name: _render_webp(img, edge, quality) for name, (edge, quality) in IMAGE_VARIANTS.items()}
        except (UnidentifiedImageError, OSError, ValueError) as e:
            logger.info("Rejected undecodable upload: filename=%s error=%s", filename, e)
            raise MediaDecodeError(filename=filename) from e

        mime_type = ALLOWED_FORMATS.get(image_format or "")
        if mime_type is None:
            raise MediaDecodeError(f"Unsupported image format: {image_format}", filename=filename)

        keys = variant_keys(gallery_code, photo_id, filename)
        stored: list[str] = []
        try:
            original_url = self.storage.put(keys["original"], data, mime_type)
            stored.append(keys["original"])
            web_url = self.storage.put(keys["web"], rendered["web"], "image/webp")
            stored.append(keys["web"])
            thumb_url = self.storage.put(keys["thumbnail"], rendered["thumbnail"], "image/webp")
        except StorageError:
            self.discard(stored)
            raise

        logger.info("Processed image: gallery=%s file=%s size=%dx%d", gallery_code, keys["original"], width, height)
        return ProcessedImage(
            original=StoredVariant(keys["original"], original_url),
            web=StoredVariant(keys["web"], web_url),
            thumbnail=StoredVariant(keys["thumbnail"], thumb_url),
            width=width,
            height=height,
            size_bytes=len(data),
            mime_type=mime_type,
        )

    def delete_variants(self, keys: list[str]) -> None:
        for key in keys:
            self.storage.delete(key)

    def discard(self, keys: list[str]) -> None:
        """Best-effort removal; failures are logged."""
        for key in keys:
            try:
                self.storage.delete(key)
            except StorageError:
                logger.warning("Could not remove partial upload: key=%s", key)


def get_image_processor() -> ImageProcessor:
    """FastAPI dependency; tests override it with an in-memory storage."""
    return ImageProcessor()
