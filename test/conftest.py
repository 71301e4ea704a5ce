"""
Pytest configuration and fixtures for Studio Galleries tests

Each test that needs a database gets its own SQLite file. Tables are created
with a synchronous engine; the app and services talk to it through
aiosqlite with NullPool, so no connection is shared between the test's
event loop and the one TestClient runs the app on.
"""

import io
import os
from unittest.mock import MagicMock

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-studio-galleries-0123456789")
os.environ.setdefault("LOG_JSON", "false")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import NullPool  # noqa: E402

from app import models  # noqa: E402, F401
from app.auth import create_session_token, hash_password  # noqa: E402
from app.constants.roles import RoleName  # noqa: E402
from app.constants.tiers import TenantTier  # noqa: E402
from app.database import Base, get_db  # noqa: E402
from app.domain.entities import GalleryStatus  # noqa: E402
from app.exceptions import StorageError  # noqa: E402
from app.middleware.rate_limit import limiter  # noqa: E402
from app.models.gallery import Gallery, Photo  # noqa: E402
from app.models.product import Product  # noqa: E402
from app.models.tenant import Tenant  # noqa: E402
from app.models.user import User  # noqa: E402
from app.services.email_service import get_notifier  # noqa: E402
from app.services.media_service import ImageProcessor, ObjectStorage, get_image_processor  # noqa: E402
from app.services.rate_limit_service import RateLimiter  # noqa: E402

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def database_path(tmp_path):
    path = tmp_path / "studio_test.db"
    sync_engine = create_engine(f"sqlite:///{path}")
    Base.metadata.create_all(sync_engine)
    sync_engine.dispose()
    return path


@pytest.fixture
def session_factory(database_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{database_path}", poolclass=NullPool)
    return async_sessionmaker(bind=engine, class_=AsyncSession, autoflush=False, expire_on_commit=False)


@pytest.fixture
async def db(session_factory):
    """Database session for service-level tests."""
    async with session_factory() as session:
        yield session


# ============================================================================
# Record factories
# ============================================================================


async def make_tenant(db, slug="mystic-light", tier=TenantTier.STARTER, name="Mystic Light Photography", **kwargs):
    tenant = Tenant(name=name, slug=slug, tier=TenantTier(tier).value, **kwargs)
    db.add(tenant)
    await db.commit()
    await db.refresh(tenant)
    return tenant


async def make_user(db, tenant, email="owner@mysticlight.com", role=RoleName.OWNER, password=TEST_PASSWORD):
    user = User(
        tenant_id=tenant.id,
        email=email,
        name="Mia Owner",
        hashed_password=hash_password(password),
        role=RoleName(role).value,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def make_gallery(db, tenant, code="MYSTAB12", status=GalleryStatus.published, **kwargs):
    gallery = Gallery(tenant_id=tenant.id, code=code, title="Smith Wedding", status=GalleryStatus(status).value, **kwargs)
    db.add(gallery)
    await db.commit()
    await db.refresh(gallery)
    return gallery


async def make_photo(db, gallery, sort_order=0, filename="IMG_0001.jpg"):
    stem = filename.rsplit(".", 1)[0]
    photo = Photo(
        gallery_id=gallery.id,
        filename=filename,
        original_key=f"galleries/{gallery.code}/original/{filename}",
        web_key=f"galleries/{gallery.code}/web/2048/{stem}.webp",
        thumbnail_key=f"galleries/{gallery.code}/web/800/{stem}.webp",
        width=3000,
        height=2000,
        size_bytes=1024,
        mime_type="image/jpeg",
        sort_order=sort_order,
    )
    gallery.photo_count = (gallery.photo_count or 0) + 1
    db.add(photo)
    await db.commit()
    await db.refresh(photo)
    return photo


async def make_product(db, tenant, name="Print 13x18", price=1000, currency="EUR", is_active=True):
    product = Product(tenant_id=tenant.id, name=name, price=price, currency=currency, is_active=is_active)
    db.add(product)
    await db.commit()
    await db.refresh(product)
    return product


def auth_headers_for(user_id: str, tenant_id: str | None, role: str) -> dict:
    token = create_session_token(user_id, tenant_id, RoleName(role).value if role else role)
    return {"Authorization": f"Bearer {token}"}


def jpeg_bytes(width=64, height=48, color=(200, 120, 40), image_format="JPEG") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), color).save(buffer, format=image_format)
    return buffer.getvalue()


# ============================================================================
# Fakes
# ============================================================================


class InMemoryStorage(ObjectStorage):
    """ObjectStorage keeping objects in a dict; ``fail_on`` makes matching puts fail."""

    def __init__(self, fail_on: str | None = None):
        super().__init__(client=MagicMock(), bucket="test-bucket", public_url="https://cdn.test/galleries")
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.deleted: list[str] = []
        self.fail_on = fail_on

    def put(self, key: str, data: bytes, content_type: str) -> str:
        if self.fail_on and self.fail_on in key:
            raise StorageError("Failed to upload object", key=key)
        self.objects[key] = (data, content_type)
        return self.url_for(key)

    def delete(self, key: str) -> None:
        self.deleted.append(key)
        self.objects.pop(key, None)


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def processor(storage):
    return ImageProcessor(storage=storage)


@pytest.fixture
def notifier():
    return MagicMock()


# ============================================================================
# Application
# ============================================================================


@pytest.fixture
def app(session_factory, processor, notifier):
    from main import create_app

    application = create_app(session_factory=session_factory, rate_limiter=RateLimiter(redis_url=""))
    limiter.enabled = False

    async def override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_image_processor] = lambda: processor
    application.dependency_overrides[get_notifier] = lambda: notifier
    return application


@pytest.fixture
def client(app):
    return TestClient(app)
