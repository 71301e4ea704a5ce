"""
Gallery Schemas

Dashboard payloads use snake_case; the public lookup by code keeps the
camelCase shape existing gallery clients consume.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.domain.entities import GalleryStatus, GalleryVisibility

SESSION_KEY_PATTERN = r"^[A-Za-z0-9_-]{16,64}$"


class GalleryCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    visibility: GalleryVisibility = GalleryVisibility.code_protected
    session_price: int | None = Field(None, ge=0, description="Minor currency units")
    expires_at: datetime | None = None


class GalleryUpdate(BaseModel):
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    visibility: GalleryVisibility | None = None
    session_price: int | None = Field(None, ge=0)
    expires_at: datetime | None = None
    cover_photo_id: str | None = None


class GalleryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    code: str
    title: str
    description: str | None = None
    status: GalleryStatus
    visibility: GalleryVisibility
    cover_photo_id: str | None = None
    photo_count: int
    session_price: int | None = None
    expires_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class PhotoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    filename: str
    original_key: str
    web_key: str
    thumbnail_key: str
    width: int
    height: int
    size_bytes: int
    mime_type: str
    sort_order: int
    uploaded_at: datetime


class PublicPhoto(BaseModel):
    id: str
    filename: str
    width: int
    height: int
    thumbnail: str
    fullsize: str


class PublicGalleryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gallery_id: str = Field(..., alias="galleryId")
    gallery_code: str = Field(..., alias="galleryCode")
    title: str
    description: str | None = None
    status: GalleryStatus
    photo_count: int = Field(..., alias="photoCount")
    session_price: int | None = Field(None, alias="sessionPrice")
    photos: list[PublicPhoto] = Field(default_factory=list)


class FavoriteToggle(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    photo_id: str = Field(..., alias="photoId")
    session_key: str = Field(..., alias="sessionKey", pattern=SESSION_KEY_PATTERN)
    action: str = Field("add", pattern="^(add|remove)$")


class FavoritesResponse(BaseModel):
    favorites: list[str] = Field(default_factory=list, description="Photo ids favorited by the session")
