"""
Gallery, Photo and Favorite models.

Gallery codes are unique across all tenants; the constraint backs the
collision retry in gallery_service.create_gallery.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from app.database import Base
from app.domain.entities import GalleryRecord, GalleryStatus, GalleryVisibility, PhotoRecord
from app.models.tenant import new_id, utc_now


class Gallery(Base):
    __tablename__ = "galleries"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(String(12), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default=GalleryStatus.draft.value)
    visibility = Column(String(20), nullable=False, default=GalleryVisibility.code_protected.value)
    cover_photo_id = Column(String(36), nullable=True)
    photo_count = Column(Integer, nullable=False, default=0)
    session_price = Column(Integer, nullable=True)  # minor units
    expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now)

    photos = relationship(
        "Photo",
        back_populates="gallery",
        cascade="all, delete-orphan",
        order_by="Photo.sort_order",
    )

    __table_args__ = (Index("idx_gallery_tenant_status", "tenant_id", "status"),)

    @classmethod
    def from_record(cls, record: GalleryRecord) -> "Gallery":
        return cls(
            id=record.id,
            tenant_id=record.tenant_id,
            code=record.code,
            title=record.title,
            description=record.description,
            status=record.status.value,
            visibility=record.visibility.value,
            cover_photo_id=record.cover_photo_id,
            photo_count=record.photo_count,
            session_price=record.session_price,
            expires_at=record.expires_at,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )

    def to_record(self) -> GalleryRecord:
        return GalleryRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            code=self.code,
            title=self.title,
            description=self.description,
            status=GalleryStatus(self.status),
            visibility=GalleryVisibility(self.visibility),
            cover_photo_id=self.cover_photo_id,
            photo_count=self.photo_count or 0,
            session_price=self.session_price,
            expires_at=self.expires_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    def apply_record(self, record: GalleryRecord) -> None:
        """Copy the fields a transition may change back onto the row."""
        self.status = record.status.value
        self.photo_count = record.photo_count
        self.updated_at = record.updated_at


class Photo(Base):
    __tablename__ = "photos"

    id = Column(String(36), primary_key=True, default=new_id)
    gallery_id = Column(String(36), ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False)
    filename = Column(String(255), nullable=False)
    original_key = Column(String(500), nullable=False)
    web_key = Column(String(500), nullable=False)
    thumbnail_key = Column(String(500), nullable=False)
    width = Column(Integer, nullable=False)
    height = Column(Integer, nullable=False)
    size_bytes = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    uploaded_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    gallery = relationship("Gallery", back_populates="photos")

    __table_args__ = (Index("idx_photo_gallery_sort", "gallery_id", "sort_order"),)

    def to_record(self, is_favorite: bool = False) -> PhotoRecord:
        return PhotoRecord(
            id=self.id,
            gallery_id=self.gallery_id,
            filename=self.filename,
            original_key=self.original_key,
            web_key=self.web_key,
            thumbnail_key=self.thumbnail_key,
            width=self.width,
            height=self.height,
            size_bytes=self.size_bytes,
            mime_type=self.mime_type,
            sort_order=self.sort_order,
            is_favorite=is_favorite,
            uploaded_at=self.uploaded_at,
        )


class Favorite(Base):
    """A photo marked by one client browser session."""

    __tablename__ = "favorites"

    id = Column(String(36), primary_key=True, default=new_id)
    gallery_id = Column(String(36), ForeignKey("galleries.id", ondelete="CASCADE"), nullable=False)
    photo_id = Column(String(36), ForeignKey("photos.id", ondelete="CASCADE"), nullable=False)
    session_key = Column(String(100), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    __table_args__ = (
        UniqueConstraint("gallery_id", "photo_id", "session_key", name="uq_favorite_session_photo"),
        Index("idx_favorite_gallery_session", "gallery_id", "session_key"),
    )
