"""
Password Reset Model

Stores the sha256 hash of each reset token, never the token itself.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.database import Base
from app.domain.entities import as_utc
from app.models.tenant import new_id, utc_now


class PasswordResetToken(Base):
    """Model for password reset tokens"""

    __tablename__ = "password_reset_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    user = relationship("User", back_populates="password_reset_tokens")

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > as_utc(self.expires_at)

    def is_valid(self) -> bool:
        """Check if token is valid (not expired and not used)"""
        return not self.used and not self.is_expired()

    @staticmethod
    def get_expiry_time(hours: int = 1) -> datetime:
        return datetime.now(timezone.utc) + timedelta(hours=hours)
