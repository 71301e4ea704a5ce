"""
Team Invitation Model

An invitation belongs to a pending User (no password yet). Like password
reset tokens, only the sha256 hash of the emailed token is stored.
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import Column, DateTime, ForeignKey, String
from sqlalchemy.orm import relationship

from app.database import Base
from app.domain.entities import as_utc
from app.models.tenant import new_id, utc_now

INVITATION_EXPIRE_DAYS = 7


class TeamInvitation(Base):
    __tablename__ = "team_invitations"

    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    invited_by = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    email = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False)
    token_hash = Column(String(64), unique=True, nullable=False, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    user = relationship("User", back_populates="invitations", foreign_keys=[user_id])

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > as_utc(self.expires_at)

    @staticmethod
    def get_expiry_time(days: int = INVITATION_EXPIRE_DAYS) -> datetime:
        return datetime.now(timezone.utc) + timedelta(days=days)
