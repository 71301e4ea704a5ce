from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import relationship

from app.constants.roles import RoleName
from app.database import Base
from app.models.tenant import new_id, utc_now


# Studio team member; e-mail is unique per tenant, not globally
class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=new_id)
    tenant_id = Column(String(36), ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False, index=True)
    name = Column(String(200), nullable=True)
    # None until an invited member accepts and sets a password
    hashed_password = Column(String, nullable=True)
    role = Column(String(20), nullable=False, default=RoleName.VIEWER.value)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utc_now)

    tenant = relationship("Tenant", back_populates="users", lazy="joined")
    password_reset_tokens = relationship(
        "PasswordResetToken",
        back_populates="user",
        cascade="all, delete-orphan",
    )
    invitations = relationship(
        "TeamInvitation",
        back_populates="user",
        foreign_keys="TeamInvitation.user_id",
        cascade="all, delete-orphan",
    )

    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_user_tenant_email"),)

    @property
    def is_pending(self) -> bool:
        return self.hashed_password is None
