"""
Password Reset Service

Handles password reset token generation, validation, and password updates.

Only the sha256 hash of a token is stored; the raw token exists in the
emailed link alone. Requests for unknown addresses behave exactly like
requests for known ones so the endpoint cannot be used to enumerate users.
"""

import hashlib
import logging
import secrets

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.auth import hash_password
from app.config import settings
from app.exceptions import ValidationError
from app.models.password_reset import PasswordResetToken
from app.models.user import User
from app.services.email_service import Notifier

logger = logging.getLogger(__name__)


class PasswordResetService:
    """Service for handling password reset operations"""

    @staticmethod
    def generate_reset_token() -> str:
        """Generate a secure random token"""
        return secrets.token_hex(32)

    @staticmethod
    def hash_token(token: str) -> str:
        return hashlib.sha256(token.encode("utf-8")).hexdigest()

    @staticmethod
    async def request_reset(
        email: str,
        tenant_id: str | None,
        db: AsyncSession,
        notifier: Notifier | None = None,
    ) -> str | None:
        """
        Create a reset token for the tenant's user with ``email``, if any.

        Returns the raw token, or None when nothing was created. The route
        responds identically in both cases and never includes the token.
        """
        if not tenant_id:
            logger.info("Password reset requested without tenant context; ignoring")
            return None

        result = await db.execute(select(User).where(User.tenant_id == tenant_id, User.email == email.lower()))
        user = result.scalars().first()
        if not user or user.is_pending:
            logger.info("Password reset requested for unknown address in tenant=%s", tenant_id)
            return None

        # Invalidate any existing unused tokens for this user
        existing_tokens_result = await db.execute(
            select(PasswordResetToken).where(PasswordResetToken.user_id == user.id, PasswordResetToken.used.is_(False))
        )
        for token in existing_tokens_result.scalars().all():
            token.used = True

        raw_token = PasswordResetService.generate_reset_token()
        db.add(
            PasswordResetToken(
                user_id=user.id,
                token_hash=PasswordResetService.hash_token(raw_token),
                expires_at=PasswordResetToken.get_expiry_time(hours=settings.password_reset_expire_hours),
            )
        )
        await db.commit()
        logger.info("Password reset token issued: user=%s tenant=%s", user.id, tenant_id)

        if notifier is not None:
            notifier.notify(
                "send_password_reset_email",
                to_email=user.email,
                user_name=user.name or user.email,
                reset_token=raw_token,
            )
        return raw_token

    @staticmethod
    async def validate_reset_token(token: str, db: AsyncSession) -> PasswordResetToken:
        """
        Look up a reset token by its hash.

        Raises:
            ValidationError: If token is unknown, already used or expired
        """
        result = await db.execute(
            select(PasswordResetToken).where(PasswordResetToken.token_hash == PasswordResetService.hash_token(token))
        )
        reset_token = result.scalars().first()

        if not reset_token:
            raise ValidationError("Invalid password reset token", field="token")
        if reset_token.used:
            raise ValidationError("This password reset token has already been used", field="token")
        if reset_token.is_expired():
            raise ValidationError("Password reset token has expired. Please request a new one.", field="token")

        return reset_token

    @staticmethod
    async def reset_password(token: str, new_password: str, db: AsyncSession) -> User:
        """Set a new password using a valid token and burn the token."""
        reset_token = await PasswordResetService.validate_reset_token(token, db)

        result = await db.execute(select(User).where(User.id == reset_token.user_id))
        user = result.scalars().first()
        if not user:
            raise ValidationError("Invalid password reset token", field="token")

        user.hashed_password = hash_password(new_password)
        reset_token.used = True
        await db.commit()

        logger.info("Password reset completed: user=%s", user.id)
        return user


request_reset = PasswordResetService.request_reset
reset_password = PasswordResetService.reset_password
