"""
Invitation Service

Studio admins invite team members by email. An invitation creates a
pending User without a password and emails a single-use token; accepting
it sets the password and activates the account. Pending users cannot log
in or request password resets.

Tokens are stored hashed, exactly like password reset tokens.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session, hash_password
from app.constants.roles import DEFAULT_ROLE, RoleName, is_higher_role
from app.domain.result import DomainError, as_dict, unwrap
from app.domain.value_objects import Email
from app.exceptions import AuthorizationError, DuplicateResourceError, ValidationError
from app.models.invitation import INVITATION_EXPIRE_DAYS, TeamInvitation
from app.models.user import User
from app.services.email_service import Notifier
from app.services.feature_service import FeatureResolver, require_feature
from app.services.password_reset_service import PasswordResetService
from app.services.tenant_service import require_tenant

logger = logging.getLogger(__name__)

INVITABLE_ROLES = (RoleName.ADMIN, RoleName.EDITOR, RoleName.VIEWER)


def _validation_error(error: DomainError) -> ValidationError:
    return ValidationError(error.message, field=error.field, details=as_dict(error))


@dataclass(frozen=True)
class Member:
    id: str
    email: str
    name: str | None
    role: str
    status: str
    joined_at: datetime


async def invite_member(
    inviter: Session,
    email: str,
    db: AsyncSession,
    role: str = DEFAULT_ROLE,
    notifier: Notifier | None = None,
    resolver: FeatureResolver | None = None,
) -> str:
    """
    Invite ``email`` into the inviter's studio and return the raw token.

    Re-inviting a still pending address revokes its earlier invitations.

    Raises:
        FeatureNotAvailableError: the studio's tier lacks multi_user
        AuthorizationError: role is owner or above the inviter's own
        DuplicateResourceError: the address is already an active member
    """
    role = RoleName(role)
    if role not in INVITABLE_ROLES or is_higher_role(role, inviter.role):
        raise AuthorizationError(f"Cannot invite a member with role '{role.value}'")

    tenant = await require_tenant(inviter.tenant_id, db)
    await require_feature(tenant.id, "multi_user", db, resolver)
    normalized_email = unwrap(Email.create(email), _validation_error).value

    result = await db.execute(select(User).where(User.tenant_id == tenant.id, User.email == normalized_email))
    user = result.scalars().first()
    if user is not None and not user.is_pending:
        raise DuplicateResourceError("Member", "email", normalized_email)

    if user is None:
        user = User(tenant_id=tenant.id, email=normalized_email, hashed_password=None, role=role.value)
        db.add(user)
        await db.flush()
    else:
        user.role = role.value
        now = datetime.now(timezone.utc)
        earlier = await db.execute(
            select(TeamInvitation).where(
                TeamInvitation.user_id == user.id,
                TeamInvitation.accepted_at.is_(None),
                TeamInvitation.revoked_at.is_(None),
            )
        )
        for invitation in earlier.scalars().all():
            invitation.revoked_at = now

    raw_token = PasswordResetService.generate_reset_token()
    db.add(
        TeamInvitation(
            tenant_id=tenant.id,
            user_id=user.id,
            invited_by=inviter.user_id,
            email=normalized_email,
            role=role.value,
            token_hash=PasswordResetService.hash_token(raw_token),
            expires_at=TeamInvitation.get_expiry_time(),
        )
    )
    tenant_name = tenant.name
    user_id = user.id
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise DuplicateResourceError("Member", "email", normalized_email) from e
    logger.info("Team invitation issued: tenant=%s user=%s role=%s", inviter.tenant_id, user_id, role.value)

    if notifier is not None:
        notifier.notify(
            "send_team_invitation",
            to_email=normalized_email,
            tenant_name=tenant_name,
            inviter_name=inviter.email or tenant_name,
            role=role.value,
            invitation_token=raw_token,
            expire_days=INVITATION_EXPIRE_DAYS,
        )
    return raw_token


async def accept_invitation(token: str, password: str, name: str, db: AsyncSession) -> User:
    """
    Activate the invited account with ``password`` and burn the token.

    Raises:
        ValidationError: unknown, revoked, expired or already used token
    """
    result = await db.execute(
        select(TeamInvitation).where(TeamInvitation.token_hash == PasswordResetService.hash_token(token))
    )
    invitation = result.scalars().first()

    if invitation is None or invitation.revoked_at is not None:
        raise ValidationError("Invalid invitation token", field="token")
    if invitation.accepted_at is not None:
        raise ValidationError("This invitation has already been accepted", field="token")
    if invitation.is_expired():
        raise ValidationError("Invitation has expired. Ask for a new one.", field="token")

    user = await db.get(User, invitation.user_id)
    if user is None:
        raise ValidationError("Invalid invitation token", field="token")

    user.hashed_password = hash_password(password)
    user.name = name.strip()
    invitation.accepted_at = datetime.now(timezone.utc)
    await db.commit()

    logger.info("Team invitation accepted: tenant=%s user=%s", user.tenant_id, user.id)
    return user


async def list_members(tenant_id: str, db: AsyncSession) -> list[Member]:
    """Everyone in the studio, pending invitees included, oldest first."""
    result = await db.execute(select(User).where(User.tenant_id == tenant_id).order_by(User.created_at))
    return [
        Member(
            id=user.id,
            email=user.email,
            name=user.name,
            role=user.role,
            status="pending" if user.is_pending else "active",
            joined_at=user.created_at,
        )
        for user in result.scalars().all()
    ]
