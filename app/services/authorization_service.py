"""
Authorization Service

Role checks for studio team members. Roles are ordered
viewer(1) < editor(2) < admin(3) < owner(4); an actor satisfies a
requirement when its rank is at least the required rank.

``authorize`` turns a session into Authorized or Denied(reason) with three
distinct reasons, which ``raise_for_denial`` maps to 401 / 412 / 403.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Callable, Union

from fastapi import Depends

from app.auth import Session, get_session
from app.constants.roles import ROLE_HIERARCHY, RoleName, role_rank
from app.exceptions import AuthenticationError, AuthorizationError, TenantMissingError

logger = logging.getLogger(__name__)


class DenialReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    TENANT_MISSING = "tenant_missing"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class Authorized:
    session: Session


@dataclass(frozen=True)
class Denied:
    reason: DenialReason
    required_role: str | None = None


AuthorizationResult = Union[Authorized, Denied]


def has_role(actor_role: str | None, required_role: str) -> bool:
    """True iff ``actor_role`` ranks at or above ``required_role``."""
    return role_rank(actor_role) >= ROLE_HIERARCHY[RoleName(required_role)]


def can_view(role: str | None) -> bool:
    return has_role(role, RoleName.VIEWER)


def can_edit(role: str | None) -> bool:
    return has_role(role, RoleName.EDITOR)


def can_admin(role: str | None) -> bool:
    return has_role(role, RoleName.ADMIN)


def authorize(session: Session | None, required_role: str = RoleName.VIEWER) -> AuthorizationResult:
    if session is None:
        return Denied(DenialReason.UNAUTHENTICATED)
    if not session.tenant_id:
        return Denied(DenialReason.TENANT_MISSING)
    if not has_role(session.role, required_role):
        return Denied(DenialReason.FORBIDDEN, required_role=RoleName(required_role).value)
    return Authorized(session)


def raise_for_denial(denied: Denied) -> None:
    if denied.reason == DenialReason.UNAUTHENTICATED:
        raise AuthenticationError()
    if denied.reason == DenialReason.TENANT_MISSING:
        raise TenantMissingError()
    raise AuthorizationError(
        f"Role '{denied.required_role}' or higher is required",
        required_role=denied.required_role,
    )


def require_role(required_role: str = RoleName.VIEWER) -> Callable[..., Session]:
    """Dependency factory: the current tenant-bound session with at least ``required_role``."""

    async def _require_role(session: Session | None = Depends(get_session)) -> Session:
        result = authorize(session, required_role)
        if isinstance(result, Denied):
            logger.info(
                "Access denied: reason=%s required=%s user=%s",
                result.reason.value,
                RoleName(required_role).value,
                session.user_id if session else None,
            )
            raise_for_denial(result)
        return result.session

    return _require_role
