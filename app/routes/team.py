"""
Team Routes

Admins invite members by email; everyone on the team can see who is in
the studio and whose invitation is still pending.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.models.invitation import INVITATION_EXPIRE_DAYS
from app.schemas.team import InvitationCreate, InvitationResponse, MemberResponse
from app.services import invitation_service
from app.services.authorization_service import require_role
from app.services.email_service import Notifier, get_notifier
from app.services.feature_service import FeatureResolver, get_feature_resolver

router = APIRouter()


@router.post("/team/invitations", response_model=InvitationResponse, status_code=status.HTTP_201_CREATED)
async def invite_member(
    payload: InvitationCreate,
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    await invitation_service.invite_member(
        session, payload.email, db, role=payload.role, notifier=notifier, resolver=resolver
    )
    return InvitationResponse(email=payload.email.lower(), role=payload.role, expires_in_days=INVITATION_EXPIRE_DAYS)


@router.get("/team/members", response_model=list[MemberResponse])
async def list_members(
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await invitation_service.list_members(session.tenant_id, db)
