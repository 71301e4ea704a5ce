"""
Auth Routes

Studio sign-up, token login, password reset and accepting team invitations.
Sign-up and forgot-password answer identically whether or not the address
is already registered.
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import create_session_token
from app.config import settings
from app.database import get_db
from app.schemas.auth import SignupRequest, SignupResponse
from app.schemas.password_reset import PasswordResetConfirm, PasswordResetRequest, PasswordResetResponse
from app.schemas.team import AcceptInvitationRequest, AcceptInvitationResponse
from app.schemas.token import Token
from app.services import invitation_service, password_reset_service, tenant_service
from app.services.email_service import Notifier, get_notifier
from app.services.rate_limit_service import client_address, enforce, rate_limit

logger = logging.getLogger(__name__)

router = APIRouter()

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset link has been sent."


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("signup"))],
)
async def signup(
    payload: SignupRequest,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    await tenant_service.signup(
        name=payload.name,
        email=payload.email,
        password=payload.password,
        studio_name=payload.studio_name,
        db=db,
        notifier=notifier,
    )
    return SignupResponse()


@router.post("/token", response_model=Token)
async def login_for_access_token(
    request: Request,
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    """
    Exchange email (``username``) and password for a bearer token.

    On a studio subdomain the lookup is limited to that studio.
    """
    email = form_data.username.strip().lower()
    await enforce(f"{client_address(request)}:{email}", "login", getattr(request.app.state, "rate_limiter", None))

    user = await tenant_service.authenticate_user(
        email, form_data.password, db, tenant_id=getattr(request.state, "tenant_id", None)
    )
    access_token = create_session_token(user.id, user.tenant_id, user.role, user.email)
    logger.info("Access token issued: user=%s tenant=%s", user.id, user.tenant_id)

    return Token(
        access_token=access_token,
        expires_in=settings.access_token_expire_minutes * 60,
        tenant_slug=user.tenant.slug if user.tenant else None,
    )


@router.post(
    "/forgot-password",
    response_model=PasswordResetResponse,
    dependencies=[Depends(rate_limit("forgot_password"))],
)
async def forgot_password(
    payload: PasswordResetRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    await password_reset_service.request_reset(
        payload.email, getattr(request.state, "tenant_id", None), db, notifier=notifier
    )
    return PasswordResetResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/reset-password", response_model=PasswordResetResponse)
async def reset_password(payload: PasswordResetConfirm, db: AsyncSession = Depends(get_db)):
    await password_reset_service.reset_password(payload.token, payload.new_password, db)
    return PasswordResetResponse(message="Password has been reset successfully")


@router.post("/accept-invitation", response_model=AcceptInvitationResponse)
async def accept_invitation(payload: AcceptInvitationRequest, db: AsyncSession = Depends(get_db)):
    user = await invitation_service.accept_invitation(payload.token, payload.password, payload.name, db)
    return AcceptInvitationResponse(tenant_slug=user.tenant.slug if user.tenant else None)
