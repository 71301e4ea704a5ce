"""
Team Schemas

Invitations and the member list. Owners are never invited; every studio
has exactly the owner who signed it up.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.constants.roles import DEFAULT_ROLE


class InvitationCreate(BaseModel):
    email: EmailStr
    role: str = Field(DEFAULT_ROLE.value, pattern="^(admin|editor|viewer)$")


class InvitationResponse(BaseModel):
    success: bool = True
    email: str
    role: str
    expires_in_days: int


class MemberResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str | None = None
    role: str
    status: str = Field(..., description="active, or pending until the invitation is accepted")
    joined_at: datetime


class AcceptInvitationRequest(BaseModel):
    token: str = Field(..., min_length=16, max_length=256)
    password: str = Field(..., min_length=8, max_length=128)
    name: str = Field(..., min_length=2, max_length=200)


class AcceptInvitationResponse(BaseModel):
    success: bool = True
    message: str = "Invitation accepted. You can now sign in."
    tenant_slug: str | None = None
