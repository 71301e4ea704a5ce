"""
Auth Schemas

Sign-up and login payloads.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(..., min_length=1, max_length=200, description="Owner's display name")
    email: EmailStr = Field(..., description="Owner's email address")
    password: str = Field(..., min_length=8, max_length=128, description="Password (min 8 characters)")
    studio_name: str = Field(..., alias="studioName", min_length=1, max_length=200)


class SignupResponse(BaseModel):
    """Identical whether or not the email was already registered."""

    success: bool = True
    message: str = "Account created successfully"
