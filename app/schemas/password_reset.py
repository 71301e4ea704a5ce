"""
Password Reset Schemas

Forgot-password and reset payloads. The studio is taken from the tenant
context (subdomain or X-Tenant-Slug), never from the body.
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator


class PasswordResetRequest(BaseModel):
    email: EmailStr = Field(..., description="Address the reset link is sent to, if registered")


class PasswordResetConfirm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: str = Field(..., min_length=16, max_length=256, description="Raw token from the emailed link")
    new_password: str = Field(..., alias="newPassword", min_length=8, max_length=128)
    confirm_password: str = Field(..., alias="confirmPassword", min_length=8, max_length=128)

    @model_validator(mode="after")
    def check_confirmation(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class PasswordResetResponse(BaseModel):
    """Same body whether or not the address is registered."""

    success: bool = True
    message: str
