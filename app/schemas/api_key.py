"""
API Key Schemas

Dashboard key management, plus the read-only gallery listing served to
API-key clients (camelCase, like the other public payloads).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ApiKeyCreated(BaseModel):
    api_key: str = Field(..., description="Shown once; only its hash is stored")
    message: str = "Store this key now. It cannot be shown again."


class ApiKeyStatus(BaseModel):
    has_key: bool
    has_access: bool


class ApiGallery(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    code: str
    title: str
    photo_count: int = Field(..., alias="photoCount")
    created_at: datetime = Field(..., alias="createdAt")


class ApiGalleryList(BaseModel):
    data: list[ApiGallery] = Field(default_factory=list)
