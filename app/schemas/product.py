from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from app.models.product import ProductType


class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    type: ProductType = ProductType.print
    price: int = Field(..., gt=0, description="Price in minor currency units (cents)")


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str | None = None
    type: ProductType
    price: int
    currency: str
    is_active: bool
    created_at: datetime


class ProductStatusUpdate(BaseModel):
    is_active: bool
