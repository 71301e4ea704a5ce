"""
Order Schemas

Public order placement and status lookup (camelCase, unauthenticated) plus
the dashboard order views.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from app.constants.tiers import MAX_ORDER_ITEMS
from app.domain.entities import OrderStatus


class ShippingAddress(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    street: str = Field(..., max_length=500)
    city: str = Field(..., max_length=100)
    postal_code: str = Field(..., alias="postalCode", max_length=20)
    country: str = Field(..., max_length=100)


class OrderItemCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: str = Field(..., alias="productId")
    photo_id: str | None = Field(None, alias="photoId")
    quantity: int = Field(1, gt=0)


class OrderCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gallery_id: str = Field(..., alias="galleryId")
    customer_email: EmailStr = Field(..., alias="customerEmail")
    customer_name: str = Field(..., alias="customerName", min_length=1, max_length=200)
    customer_phone: str | None = Field(None, alias="customerPhone", max_length=50)
    shipping_address: ShippingAddress | None = Field(None, alias="shippingAddress")
    items: list[OrderItemCreate] = Field(..., min_length=1, max_length=MAX_ORDER_ITEMS)
    notes: str | None = Field(None, max_length=1000)


class OrderPlacedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId")
    order_number: str = Field(..., alias="orderNumber")
    access_token: str = Field(..., alias="accessToken")
    total: int
    currency: str
    status: OrderStatus
    created_at: datetime = Field(..., alias="createdAt")


class OrderStatusItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    quantity: int
    unit_price: int = Field(..., alias="unitPrice")


class OrderStatusResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    order_number: str = Field(..., alias="orderNumber")
    status: OrderStatus
    total: int
    currency: str
    customer_name: str = Field(..., alias="customerName")
    created_at: datetime = Field(..., alias="createdAt")
    paid_at: datetime | None = Field(None, alias="paidAt")
    shipped_at: datetime | None = Field(None, alias="shippedAt")
    delivered_at: datetime | None = Field(None, alias="deliveredAt")
    items: list[OrderStatusItem] = Field(default_factory=list)


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    photo_id: str | None = None
    quantity: int
    unit_price: int
    total_price: int


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    order_number: str
    gallery_id: str | None = None
    customer_email: str
    customer_name: str
    customer_phone: str | None = None
    subtotal: int
    discount: int
    tax: int
    total: int
    currency: str
    status: OrderStatus
    paid_at: datetime | None = None
    shipped_at: datetime | None = None
    delivered_at: datetime | None = None
    created_at: datetime
    items: list[OrderItemResponse] = Field(default_factory=list)


class OrderStatusUpdate(BaseModel):
    status: OrderStatus

