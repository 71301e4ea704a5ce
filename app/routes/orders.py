"""
Order Routes

``router`` serves the studio dashboard; ``public_router`` serves clients,
who place orders without an account and follow them with the access token
returned at placement.
"""

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.domain.entities import OrderStatus
from app.exceptions import AuthenticationError
from app.schemas.order import (
    OrderCreate,
    OrderPlacedResponse,
    OrderResponse,
    OrderStatusResponse,
    OrderStatusUpdate,
)
from app.services import order_service, payment_service
from app.services.authorization_service import require_role
from app.services.email_service import Notifier, get_notifier
from app.services.feature_service import FeatureResolver, get_feature_resolver
from app.services.rate_limit_service import rate_limit

router = APIRouter()
public_router = APIRouter()


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(..., alias="accessToken", min_length=1)


class CheckoutResponse(BaseModel):
    url: str


@router.get("/orders", response_model=list[OrderResponse])
async def list_orders(
    status_filter: OrderStatus | None = Query(None, alias="status"),
    skip: int = 0,
    limit: int = 50,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.list_orders(session.tenant_id, db, status=status_filter, skip=skip, limit=min(limit, 200))


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: str,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
):
    return await order_service.get_order(order_id, session.tenant_id, db)


@router.patch("/orders/{order_id}", response_model=OrderResponse)
async def update_order_status(
    order_id: str,
    payload: OrderStatusUpdate,
    session: Session = Depends(require_role(RoleName.EDITOR)),
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    return await order_service.update_order_status(order_id, session.tenant_id, payload.status, db, notifier)


@public_router.post(
    "/orders",
    response_model=OrderPlacedResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(rate_limit("order"))],
)
async def place_order(
    payload: OrderCreate,
    db: AsyncSession = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
):
    order = await order_service.place_order(payload, db, notifier)
    return OrderPlacedResponse(
        order_id=order.id,
        order_number=order.order_number,
        access_token=order.access_token,
        total=order.total,
        currency=order.currency,
        status=OrderStatus(order.status),
        created_at=order.created_at,
    )


@public_router.get("/orders/{order_id}/status", response_model=OrderStatusResponse, response_model_by_alias=True)
async def get_order_status(
    order_id: str,
    token: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    if not token:
        raise AuthenticationError("Access token required")
    return await order_service.get_order_status(order_id, token, db)


@public_router.post(
    "/orders/{order_id}/checkout",
    response_model=CheckoutResponse,
    dependencies=[Depends(rate_limit("checkout"))],
)
async def start_checkout(
    order_id: str,
    payload: CheckoutRequest,
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    url = await payment_service.start_checkout(order_id, payload.access_token, db, resolver)
    return CheckoutResponse(url=url)
