from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import Session
from app.constants.roles import RoleName
from app.database import get_db
from app.schemas.product import ProductCreate, ProductResponse, ProductStatusUpdate
from app.services import product_service
from app.services.authorization_service import require_role
from app.services.feature_service import FeatureResolver, get_feature_resolver

router = APIRouter()


@router.get("/products", response_model=list[ProductResponse])
async def list_products(
    include_inactive: bool = False,
    session: Session = Depends(require_role(RoleName.VIEWER)),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    return await product_service.list_products(session.tenant_id, db, resolver, include_inactive=include_inactive)


@router.post("/products", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductCreate,
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
    resolver: FeatureResolver = Depends(get_feature_resolver),
):
    return await product_service.create_product(session.tenant_id, payload, db, resolver)


@router.patch("/products/{product_id}", response_model=ProductResponse)
async def set_product_status(
    product_id: str,
    payload: ProductStatusUpdate,
    session: Session = Depends(require_role(RoleName.ADMIN)),
    db: AsyncSession = Depends(get_db),
):
    return await product_service.set_product_active(product_id, session.tenant_id, payload.is_active, db)
