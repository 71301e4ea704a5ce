"""
Public Gallery Routes

What a client sees after typing a gallery code: the photos, and the
favorites marked from their browser session.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.schemas.gallery import SESSION_KEY_PATTERN, FavoritesResponse, FavoriteToggle, PublicGalleryResponse
from app.services import gallery_service, photo_service

router = APIRouter()


@router.get("/galleries/{code}", response_model=PublicGalleryResponse, response_model_by_alias=True)
async def get_gallery_by_code(code: str, db: AsyncSession = Depends(get_db)):
    return await gallery_service.get_public_gallery(code, db)


@router.get("/galleries/{code}/favorites", response_model=FavoritesResponse)
async def list_favorites(
    code: str,
    session_key: str = Query(..., alias="sessionKey", pattern=SESSION_KEY_PATTERN),
    db: AsyncSession = Depends(get_db),
):
    return FavoritesResponse(favorites=await photo_service.list_favorites(code, session_key, db))


@router.post("/galleries/{code}/favorites", response_model=FavoritesResponse)
async def toggle_favorite(code: str, payload: FavoriteToggle, db: AsyncSession = Depends(get_db)):
    if payload.action == "add":
        favorites = await photo_service.add_favorite(code, payload.photo_id, payload.session_key, db)
    else:
        favorites = await photo_service.remove_favorite(code, payload.photo_id, payload.session_key, db)
    return FavoritesResponse(favorites=favorites)
