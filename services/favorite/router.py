"""
services/favorite/router.py
Client favorites: star/unstar toggle and the resolved favorites view.
"""

from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.favorite.registry import list_favorites, toggle_favorite
from shared.actor import Actor
from shared.middleware.auth import get_current_actor
from shared.schemas.schemas import FavoriteToggleResponse, Listing

router = APIRouter(prefix="/favorites", tags=["Favorites"])


@router.get("", response_model=List[Listing])
async def get_favorites(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Starred offerings that are still listed. Stale stars are kept but not shown."""
    return await list_favorites(db, actor)


@router.post("/{offering_id}/toggle", response_model=FavoriteToggleResponse)
async def toggle(
    offering_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    result = await toggle_favorite(db, actor, offering_id)
    return FavoriteToggleResponse(offering_id=offering_id, result=result.value)
