"""
services/listing/router.py
Public marketplace search. Anonymous callers get plain listings;
a signed-in client also gets is_favorite annotations.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.settings import settings
from services.listing.aggregator import search_listings
from shared.actor import Actor
from shared.exceptions import UpstreamFailure
from shared.middleware.auth import get_optional_actor
from shared.schemas.schemas import ListingSearchResponse

router = APIRouter(prefix="/listings", tags=["Listings"])


@router.get("", response_model=ListingSearchResponse)
async def search(
    q: Optional[str] = Query(None, max_length=200, description="Matches name, title, service or category"),
    category: Optional[str] = Query(None, description=f"Exact category, or '{settings.ALL_CATEGORIES_SENTINEL}'"),
    actor: Optional[Actor] = Depends(get_optional_actor),
    db: AsyncSession = Depends(get_db),
):
    try:
        listings = await search_listings(db, query=q, category=category, actor=actor)
    except UpstreamFailure as exc:
        # Empty result plus an error signal, never a half-joined page
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"items": [], "total": 0, "detail": exc.detail, "code": exc.code},
        )
    return ListingSearchResponse(items=listings, total=len(listings))


@router.get("/categories", response_model=List[str])
async def categories():
    return [settings.ALL_CATEGORIES_SENTINEL, *settings.categories_list]
