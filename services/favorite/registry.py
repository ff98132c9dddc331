"""
services/favorite/registry.py
Favorites Registry: the client ↔ offering star relation.

toggle_favorite deletes the pair if present, otherwise inserts it. The
insert runs in a SAVEPOINT and a unique-key collision (the same client
toggling from two sessions at once) is read as "already favorited", so
the pair never exists twice and the caller never sees a fault.

Rows are not cleaned up when an offering goes inactive; the favorites
view simply resolves them through the listing aggregator, which drops
anything no longer listable.
"""

import logging
import uuid
from enum import Enum
from typing import List

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from services.listing.aggregator import resolve_listings
from shared.actor import Actor
from shared.exceptions import PermissionDenied, ValidationError
from shared.models.models import Favorite, Role, ServiceOffering
from shared.schemas.schemas import Listing

logger = logging.getLogger(__name__)


class ToggleResult(str, Enum):
    ADDED = "added"
    REMOVED = "removed"


def _require_client(actor: Actor) -> None:
    if actor.role != Role.CLIENT:
        raise PermissionDenied("Only clients keep favorites")


async def add_favorite(db: AsyncSession, client_id: uuid.UUID, offering_id: uuid.UUID) -> bool:
    """Insert the pair. Returns False when it already existed (lost race)."""
    try:
        async with db.begin_nested():
            db.add(Favorite(client_id=client_id, offering_id=offering_id))
    except IntegrityError:
        logger.info(f"Favorite ({client_id}, {offering_id}) already present")
        return False
    return True


async def toggle_favorite(
    db: AsyncSession, actor: Actor, offering_id: uuid.UUID
) -> ToggleResult:
    _require_client(actor)

    result = await db.execute(
        delete(Favorite).where(
            Favorite.client_id == actor.id,
            Favorite.offering_id == offering_id,
        )
    )
    if result.rowcount:
        await db.commit()
        logger.info(f"Client {actor.id} unstarred offering {offering_id}")
        return ToggleResult.REMOVED

    if await db.get(ServiceOffering, offering_id) is None:
        raise ValidationError("Unknown offering")

    await add_favorite(db, actor.id, offering_id)
    await db.commit()
    logger.info(f"Client {actor.id} starred offering {offering_id}")
    return ToggleResult.ADDED


async def favorite_offering_ids(db: AsyncSession, actor: Actor) -> List[uuid.UUID]:
    """Every starred offering id, newest first, dangling ones included."""
    _require_client(actor)
    result = await db.scalars(
        select(Favorite.offering_id)
        .where(Favorite.client_id == actor.id)
        .order_by(Favorite.created_at.desc())
    )
    return list(result)


async def list_favorites(db: AsyncSession, actor: Actor) -> List[Listing]:
    """Starred offerings that still resolve to a bookable listing."""
    offering_ids = await favorite_offering_ids(db, actor)
    by_id = {listing.offering_id: listing for listing in await resolve_listings(db, offering_ids)}

    listings = []
    for offering_id in offering_ids:
        listing = by_id.get(offering_id)
        if listing is not None:
            listing.is_favorite = True
            listings.append(listing)
    return listings
