"""
services/listing/aggregator.py
Listing Aggregator: turns active service offerings into marketplace listings.

Offerings, professionals and catalog services are fetched as three
independent queries and hash-joined in memory on professional id and
catalog-service id. An offering whose professional or catalog service
cannot be resolved (missing row, or a professional who is not an active
professional) is an integrity gap: it is skipped, never an error.

Read-only. Any store failure aborts the whole aggregation with
UpstreamFailure so callers never see a partially joined result.
"""

import logging
import uuid
from decimal import Decimal
from typing import Collection, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from shared.actor import Actor
from shared.exceptions import UpstreamFailure
from shared.models.models import (
    Booking,
    BookingStatus,
    CatalogService,
    Favorite,
    Profile,
    ProfileStatus,
    Review,
    Role,
    ServiceOffering,
)
from shared.schemas.schemas import Listing

logger = logging.getLogger(__name__)


# ── Reputation ────────────────────────────────────────────────

async def _reputation(
    db: AsyncSession, offering_ids: Collection[uuid.UUID]
) -> Tuple[Dict[uuid.UUID, int], Dict[uuid.UUID, Tuple[float, int]]]:
    """Completed-job counts and (average rating, review count) per offering."""
    jobs_result = await db.execute(
        select(Booking.offering_id, func.count(Booking.id))
        .where(
            Booking.offering_id.in_(offering_ids),
            Booking.status == BookingStatus.COMPLETED,
        )
        .group_by(Booking.offering_id)
    )
    jobs = {offering_id: count for offering_id, count in jobs_result.all()}

    ratings_result = await db.execute(
        select(Review.offering_id, func.avg(Review.rating), func.count(Review.id))
        .where(Review.offering_id.in_(offering_ids), Review.is_visible.is_(True))
        .group_by(Review.offering_id)
    )
    ratings = {
        offering_id: (round(float(avg or 0), 1), count)
        for offering_id, avg, count in ratings_result.all()
    }
    return jobs, ratings


# ── Join ──────────────────────────────────────────────────────

def _to_listing(
    offering: ServiceOffering,
    professional: Profile,
    service: CatalogService,
    jobs_completed: int,
    rating: Tuple[float, int],
) -> Listing:
    service_name = service.name or "Service"
    return Listing(
        offering_id=offering.id,
        professional_id=professional.id,
        professional_name=professional.full_name or "Professional",
        title=offering.custom_title or service_name,
        professional_location=professional.location,
        professional_bio=professional.bio,
        service_id=service.id,
        service_name=service_name,
        service_category=service.category or "Other",
        hourly_rate=offering.rate or Decimal(str(settings.DEFAULT_HOURLY_RATE)),
        rating=rating[0],
        review_count=rating[1],
        jobs_completed=jobs_completed,
    )


async def resolve_listings(
    db: AsyncSession,
    offering_ids: Optional[Collection[uuid.UUID]] = None,
) -> List[Listing]:
    """
    Resolve active offerings into listings, optionally restricted to
    offering_ids. Inactive or unresolvable offerings are left out.
    """
    try:
        query = select(ServiceOffering).where(ServiceOffering.is_active.is_(True))
        if offering_ids is not None:
            if not offering_ids:
                return []
            query = query.where(ServiceOffering.id.in_(offering_ids))
        offerings = (await db.scalars(query.order_by(ServiceOffering.created_at))).all()
        if not offerings:
            return []

        professional_ids = {o.professional_id for o in offerings}
        catalog_ids = {o.catalog_service_id for o in offerings}

        professionals = {
            p.id: p
            for p in await db.scalars(
                select(Profile).where(
                    Profile.id.in_(professional_ids),
                    Profile.role == Role.PROFESSIONAL,
                    Profile.status == ProfileStatus.ACTIVE,
                )
            )
        }
        services = {
            s.id: s
            for s in await db.scalars(
                select(CatalogService).where(CatalogService.id.in_(catalog_ids))
            )
        }
        jobs, ratings = await _reputation(db, [o.id for o in offerings])
    except SQLAlchemyError as exc:
        logger.error(f"Listing aggregation aborted: {exc}")
        raise UpstreamFailure(str(exc)) from exc

    listings = []
    for offering in offerings:
        professional = professionals.get(offering.professional_id)
        service = services.get(offering.catalog_service_id)
        if professional is None or service is None:
            logger.debug(f"Integrity gap, skipping offering {offering.id}")
            continue
        listings.append(
            _to_listing(
                offering,
                professional,
                service,
                jobs.get(offering.id, 0),
                ratings.get(offering.id, (0.0, 0)),
            )
        )
    return listings


# ── Filters ───────────────────────────────────────────────────

def matches_query(listing: Listing, query: str) -> bool:
    """Case-insensitive substring match on name, title, service name or category."""
    needle = query.lower()
    return any(
        needle in (field or "").lower()
        for field in (
            listing.professional_name,
            listing.title,
            listing.service_name,
            listing.service_category,
        )
    )


def apply_filters(
    listings: List[Listing],
    query: Optional[str] = None,
    category: Optional[str] = None,
) -> List[Listing]:
    if query:
        listings = [item for item in listings if matches_query(item, query)]
    if category and category != settings.ALL_CATEGORIES_SENTINEL:
        listings = [item for item in listings if item.service_category == category]
    return listings


async def _annotate_favorites(db: AsyncSession, actor: Actor, listings: List[Listing]) -> None:
    if actor.role != Role.CLIENT or not listings:
        return
    try:
        starred = set(
            await db.scalars(
                select(Favorite.offering_id).where(Favorite.client_id == actor.id)
            )
        )
    except SQLAlchemyError as exc:
        raise UpstreamFailure(str(exc)) from exc
    for listing in listings:
        listing.is_favorite = listing.offering_id in starred


# ── Public API ────────────────────────────────────────────────

async def search_listings(
    db: AsyncSession,
    query: Optional[str] = None,
    category: Optional[str] = None,
    actor: Optional[Actor] = None,
) -> List[Listing]:
    """Currently bookable listings matching the text query and category."""
    listings = apply_filters(await resolve_listings(db), query, category)
    if actor is not None:
        await _annotate_favorites(db, actor, listings)
    return listings
