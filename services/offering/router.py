"""
services/offering/router.py
Professional-side management of service offerings and the job dashboard.
New offerings start unpublished; publishing is an explicit toggle.
"""

import logging
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import get_redis
from services.catalog.router import invalidate_catalog_cache
from shared.actor import Actor
from shared.middleware.auth import require_professional
from shared.models.models import (
    OPEN_BOOKING_STATUSES,
    Booking,
    BookingStatus,
    CatalogService,
    ServiceOffering,
)
from shared.schemas.schemas import (
    OfferingActiveRequest,
    OfferingCreate,
    OfferingResponse,
    OfferingUpdate,
    ProfessionalDashboardResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/offerings", tags=["Offerings"])


# ── Helpers ───────────────────────────────────────────────────

async def _get_own_offering_or_404(
    offering_id: UUID, actor: Actor, db: AsyncSession
) -> ServiceOffering:
    offering = await db.get(ServiceOffering, offering_id)
    if not offering:
        raise HTTPException(status_code=404, detail="Offering not found")
    if offering.professional_id != actor.id:
        raise HTTPException(status_code=403, detail="Not authorized to manage this offering")
    return offering


async def _get_catalog_service_or_400(catalog_service_id: UUID, db: AsyncSession) -> CatalogService:
    service = await db.get(CatalogService, catalog_service_id)
    if not service:
        raise HTTPException(status_code=400, detail="Please select an existing service")
    return service


async def refresh_professionals_count(db: AsyncSession, catalog_service_id: UUID) -> int:
    """Recompute the catalog service's count of professionals with an active offering."""
    count = await db.scalar(
        select(func.count(func.distinct(ServiceOffering.professional_id))).where(
            ServiceOffering.catalog_service_id == catalog_service_id,
            ServiceOffering.is_active.is_(True),
        )
    )
    await db.execute(
        update(CatalogService)
        .where(CatalogService.id == catalog_service_id)
        .values(professionals_count=count or 0)
    )
    return count or 0


async def _to_response(offering: ServiceOffering, db: AsyncSession) -> OfferingResponse:
    service = await db.get(CatalogService, offering.catalog_service_id)
    return OfferingResponse(
        id=offering.id,
        professional_id=offering.professional_id,
        catalog_service_id=offering.catalog_service_id,
        custom_title=offering.custom_title,
        rate=offering.rate,
        notes=offering.notes,
        is_active=offering.is_active,
        service_name=service.name if service else None,
        service_category=service.category if service else None,
    )


# ── Endpoints ─────────────────────────────────────────────────

@router.get("/me", response_model=List[OfferingResponse])
async def list_my_offerings(
    actor: Actor = Depends(require_professional),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(ServiceOffering, CatalogService)
        .join(CatalogService, CatalogService.id == ServiceOffering.catalog_service_id)
        .where(ServiceOffering.professional_id == actor.id)
        .order_by(ServiceOffering.created_at)
    )
    return [
        OfferingResponse.model_validate(offering).model_copy(
            update={"service_name": service.name, "service_category": service.category}
        )
        for offering, service in result.all()
    ]


@router.get("/me/dashboard", response_model=ProfessionalDashboardResponse)
async def my_dashboard(
    actor: Actor = Depends(require_professional),
    db: AsyncSession = Depends(get_db),
):
    """Open jobs, completed jobs, and offering counts for the signed-in professional."""
    active_jobs = await db.scalar(
        select(func.count(Booking.id)).where(
            Booking.professional_id == actor.id,
            Booking.status.in_(OPEN_BOOKING_STATUSES),
        )
    )
    completed_jobs = await db.scalar(
        select(func.count(Booking.id)).where(
            Booking.professional_id == actor.id,
            Booking.status == BookingStatus.COMPLETED,
        )
    )
    total_services = await db.scalar(
        select(func.count(ServiceOffering.id)).where(ServiceOffering.professional_id == actor.id)
    )
    active_services = await db.scalar(
        select(func.count(ServiceOffering.id)).where(
            ServiceOffering.professional_id == actor.id,
            ServiceOffering.is_active.is_(True),
        )
    )
    return ProfessionalDashboardResponse(
        active_jobs=active_jobs or 0,
        completed_jobs=completed_jobs or 0,
        total_services=total_services or 0,
        active_services=active_services or 0,
    )


@router.post("", response_model=OfferingResponse, status_code=status.HTTP_201_CREATED)
async def create_offering(
    data: OfferingCreate,
    actor: Actor = Depends(require_professional),
    db: AsyncSession = Depends(get_db),
):
    """Add an offering. It stays unpublished until the professional activates it."""
    await _get_catalog_service_or_400(data.catalog_service_id, db)

    offering = ServiceOffering(
        professional_id=actor.id,
        catalog_service_id=data.catalog_service_id,
        custom_title=data.custom_title or None,
        rate=data.rate,
        notes=data.notes or None,
        is_active=False,
    )
    db.add(offering)
    await db.commit()
    return await _to_response(offering, db)


@router.put("/{offering_id}", response_model=OfferingResponse)
async def update_offering(
    offering_id: UUID,
    data: OfferingUpdate,
    actor: Actor = Depends(require_professional),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    offering = await _get_own_offering_or_404(offering_id, actor, db)
    previous_service_id = offering.catalog_service_id

    updates = data.model_dump(exclude_unset=True)
    if updates.get("catalog_service_id"):
        await _get_catalog_service_or_400(updates["catalog_service_id"], db)
    for field, value in updates.items():
        if field == "catalog_service_id" and value is None:
            continue
        setattr(offering, field, value)
    await db.flush()

    moved = offering.is_active and offering.catalog_service_id != previous_service_id
    if moved:
        await refresh_professionals_count(db, previous_service_id)
        await refresh_professionals_count(db, offering.catalog_service_id)

    await db.commit()
    if moved:
        await invalidate_catalog_cache(redis)
    return await _to_response(offering, db)


@router.put("/{offering_id}/active", response_model=OfferingResponse)
async def set_offering_active(
    offering_id: UUID,
    data: OfferingActiveRequest,
    actor: Actor = Depends(require_professional),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Publish or unpublish. Unpublished offerings drop out of search immediately."""
    offering = await _get_own_offering_or_404(offering_id, actor, db)
    offering.is_active = data.is_active
    await db.flush()
    await refresh_professionals_count(db, offering.catalog_service_id)
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info(
        f"Offering {offering.id} {'published' if data.is_active else 'unpublished'} by {actor.id}"
    )
    return await _to_response(offering, db)
