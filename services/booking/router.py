"""
services/booking/router.py
HTTP surface of the Booking Lifecycle Manager.
Every handler acquires the Actor for the request and delegates to
services.booking.lifecycle; typed errors are mapped in main.py.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from services.booking import lifecycle
from shared.actor import Actor
from shared.middleware.auth import get_current_actor
from shared.models.models import BookingStatus, Role
from shared.schemas.schemas import (
    BookingCreateRequest,
    BookingResponse,
    BookingTransitionRequest,
)

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Client books a listing. The booking starts pending and unpaid."""
    booking = await lifecycle.create_booking(
        db,
        actor,
        professional_id=data.professional_id,
        offering_id=data.offering_id,
        scheduled_at=data.scheduled_at,
        hours=data.hours,
        description=data.description,
        budget=data.budget,
    )
    return BookingResponse.model_validate(booking)


@router.get("", response_model=List[BookingResponse])
async def list_my_bookings(
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Professionals see bookings assigned to them; everyone else sees their own hires."""
    if actor.role == Role.PROFESSIONAL:
        bookings = await lifecycle.list_bookings_for_professional(db, actor, statuses=status_filter)
    else:
        bookings = await lifecycle.list_bookings_for_client(db, actor, statuses=status_filter)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/client/{client_id}", response_model=List[BookingResponse])
async def list_client_bookings(
    client_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    bookings = await lifecycle.list_bookings_for_client(db, actor, client_id)
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/professional/{professional_id}", response_model=List[BookingResponse])
async def list_professional_bookings(
    professional_id: UUID,
    status_filter: Optional[List[str]] = Query(None, alias="status"),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    bookings = await lifecycle.list_bookings_for_professional(
        db, actor, professional_id, statuses=status_filter
    )
    return [BookingResponse.model_validate(b) for b in bookings]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await lifecycle.get_booking(db, actor, booking_id)
    return BookingResponse.model_validate(booking)


# ── State Transitions ─────────────────────────────────────────

@router.post("/{booking_id}/transition", response_model=BookingResponse)
async def transition_booking(
    booking_id: UUID,
    data: BookingTransitionRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    booking = await lifecycle.transition_booking(db, actor, booking_id, data.target_status)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/accept", response_model=BookingResponse)
async def accept_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Professional of record accepts a pending booking."""
    booking = await lifecycle.transition_booking(db, actor, booking_id, BookingStatus.ACCEPTED)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/complete", response_model=BookingResponse)
async def complete_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Either party marks an open booking completed."""
    booking = await lifecycle.transition_booking(db, actor, booking_id, BookingStatus.COMPLETED)
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/cancel", response_model=BookingResponse)
async def cancel_booking(
    booking_id: UUID,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """Client of record cancels an open booking."""
    booking = await lifecycle.transition_booking(db, actor, booking_id, BookingStatus.CANCELLED)
    return BookingResponse.model_validate(booking)
