"""
services/review/router.py
Reviews on completed bookings. Visible ratings feed the listing reputation.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from shared.actor import Actor
from shared.middleware.auth import get_current_actor, require_admin
from shared.models.models import Booking, BookingStatus, Review
from shared.schemas.schemas import MessageResponse, ReviewCreateRequest, ReviewResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["Reviews"])


@router.post("", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    data: ReviewCreateRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    """
    Review a completed booking.
    - Only the client of record can review
    - One review per booking (unique on booking_id)
    """
    booking = await db.get(Booking, data.booking_id)

    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    if booking.client_id != actor.id:
        raise HTTPException(status_code=403, detail="You can only review your own bookings")
    if booking.status != BookingStatus.COMPLETED:
        raise HTTPException(status_code=400, detail="Booking must be completed before reviewing")

    existing = await db.scalar(select(Review.id).where(Review.booking_id == data.booking_id))
    if existing:
        raise HTTPException(status_code=409, detail="You have already reviewed this booking")

    review = Review(
        booking_id=booking.id,
        client_id=actor.id,
        professional_id=booking.professional_id,
        offering_id=booking.offering_id,
        rating=data.rating,
        comment=data.comment,
    )
    try:
        async with db.begin_nested():
            db.add(review)
    except IntegrityError:
        raise HTTPException(status_code=409, detail="You have already reviewed this booking")
    await db.commit()

    logger.info(f"Review {review.id} ({data.rating}/5) on booking {booking.id}")
    return ReviewResponse.model_validate(review)


@router.delete("/{review_id}", response_model=MessageResponse)
async def hide_review(
    review_id: UUID,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
):
    """Admin: hide a review. Hidden reviews stop counting toward ratings."""
    review = await db.get(Review, review_id)
    if not review:
        raise HTTPException(status_code=404, detail="Review not found")

    review.is_visible = False
    await db.commit()
    return MessageResponse(message="Review hidden successfully")


@router.get("/offerings/{offering_id}", response_model=list[ReviewResponse])
async def get_offering_reviews(
    offering_id: UUID,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=50),
    db: AsyncSession = Depends(get_db),
):
    """Public: visible reviews for an offering, newest first."""
    result = await db.scalars(
        select(Review)
        .where(Review.offering_id == offering_id, Review.is_visible.is_(True))
        .order_by(Review.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return [ReviewResponse.model_validate(r) for r in result]
