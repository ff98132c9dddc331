"""
services/booking/lifecycle.py
Booking Lifecycle Manager.

States: pending (initial) → accepted → completed | cancelled.
completed and cancelled are terminal. TRANSITIONS below is the only
place legality is decided; every write goes through transition_booking
or create_booking.

Transitions are applied with a conditional UPDATE on the prior status,
so two sessions racing on the same booking cannot both win: the loser
affects zero rows, re-reads the booking, and gets InvalidTransition.
"""

import logging
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import settings
from services.listing.aggregator import resolve_listings
from shared.actor import Actor
from shared.exceptions import InvalidTransition, NotFound, PermissionDenied, ValidationError
from shared.models.models import (
    Booking,
    BookingAuditLog,
    BookingStatus,
    PaymentStatus,
    Profile,
    Role,
    ServiceOffering,
)

logger = logging.getLogger(__name__)

_PARTIES = frozenset({Role.CLIENT, Role.PROFESSIONAL})

# (from, to) -> roles allowed to request it. None as "from" is creation.
TRANSITIONS: Dict[Tuple[Optional[BookingStatus], BookingStatus], FrozenSet[Role]] = {
    (None, BookingStatus.PENDING): frozenset({Role.CLIENT}),
    (BookingStatus.PENDING, BookingStatus.ACCEPTED): frozenset({Role.PROFESSIONAL}),
    (BookingStatus.PENDING, BookingStatus.COMPLETED): _PARTIES,
    (BookingStatus.ACCEPTED, BookingStatus.COMPLETED): _PARTIES,
    (BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED): _PARTIES,
    (BookingStatus.PENDING, BookingStatus.CANCELLED): frozenset({Role.CLIENT}),
    (BookingStatus.ACCEPTED, BookingStatus.CANCELLED): frozenset({Role.CLIENT}),
    (BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED): frozenset({Role.CLIENT}),
}

# Timestamp column stamped when a booking enters the state
_STAMPS = {
    BookingStatus.ACCEPTED: "accepted_at",
    BookingStatus.COMPLETED: "completed_at",
    BookingStatus.CANCELLED: "cancelled_at",
}

_CENTS = Decimal("0.01")
# Largest value a Numeric(10, 2) budget column holds
_MAX_BUDGET = Decimal("99999999.99")


def is_allowed(current: Optional[BookingStatus], target: BookingStatus, role: Role) -> bool:
    return role in TRANSITIONS.get((current, target), frozenset())


# ── Helpers ───────────────────────────────────────────────────

async def _load_booking(db: AsyncSession, booking_id: uuid.UUID) -> Booking:
    booking = await db.scalar(
        select(Booking)
        .where(Booking.id == booking_id)
        .execution_options(populate_existing=True)
    )
    if not booking:
        raise NotFound("Booking not found")
    return booking


def _party_role(actor: Actor, booking: Booking) -> Optional[Role]:
    """The actor's side of this booking, or None if they are not a party to it."""
    if actor.id == booking.client_id:
        return Role.CLIENT
    if actor.id == booking.professional_id:
        return Role.PROFESSIONAL
    return None


def _check_owner(actor: Actor, owner_id: uuid.UUID) -> None:
    if actor.id != owner_id and not actor.is_staff:
        raise PermissionDenied("Not authorized to view these bookings")


def _as_decimal(value, field: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return number


def _to_cents(value: Decimal) -> Decimal:
    return value.quantize(_CENTS, rounding=ROUND_HALF_UP)


def _as_status(value) -> BookingStatus:
    try:
        return BookingStatus(value)
    except ValueError:
        raise ValidationError(f"Unknown booking status: {value}")


# ── Creation ──────────────────────────────────────────────────

async def create_booking(
    db: AsyncSession,
    actor: Actor,
    professional_id: uuid.UUID,
    offering_id: uuid.UUID,
    scheduled_at: Optional[datetime],
    hours,
    description: Optional[str] = None,
    budget=None,
) -> Booking:
    """
    Book a listing. All preconditions are checked before the single
    INSERT; the booking starts pending and unpaid. Budget defaults to
    the listing's hourly rate times hours.
    """
    if not is_allowed(None, BookingStatus.PENDING, actor.role):
        raise PermissionDenied("Only clients can create bookings")

    if scheduled_at is None:
        raise ValidationError("A scheduled date and time is required")
    if scheduled_at.tzinfo is None:
        scheduled_at = scheduled_at.replace(tzinfo=timezone.utc)
    if scheduled_at <= datetime.now(timezone.utc):
        raise ValidationError("Scheduled time must be in the future")

    # Checked at the stored precision (hundredths of an hour)
    hours = _as_decimal(hours, "hours")
    if hours > settings.MAX_BOOKING_HOURS:
        raise ValidationError(f"Duration cannot exceed {settings.MAX_BOOKING_HOURS} hours")
    hours = _to_cents(hours)
    if hours <= 0:
        raise ValidationError("Duration must be a positive number of hours")

    if budget is not None:
        budget = _as_decimal(budget, "budget")
        if budget > _MAX_BUDGET:
            raise ValidationError(f"Budget cannot exceed {_MAX_BUDGET}")
        budget = _to_cents(budget)
        if budget <= 0:
            raise ValidationError("Budget must be positive")

    client = await db.get(Profile, actor.id)
    if client is None:
        raise ValidationError("Unknown client")

    offering = await db.get(ServiceOffering, offering_id)
    if offering is None:
        raise ValidationError("Unknown offering")
    if offering.professional_id != professional_id:
        raise ValidationError("Offering does not belong to this professional")

    listings = await resolve_listings(db, [offering.id])
    if not listings:
        raise ValidationError("Offering is not currently bookable")
    listing = listings[0]

    if budget is None:
        budget = _to_cents(listing.hourly_rate * hours)
        if budget > _MAX_BUDGET:
            raise ValidationError(f"Budget cannot exceed {_MAX_BUDGET}")

    booking = Booking(
        client_id=client.id,
        professional_id=offering.professional_id,
        offering_id=offering.id,
        title=listing.title,
        description=description or f"Booking for {listing.title}",
        scheduled_at=scheduled_at,
        hours=hours,
        budget=budget,
        status=BookingStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
    )
    db.add(booking)
    await db.flush()
    db.add(
        BookingAuditLog(
            booking_id=booking.id,
            from_status=None,
            to_status=BookingStatus.PENDING.value,
            changed_by_id=actor.id,
            actor_role=Role.CLIENT.value,
        )
    )
    await db.commit()

    logger.info(f"Booking {booking.id} created by client {actor.id} for offering {offering.id}")
    return booking


# ── Transitions ───────────────────────────────────────────────

async def transition_booking(
    db: AsyncSession,
    actor: Actor,
    booking_id: uuid.UUID,
    target_status,
) -> Booking:
    """
    Move a booking to target_status on behalf of actor.
    Raises PermissionDenied if actor is not a party to the booking and
    InvalidTransition if the move is not in TRANSITIONS for the current
    state and the actor's side. Nothing is written on either error.
    """
    target = _as_status(target_status)
    booking = await _load_booking(db, booking_id)

    party = _party_role(actor, booking)
    if party is None:
        raise PermissionDenied("Not authorized to change this booking")

    current = booking.status
    if current.is_terminal:
        raise InvalidTransition(f"Booking is already {current.value}")
    if (current, target) not in TRANSITIONS:
        raise InvalidTransition(f"Cannot move booking from {current.value} to {target.value}")
    if not is_allowed(current, target, party):
        raise InvalidTransition(
            f"The {party.value} cannot move a booking from {current.value} to {target.value}"
        )

    now = datetime.now(timezone.utc)
    values = {"status": target, "updated_at": now}
    if target in _STAMPS:
        values[_STAMPS[target]] = now

    result = await db.execute(
        update(Booking)
        .where(Booking.id == booking.id, Booking.status == current)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        fresh = await _load_booking(db, booking_id)
        logger.warning(
            f"Booking {booking_id} left {current.value} concurrently "
            f"(now {fresh.status.value}); {target.value} rejected"
        )
        raise InvalidTransition(
            f"Booking is now {fresh.status.value}; cannot move it to {target.value}"
        )

    db.add(
        BookingAuditLog(
            booking_id=booking.id,
            from_status=current.value,
            to_status=target.value,
            changed_by_id=actor.id,
            actor_role=party.value,
        )
    )
    await db.commit()

    logger.info(f"Booking {booking_id}: {current.value} -> {target.value} by {party.value} {actor.id}")
    return await _load_booking(db, booking_id)


# ── Reads ─────────────────────────────────────────────────────

async def get_booking(db: AsyncSession, actor: Actor, booking_id: uuid.UUID) -> Booking:
    """Client of record, professional of record, or staff; anyone else is refused."""
    booking = await _load_booking(db, booking_id)
    if _party_role(actor, booking) is None and not actor.is_staff:
        raise PermissionDenied("Not authorized to view this booking")
    return booking


async def list_bookings_for_client(
    db: AsyncSession,
    actor: Actor,
    client_id: Optional[uuid.UUID] = None,
    statuses: Optional[Iterable] = None,
) -> List[Booking]:
    client_id = client_id or actor.id
    _check_owner(actor, client_id)

    query = select(Booking).where(Booking.client_id == client_id)
    if statuses:
        query = query.where(Booking.status.in_([_as_status(s) for s in statuses]))
    result = await db.scalars(query.order_by(Booking.created_at.desc()))
    return list(result)


async def list_bookings_for_professional(
    db: AsyncSession,
    actor: Actor,
    professional_id: Optional[uuid.UUID] = None,
    statuses: Optional[Iterable] = None,
) -> List[Booking]:
    professional_id = professional_id or actor.id
    _check_owner(actor, professional_id)

    query = select(Booking).where(Booking.professional_id == professional_id)
    if statuses:
        query = query.where(Booking.status.in_([_as_status(s) for s in statuses]))
    result = await db.scalars(query.order_by(Booking.created_at.desc()))
    return list(result)
