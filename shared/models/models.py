"""
shared/models/models.py
SQLAlchemy ORM models for the marketplace.
UUID primary keys throughout; column types stay portable (no
PostgreSQL-only types) so the same models run on the test store.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum as PyEnum
from typing import List, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    SmallInteger,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from config.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _enum(enum_cls: type[PyEnum], name: str) -> Enum:
    # Persist the lowercase values ("pending"), not the member names
    return Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e])


# ── Enumerations ──────────────────────────────────────────────

class Role(str, PyEnum):
    CLIENT = "client"
    PROFESSIONAL = "professional"
    SUPPORT = "support"
    ADMIN = "admin"


class ProfileStatus(str, PyEnum):
    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"
    BLOCKED = "blocked"


class BookingStatus(str, PyEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)


OPEN_BOOKING_STATUSES = (
    BookingStatus.PENDING,
    BookingStatus.ACCEPTED,
    BookingStatus.IN_PROGRESS,
)


class PaymentStatus(str, PyEnum):
    UNPAID = "unpaid"
    PAID = "paid"


# ── Mixins ────────────────────────────────────────────────────

class TimestampMixin:
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        server_default=func.now(),
        nullable=False,
    )


# ── Models ────────────────────────────────────────────────────

class Profile(TimestampMixin, Base):
    """
    Identity record. The id is the subject issued by the identity
    provider at account creation and never changes.
    """
    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    full_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[Role] = mapped_column(_enum(Role, "profile_role"), nullable=False, default=Role.CLIENT)
    status: Mapped[ProfileStatus] = mapped_column(
        _enum(ProfileStatus, "profile_status"), nullable=False, default=ProfileStatus.ACTIVE
    )
    phone: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    location: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    bio: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    offerings: Mapped[List["ServiceOffering"]] = relationship(back_populates="professional")

    __table_args__ = (
        Index("ix_profiles_role_status", "role", "status"),
    )

    def __repr__(self) -> str:
        return f"<Profile {self.email} ({self.role})>"


class CatalogService(TimestampMixin, Base):
    """A named category of work, curated by administrators."""
    __tablename__ = "catalog_services"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False, default="Other")
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    # Denormalized: distinct professionals with an active offering of this service
    professionals_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    offerings: Mapped[List["ServiceOffering"]] = relationship(back_populates="catalog_service")

    __table_args__ = (Index("ix_catalog_services_category", "category"),)


class ServiceOffering(TimestampMixin, Base):
    """
    A professional's instantiation of a catalog service.
    Created inactive; only active offerings are listed.
    """
    __tablename__ = "service_offerings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    catalog_service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("catalog_services.id"), nullable=False
    )
    custom_title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(10, 2), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    professional: Mapped["Profile"] = relationship(back_populates="offerings")
    catalog_service: Mapped["CatalogService"] = relationship(back_populates="offerings")

    __table_args__ = (
        Index("ix_offerings_professional_id", "professional_id"),
        Index("ix_offerings_active", "is_active"),
    )


class Booking(TimestampMixin, Base):
    """
    Central transactional entity.
    Status moves only through the table in services/booking/lifecycle.py:
    pending → accepted → completed | cancelled (completed/cancelled are terminal).
    client_id, professional_id and offering_id are fixed at creation.
    """
    __tablename__ = "bookings"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False
    )
    professional_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="RESTRICT"), nullable=False
    )
    # Survives deactivation of the offering; title below is denormalized
    offering_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("service_offerings.id", ondelete="SET NULL"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    scheduled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    hours: Mapped[Decimal] = mapped_column(Numeric(5, 2), nullable=False)
    budget: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)

    status: Mapped[BookingStatus] = mapped_column(
        _enum(BookingStatus, "booking_status"), nullable=False, default=BookingStatus.PENDING
    )
    payment_status: Mapped[PaymentStatus] = mapped_column(
        _enum(PaymentStatus, "payment_status"), nullable=False, default=PaymentStatus.UNPAID
    )

    accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    audit_logs: Mapped[List["BookingAuditLog"]] = relationship(back_populates="booking")

    __table_args__ = (
        CheckConstraint("hours > 0", name="ck_booking_hours_positive"),
        Index("ix_bookings_client_id", "client_id"),
        Index("ix_bookings_professional_id", "professional_id"),
        Index("ix_bookings_offering_id", "offering_id"),
        Index("ix_bookings_status", "status"),
    )


class BookingAuditLog(Base):
    """Append-only record of every booking status change."""
    __tablename__ = "booking_audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), nullable=False
    )
    from_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    changed_by_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("profiles.id"), nullable=True
    )
    actor_role: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    booking: Mapped["Booking"] = relationship(back_populates="audit_logs")


class Favorite(Base):
    """
    (client, offering) star. offering_id carries no foreign key:
    favorites of offerings that later disappear are kept as dangling rows.
    """
    __tablename__ = "favorites"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False
    )
    offering_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint("client_id", "offering_id", name="uq_favorite_client_offering"),
    )


class Review(TimestampMixin, Base):
    """Client rating of a completed booking. One per booking."""
    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    booking_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("bookings.id"), unique=True, nullable=False
    )
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    professional_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("profiles.id"), nullable=False)
    offering_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    rating: Mapped[int] = mapped_column(SmallInteger, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_visible: Mapped[bool] = mapped_column(Boolean, default=True)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_review_rating_range"),
        Index("ix_reviews_offering_id", "offering_id"),
    )
