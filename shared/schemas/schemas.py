"""
shared/schemas/schemas.py
Pydantic v2 request/response schemas for the marketplace API.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from shared.models.models import BookingStatus, PaymentStatus


# ── Base ──────────────────────────────────────────────────────

class BaseSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)


# ── Session ───────────────────────────────────────────────────

class SessionResponse(BaseSchema):
    id: uuid.UUID
    role: str
    name: Optional[str] = None


# ── Catalog ───────────────────────────────────────────────────

class CatalogServiceCreate(BaseSchema):
    name: str = Field(..., min_length=2, max_length=255)
    category: str = Field(..., min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: bool = True


class CatalogServiceUpdate(BaseSchema):
    name: Optional[str] = Field(None, min_length=2, max_length=255)
    category: Optional[str] = Field(None, min_length=2, max_length=100)
    description: Optional[str] = Field(None, max_length=2000)
    is_active: Optional[bool] = None


class CatalogServiceResponse(BaseSchema):
    id: uuid.UUID
    name: str
    category: str
    description: Optional[str]
    is_active: bool
    professionals_count: int


# ── Offerings ─────────────────────────────────────────────────

class OfferingCreate(BaseSchema):
    catalog_service_id: uuid.UUID
    custom_title: Optional[str] = Field(None, max_length=255)
    rate: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class OfferingUpdate(BaseSchema):
    catalog_service_id: Optional[uuid.UUID] = None
    custom_title: Optional[str] = Field(None, max_length=255)
    rate: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = Field(None, max_length=2000)


class OfferingActiveRequest(BaseSchema):
    is_active: bool


class OfferingResponse(BaseSchema):
    id: uuid.UUID
    professional_id: uuid.UUID
    catalog_service_id: uuid.UUID
    custom_title: Optional[str]
    rate: Optional[Decimal]
    notes: Optional[str]
    is_active: bool
    service_name: Optional[str] = None
    service_category: Optional[str] = None


class ProfessionalDashboardResponse(BaseSchema):
    active_jobs: int
    completed_jobs: int
    total_services: int
    active_services: int


# ── Listings ──────────────────────────────────────────────────

class Listing(BaseSchema):
    """Marketplace projection of an offering joined with its professional and catalog service."""
    offering_id: uuid.UUID
    professional_id: uuid.UUID
    professional_name: str
    title: str
    professional_location: Optional[str] = None
    professional_bio: Optional[str] = None
    service_id: uuid.UUID
    service_name: str
    service_category: str
    hourly_rate: Decimal
    rating: float = 0.0
    review_count: int = 0
    jobs_completed: int = 0
    is_favorite: bool = False


class ListingSearchResponse(BaseSchema):
    items: List[Listing]
    total: int


# ── Booking ───────────────────────────────────────────────────

class BookingCreateRequest(BaseSchema):
    professional_id: uuid.UUID
    offering_id: uuid.UUID
    scheduled_at: Optional[datetime] = None
    hours: Decimal
    description: Optional[str] = Field(None, max_length=2000)
    budget: Optional[Decimal] = None


class BookingTransitionRequest(BaseSchema):
    target_status: BookingStatus


class BookingResponse(BaseSchema):
    id: uuid.UUID
    client_id: uuid.UUID
    professional_id: uuid.UUID
    offering_id: Optional[uuid.UUID]
    title: str
    description: Optional[str]
    scheduled_at: Optional[datetime]
    hours: Decimal
    budget: Decimal
    status: BookingStatus
    payment_status: PaymentStatus
    accepted_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    created_at: datetime


# ── Favorites ─────────────────────────────────────────────────

class FavoriteToggleResponse(BaseSchema):
    offering_id: uuid.UUID
    result: Literal["added", "removed"]


# ── Review ────────────────────────────────────────────────────

class ReviewCreateRequest(BaseSchema):
    booking_id: uuid.UUID
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class ReviewResponse(BaseSchema):
    id: uuid.UUID
    booking_id: uuid.UUID
    client_id: uuid.UUID
    professional_id: uuid.UUID
    offering_id: Optional[uuid.UUID]
    rating: int
    comment: Optional[str]
    is_visible: bool
    created_at: datetime


# ── Generic ───────────────────────────────────────────────────

class MessageResponse(BaseSchema):
    message: str
    success: bool = True


class ErrorResponse(BaseSchema):
    detail: str
    code: Optional[str] = None
