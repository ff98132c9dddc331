"""
tests/test_offerings.py
Tests for professional offering management and the job dashboard.
"""

import uuid
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from shared.models.models import Booking, BookingStatus, CatalogService, Profile, Role, ServiceOffering
from tests.conftest import auth_headers


async def _professionals_count(db: AsyncSession, service_id) -> int:
    return await db.scalar(
        select(CatalogService.professionals_count)
        .where(CatalogService.id == service_id)
        .execution_options(populate_existing=True)
    )


@pytest.mark.asyncio
async def test_create_offering_starts_inactive(
    client: AsyncClient, professional: Profile, catalog_service: CatalogService
):
    response = await client.post(
        "/offerings",
        headers=auth_headers(professional),
        json={"catalog_service_id": str(catalog_service.id), "custom_title": "Brand sprint", "rate": "75"},
    )
    assert response.status_code == 201
    data = response.json()
    assert data["is_active"] is False
    assert data["service_name"] == "Logo Design"
    assert Decimal(data["rate"]) == Decimal("75")

    listings = await client.get("/listings")
    assert listings.json()["items"] == []


@pytest.mark.asyncio
async def test_create_offering_unknown_service(client: AsyncClient, professional: Profile):
    response = await client.post(
        "/offerings",
        headers=auth_headers(professional),
        json={"catalog_service_id": str(uuid.uuid4())},
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_client_cannot_create_offering(
    client: AsyncClient, client_user: Profile, catalog_service: CatalogService
):
    response = await client.post(
        "/offerings",
        headers=auth_headers(client_user),
        json={"catalog_service_id": str(catalog_service.id)},
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_activate_publishes_and_counts(
    client: AsyncClient, db: AsyncSession, professional: Profile, catalog_service: CatalogService
):
    headers = auth_headers(professional)
    created = await client.post(
        "/offerings", headers=headers, json={"catalog_service_id": str(catalog_service.id)}
    )
    offering_id = created.json()["id"]

    activated = await client.put(f"/offerings/{offering_id}/active", headers=headers, json={"is_active": True})
    assert activated.status_code == 200
    assert activated.json()["is_active"] is True
    assert await _professionals_count(db, catalog_service.id) == 1

    listings = await client.get("/listings")
    assert [item["offering_id"] for item in listings.json()["items"]] == [offering_id]

    await client.put(f"/offerings/{offering_id}/active", headers=headers, json={"is_active": False})
    assert await _professionals_count(db, catalog_service.id) == 0
    assert (await client.get("/listings")).json()["items"] == []


@pytest.mark.asyncio
async def test_other_professional_cannot_edit(
    client: AsyncClient, db: AsyncSession, offering: ServiceOffering
):
    rival = Profile(id=uuid.uuid4(), full_name="Rival", email="rival@example.com", role=Role.PROFESSIONAL)
    db.add(rival)
    await db.commit()

    response = await client.put(
        f"/offerings/{offering.id}", headers=auth_headers(rival), json={"custom_title": "Hijacked"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_update_offering(client: AsyncClient, professional: Profile, offering: ServiceOffering):
    response = await client.put(
        f"/offerings/{offering.id}",
        headers=auth_headers(professional),
        json={"custom_title": "Logo + brand guide", "rate": "55"},
    )
    assert response.status_code == 200
    assert response.json()["custom_title"] == "Logo + brand guide"

    listings = (await client.get("/listings")).json()["items"]
    assert listings[0]["title"] == "Logo + brand guide"
    assert Decimal(listings[0]["hourly_rate"]) == Decimal("55")


@pytest.mark.asyncio
async def test_moving_active_offering_recounts_both_services(
    client: AsyncClient, db: AsyncSession, professional: Profile, offering: ServiceOffering,
    catalog_service: CatalogService,
):
    target = CatalogService(id=uuid.uuid4(), name="Illustration", category="Design & Creative")
    db.add(target)
    await db.commit()

    response = await client.put(
        f"/offerings/{offering.id}",
        headers=auth_headers(professional),
        json={"catalog_service_id": str(target.id)},
    )
    assert response.status_code == 200
    assert await _professionals_count(db, catalog_service.id) == 0
    assert await _professionals_count(db, target.id) == 1


@pytest.mark.asyncio
async def test_list_my_offerings(client: AsyncClient, professional: Profile, offering: ServiceOffering):
    response = await client.get("/offerings/me", headers=auth_headers(professional))
    assert response.status_code == 200
    [item] = response.json()
    assert item["id"] == str(offering.id)
    assert item["service_category"] == "Design & Creative"


@pytest.mark.asyncio
async def test_dashboard_counts(
    client: AsyncClient, db: AsyncSession, professional: Profile, client_user: Profile, offering: ServiceOffering
):
    def job(status):
        return Booking(
            client_id=client_user.id,
            professional_id=professional.id,
            offering_id=offering.id,
            title="Job",
            scheduled_at=datetime.now(timezone.utc) + timedelta(days=1),
            hours=Decimal("1"),
            budget=Decimal("40"),
            status=status,
        )

    db.add_all([
        job(BookingStatus.PENDING),
        job(BookingStatus.ACCEPTED),
        job(BookingStatus.COMPLETED),
        job(BookingStatus.CANCELLED),
    ])
    await db.commit()

    response = await client.get("/offerings/me/dashboard", headers=auth_headers(professional))
    assert response.status_code == 200
    assert response.json() == {
        "active_jobs": 2,
        "completed_jobs": 1,
        "total_services": 1,
        "active_services": 1,
    }
