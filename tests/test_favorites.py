"""
tests/test_favorites.py
Tests for the favorites toggle, duplicate-insert handling and the resolved view.
"""

import uuid

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from services.favorite import registry
from shared.exceptions import PermissionDenied, ValidationError
from shared.models.models import Favorite, Profile, ServiceOffering
from tests.conftest import actor_for, auth_headers


async def _favorite_count(db: AsyncSession, client_id) -> int:
    return await db.scalar(select(func.count(Favorite.id)).where(Favorite.client_id == client_id))


# ── Registry ───────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_toggle_adds_then_removes(db: AsyncSession, client_user: Profile, offering: ServiceOffering):
    actor = actor_for(client_user)

    assert await registry.toggle_favorite(db, actor, offering.id) == registry.ToggleResult.ADDED
    assert await _favorite_count(db, client_user.id) == 1

    assert await registry.toggle_favorite(db, actor, offering.id) == registry.ToggleResult.REMOVED
    assert await _favorite_count(db, client_user.id) == 0


@pytest.mark.asyncio
async def test_duplicate_insert_keeps_one_row(db: AsyncSession, client_user: Profile, offering: ServiceOffering):
    """A second insert of the same pair (lost race) is absorbed, not raised."""
    assert await registry.add_favorite(db, client_user.id, offering.id) is True
    await db.commit()

    assert await registry.add_favorite(db, client_user.id, offering.id) is False
    await db.commit()

    assert await _favorite_count(db, client_user.id) == 1


@pytest.mark.asyncio
async def test_unknown_offering_rejected(db: AsyncSession, client_user: Profile):
    with pytest.raises(ValidationError):
        await registry.toggle_favorite(db, actor_for(client_user), uuid.uuid4())
    assert await _favorite_count(db, client_user.id) == 0


@pytest.mark.asyncio
async def test_professional_cannot_favorite(db: AsyncSession, professional: Profile, offering: ServiceOffering):
    with pytest.raises(PermissionDenied):
        await registry.toggle_favorite(db, actor_for(professional), offering.id)


@pytest.mark.asyncio
async def test_favorites_are_per_client(
    db: AsyncSession, client_user: Profile, other_client: Profile, offering: ServiceOffering
):
    await registry.toggle_favorite(db, actor_for(client_user), offering.id)

    assert await registry.favorite_offering_ids(db, actor_for(client_user)) == [offering.id]
    assert await registry.favorite_offering_ids(db, actor_for(other_client)) == []


@pytest.mark.asyncio
async def test_deactivated_offering_kept_but_hidden(
    db: AsyncSession, client_user: Profile, offering: ServiceOffering
):
    actor = actor_for(client_user)
    await registry.toggle_favorite(db, actor, offering.id)

    [listing] = await registry.list_favorites(db, actor)
    assert listing.offering_id == offering.id
    assert listing.is_favorite is True

    offering.is_active = False
    await db.commit()

    assert await registry.list_favorites(db, actor) == []
    assert await registry.favorite_offering_ids(db, actor) == [offering.id]

    # Unstarring the stale row still works
    assert await registry.toggle_favorite(db, actor, offering.id) == registry.ToggleResult.REMOVED


# ── HTTP ───────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_toggle_endpoint(client: AsyncClient, client_user: Profile, offering: ServiceOffering):
    headers = auth_headers(client_user)

    added = await client.post(f"/favorites/{offering.id}/toggle", headers=headers)
    assert added.status_code == 200
    assert added.json() == {"offering_id": str(offering.id), "result": "added"}

    listed = await client.get("/favorites", headers=headers)
    assert listed.status_code == 200
    assert [item["offering_id"] for item in listed.json()] == [str(offering.id)]

    removed = await client.post(f"/favorites/{offering.id}/toggle", headers=headers)
    assert removed.json()["result"] == "removed"

    listed = await client.get("/favorites", headers=headers)
    assert listed.json() == []


@pytest.mark.asyncio
async def test_toggle_requires_auth(client: AsyncClient, offering: ServiceOffering):
    response = await client.post(f"/favorites/{offering.id}/toggle")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_professional_toggle_forbidden(client: AsyncClient, professional: Profile, offering: ServiceOffering):
    response = await client.post(f"/favorites/{offering.id}/toggle", headers=auth_headers(professional))
    assert response.status_code == 403
    assert response.json()["code"] == "permission_denied"
