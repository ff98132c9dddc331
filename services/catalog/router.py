"""
services/catalog/router.py
The service catalog professionals attach offerings to.
Reads are public and cached; writes are admin-only and drop the cache.
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from config.database import get_db
from config.redis_client import RedisCache, get_redis
from config.settings import settings
from shared.actor import Actor
from shared.middleware.auth import require_admin
from shared.models.models import CatalogService
from shared.schemas.schemas import (
    CatalogServiceCreate,
    CatalogServiceResponse,
    CatalogServiceUpdate,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["Catalog"])

CATALOG_CACHE_KEY = "catalog:all"


async def invalidate_catalog_cache(redis) -> None:
    await RedisCache(redis).delete(CATALOG_CACHE_KEY)


async def _get_service_or_404(service_id: UUID, db: AsyncSession) -> CatalogService:
    service = await db.get(CatalogService, service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Catalog service not found")
    return service


@router.get("", response_model=List[CatalogServiceResponse])
async def list_catalog(
    category: Optional[str] = Query(None),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    """Public: active catalog services, optionally narrowed to one category."""
    cache = RedisCache(redis)
    cached = await cache.get(CATALOG_CACHE_KEY)
    if cached is None:
        result = await db.scalars(
            select(CatalogService)
            .where(CatalogService.is_active.is_(True))
            .order_by(CatalogService.category, CatalogService.name)
        )
        cached = [
            CatalogServiceResponse.model_validate(s).model_dump(mode="json") for s in result
        ]
        await cache.set(CATALOG_CACHE_KEY, cached)

    services = [CatalogServiceResponse(**s) for s in cached]
    if category and category != settings.ALL_CATEGORIES_SENTINEL:
        services = [s for s in services if s.category == category]
    return services


@router.get("/{service_id}", response_model=CatalogServiceResponse)
async def get_catalog_service(service_id: UUID, db: AsyncSession = Depends(get_db)):
    return CatalogServiceResponse.model_validate(await _get_service_or_404(service_id, db))


@router.post("", response_model=CatalogServiceResponse, status_code=status.HTTP_201_CREATED)
async def create_catalog_service(
    data: CatalogServiceCreate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    service = CatalogService(**data.model_dump())
    db.add(service)
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info(f"Catalog service '{service.name}' created by admin {actor.id}")
    return CatalogServiceResponse.model_validate(service)


@router.put("/{service_id}", response_model=CatalogServiceResponse)
async def update_catalog_service(
    service_id: UUID,
    data: CatalogServiceUpdate,
    actor: Actor = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
    redis=Depends(get_redis),
):
    service = await _get_service_or_404(service_id, db)
    for field, value in data.model_dump(exclude_unset=True).items():
        # description may be cleared; the rest are NOT NULL columns
        if value is None and field != "description":
            continue
        setattr(service, field, value)
    await db.commit()
    await invalidate_catalog_cache(redis)

    logger.info(f"Catalog service {service.id} updated by admin {actor.id}")
    return CatalogServiceResponse.model_validate(service)
