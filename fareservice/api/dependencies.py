"""FastAPI dependency injection helpers."""

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from fareservice.config import settings
from fareservice.domain.quoting import FareQuoteService
from fareservice.infrastructure.database import async_session_factory
from fareservice.infrastructure.drafts import DraftStore
from fareservice.infrastructure.redis_client import get_redis
from fareservice.infrastructure.repositories import SqlPricingCatalog
from fareservice.infrastructure.routing import LazyRouteProvider, build_route_provider


async def get_db() -> AsyncSession:  # type: ignore[misc]
    """Yield an async DB session; commit on success, rollback on error."""
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def get_redis_client() -> aioredis.Redis:
    return await get_redis()


def get_draft_store(
    redis: aioredis.Redis = Depends(get_redis_client),
) -> DraftStore:
    return DraftStore(redis, ttl_seconds=settings.draft_ttl_seconds)


def get_route_provider(
    redis: aioredis.Redis = Depends(get_redis_client),
) -> LazyRouteProvider:
    return LazyRouteProvider(lambda: build_route_provider(settings, redis))


def get_quote_service(
    db: AsyncSession = Depends(get_db),
    routes=Depends(get_route_provider),
) -> FareQuoteService:
    return FareQuoteService(
        SqlPricingCatalog(db),
        routes,
        rental_included_km_offset=settings.rental_included_km_offset,
    )
