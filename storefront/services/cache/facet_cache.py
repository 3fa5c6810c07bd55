"""Redis-backed cache of facet values and catalog bounds."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

import redis.asyncio as redis
from redis.exceptions import RedisError

from storefront.config import settings
from storefront.models.catalog import FacetValues

logger = logging.getLogger(__name__)

_redis_client: redis.Redis | None = None


def get_redis_client() -> redis.Redis:
    """Return a singleton Redis client for the current process."""

    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(
            settings.REDIS_URL,
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_client


async def close_redis_client() -> None:
    global _redis_client
    if _redis_client is not None:
        await _redis_client.aclose()
        _redis_client = None


class FacetCache:
    """Wrapper around Redis caching facet payloads per catalog view.

    Redis failures never block a view: the loader is called instead.
    """

    def __init__(self, client: redis.Redis, *, ttl: int | None = None) -> None:
        self._client = client
        self._prefix = settings.FACET_CACHE_KEY_PREFIX
        self._ttl = ttl or settings.FACET_CACHE_TTL_SECONDS

    def _key(self, view: str) -> str:
        return f"{self._prefix}{view}"

    async def get_or_load(
        self,
        view: str,
        loader: Callable[[], Awaitable[FacetValues]],
    ) -> FacetValues:
        cached = await self.fetch(view)
        if cached is not None:
            return cached

        facets = await loader()
        # An empty catalog is not cached so new listings show up right away.
        if facets.categories or facets.secondary_tags or facets.bounds is not None:
            await self.save(view, facets)
        return facets

    async def fetch(self, view: str) -> FacetValues | None:
        try:
            raw = await self._client.get(self._key(view))
        except RedisError as exc:
            logger.warning("Facet cache read failed for %s: %s", view, exc)
            return None
        if not raw:
            return None
        try:
            return FacetValues.model_validate_json(raw)
        except ValueError:
            logger.warning("Discarding malformed facet cache entry for %s", view)
            return None

    async def save(self, view: str, facets: FacetValues) -> None:
        try:
            await self._client.set(
                self._key(view), facets.model_dump_json(), ex=self._ttl
            )
        except RedisError as exc:
            logger.warning("Facet cache write failed for %s: %s", view, exc)

    async def invalidate(self, view: str) -> None:
        try:
            await self._client.delete(self._key(view))
        except RedisError as exc:
            logger.warning("Facet cache delete failed for %s: %s", view, exc)
