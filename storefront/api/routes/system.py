"""System-level routes such as health checks."""

from __future__ import annotations

import httpx
from fastapi import APIRouter

from storefront.config import settings
from storefront.services.cache.facet_cache import get_redis_client

router = APIRouter(tags=["system"])


@router.get("/")
async def read_root() -> dict[str, str]:
    """Smoke test endpoint."""

    return {"message": "Muraqqa storefront"}


@router.get("/health")
async def health_check() -> dict[str, str]:
    """Health check with commerce API and Redis connectivity checks."""

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{settings.COMMERCE_API_URL.rstrip('/')}/health", timeout=5.0
            )
            api_status = "connected" if response.status_code == 200 else "disconnected"
    except Exception:  # pylint: disable=broad-exception-caught
        api_status = "disconnected"

    try:
        await get_redis_client().ping()
        redis_status = "connected"
    except Exception:  # pylint: disable=broad-exception-caught
        redis_status = "disconnected"

    return {
        "status": "healthy",
        "commerce_api": api_status,
        "redis": redis_status,
        "environment": settings.ENVIRONMENT,
    }
