"""Catalog view routes: filtered listings and facet values."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Annotated

import redis.asyncio as redis
from fastapi import APIRouter, Depends, HTTPException, Request, status

from storefront.models.catalog import CatalogViewResponse, FacetValues
from storefront.services.cache.facet_cache import FacetCache, get_redis_client
from storefront.services.catalog.profiles import CatalogViewProfile, get_profile
from storefront.services.catalog.url_sync import QueryLocation
from storefront.services.catalog.view import CatalogView
from storefront.services.clients.catalog_client import (
    CatalogProvider,
    create_catalog_provider,
)
from storefront.services.errors import ProviderError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/catalog", tags=["catalog"])

CatalogProviderFactory = Callable[[CatalogViewProfile], CatalogProvider]


def get_catalog_provider_factory() -> CatalogProviderFactory:
    return create_catalog_provider


def get_facet_cache(
    client: Annotated[redis.Redis, Depends(get_redis_client)],
) -> FacetCache:
    return FacetCache(client)


def _resolve_profile(view: str) -> CatalogViewProfile:
    profile = get_profile(view)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Unknown catalog view '{view}'")
    return profile


ProfileDependency = Annotated[CatalogViewProfile, Depends(_resolve_profile)]
ProviderFactoryDependency = Annotated[
    CatalogProviderFactory, Depends(get_catalog_provider_factory)
]
FacetCacheDependency = Annotated[FacetCache, Depends(get_facet_cache)]


@router.get(
    "/{view}",
    response_model=CatalogViewResponse,
    summary="List one page of a catalog view",
)
async def read_catalog_view(
    request: Request,
    profile: ProfileDependency,
    provider_factory: ProviderFactoryDependency,
    cache: FacetCacheDependency,
) -> CatalogViewResponse:
    """Restore criteria from the query string and run the catalog query.

    The response carries the canonical query for the restored criteria so
    clients can replace their address bar with it. While the restore is
    deferred the incoming query is echoed back untouched.
    """
    provider = provider_factory(profile)
    view = CatalogView(
        profile,
        provider,
        QueryLocation(request.url.query),
        facet_loader=lambda: cache.get_or_load(profile.name, provider.get_facet_values),
    )
    try:
        await view.mount()
    finally:
        await view.unmount()

    page = view.executor.page
    synchronizer = view.synchronizer
    if page is None:
        detail = view.executor.error or view.facets_error or "Catalog unavailable"
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)

    return CatalogViewResponse(
        view=profile.name,
        criteria=view.criteria,
        query=(
            synchronizer.serialize(view.criteria)
            if synchronizer.initialized
            else synchronizer.location.query
        ),
        items=view.visible_items,
        pagination=page.pagination,
        page_window=view.page_window,
        active_filters=view.active_filter_count,
        restore_deferred=synchronizer.restore_deferred,
        error=view.executor.error,
    )


@router.get(
    "/{view}/facets",
    response_model=FacetValues,
    summary="Selectable facet values and price/year bounds",
)
async def read_catalog_facets(
    profile: ProfileDependency,
    provider_factory: ProviderFactoryDependency,
    cache: FacetCacheDependency,
) -> FacetValues:
    provider = provider_factory(profile)
    try:
        return await cache.get_or_load(profile.name, provider.get_facet_values)
    except ProviderError as exc:
        logger.warning("Facet load failed for %s: %s", profile.name, exc.message)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
        ) from exc
