"""Catalog provider abstractions and the REST implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

from storefront.models.catalog import (
    CatalogEntry,
    CatalogPage,
    FacetValues,
    Pagination,
    ValueRange,
)
from storefront.services.catalog.profiles import CatalogViewProfile
from storefront.services.clients.http import RestApi, get_http_client, to_amount
from storefront.services.errors import ProviderError

ProviderFilters = Mapping[str, str | int]


class CatalogProvider(ABC):
    """Abstract catalog interface listing entries and facet values."""

    @abstractmethod
    async def list_page(self, filters: ProviderFilters) -> CatalogPage:
        """Return one page of entries; omitted filter keys mean no constraint."""

    @abstractmethod
    async def get_facet_values(self) -> FacetValues:
        """Return selectable facet values and the catalog-wide bounds."""


class RestCatalogProvider(CatalogProvider):
    """Catalog provider backed by the ``/artworks`` or ``/products`` endpoints."""

    def __init__(self, api: RestApi, profile: CatalogViewProfile) -> None:
        self._api = api
        self._profile = profile

    async def list_page(self, filters: ProviderFilters) -> CatalogPage:
        resource = self._profile.resource
        payload = await self._api.request("GET", f"/{resource}", params=dict(filters))
        raw_items = payload.get(resource) or payload.get("items") or []
        try:
            return CatalogPage(
                items=[_entry(raw) for raw in raw_items],
                pagination=Pagination(**_pagination(payload.get("pagination") or {})),
            )
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed {resource} page: {exc}") from exc

    async def get_facet_values(self) -> FacetValues:
        payload = await self._api.request("GET", f"/{self._profile.resource}/filters")
        try:
            return FacetValues(
                categories=list(payload.get("categories") or []),
                secondary_tags=list(
                    payload.get(self._profile.secondary_tag_facet_key) or []
                ),
                price=_value_range(payload.get("priceRange")),
                year=_value_range(payload.get("yearRange")),
            )
        except (TypeError, ValueError) as exc:
            raise ProviderError(f"Malformed facet payload: {exc}") from exc


def _entry(raw: dict[str, Any]) -> CatalogEntry:
    maker = raw.get("artist") or raw.get("manufacturer") or {}
    maker_user = maker.get("user") or {}
    return CatalogEntry(
        id=str(raw.get("id")),
        title=raw.get("title") or "",
        description=raw.get("description"),
        category=raw.get("category"),
        secondary_tag=raw.get("medium") or raw.get("type"),
        maker_id=raw.get("artistId") or raw.get("manufacturerId"),
        maker_name=(
            maker_user.get("fullName")
            or raw.get("artistName")
            or raw.get("manufacturerName")
        ),
        price=to_amount(raw.get("price")),
        year=raw.get("year"),
        in_stock=bool(raw.get("inStock", True)),
        image_url=raw.get("imageUrl"),
    )


def _pagination(raw: dict[str, Any]) -> dict[str, int]:
    keys = {
        "total": "total",
        "page": "page",
        "limit": "limit",
        "totalPages": "total_pages",
    }
    return {
        target: int(raw[source]) for source, target in keys.items() if source in raw
    }


def _value_range(raw: Any) -> ValueRange | None:
    if not isinstance(raw, dict) or raw.get("min") is None or raw.get("max") is None:
        return None
    return ValueRange(min=to_amount(raw["min"]), max=to_amount(raw["max"]))


def create_catalog_provider(
    profile: CatalogViewProfile,
    api: RestApi | None = None,
) -> CatalogProvider:
    return RestCatalogProvider(api or RestApi(get_http_client()), profile)
