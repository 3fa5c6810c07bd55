"""Filters the catalog provider cannot apply server side."""

from __future__ import annotations

from collections.abc import Iterable

from storefront.models.catalog import Availability, CatalogEntry


def refine_by_availability(
    items: Iterable[CatalogEntry],
    availability: Availability,
) -> list[CatalogEntry]:
    """Keep the entries matching ``availability``, preserving their order."""
    if availability == "available":
        return [item for item in items if item.in_stock]
    if availability == "sold":
        return [item for item in items if not item.in_stock]
    return list(items)
