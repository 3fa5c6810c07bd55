"""Two-way sync between a catalog view's filters and its query string."""

from __future__ import annotations

import logging

import httpx

from storefront.models.catalog import (
    Availability,
    CatalogBounds,
    FilterCriteria,
    SortKey,
    ValueRange,
)
from storefront.services.catalog.filter_store import FilterStore
from storefront.services.catalog.profiles import CatalogViewProfile

logger = logging.getLogger(__name__)

SORT_PARAM_VALUES: dict[SortKey, str] = {
    "newest": "newest",
    "oldest": "oldest",
    "price_asc": "price-asc",
    "price_desc": "price-desc",
}
_SORT_KEYS: dict[str, SortKey] = {
    **{value: key for key, value in SORT_PARAM_VALUES.items()},
    **{key: key for key in SORT_PARAM_VALUES},
}
_AVAILABLE_VALUES = {"available", "in stock", "in-stock"}
_SOLD_VALUES = {"sold", "out of stock", "out-of-stock", "sold-out", "soldout"}


class QueryLocation:
    """The address bar query string of a view.

    Writes use replace semantics, so persisting never grows the history.
    """

    def __init__(self, query: str = "") -> None:
        self._query = query.lstrip("?")
        self.replace_count = 0

    @property
    def query(self) -> str:
        return self._query

    @property
    def params(self) -> httpx.QueryParams:
        return httpx.QueryParams(self._query)

    def replace(self, query: str) -> None:
        self._query = query.lstrip("?")
        self.replace_count += 1

    def navigate(self, query: str) -> None:
        """Simulate user navigation (deep link, back button) to ``query``."""
        self._query = query.lstrip("?")


class UrlSynchronizer:
    """Restores criteria from the URL once, then persists every change.

    Persistence stays disabled until the first restore has completed, so a
    deep link is never overwritten with defaults while the view is mounting.
    """

    def __init__(
        self,
        store: FilterStore,
        location: QueryLocation,
        profile: CatalogViewProfile,
    ) -> None:
        self._store = store
        self._location = location
        self._profile = profile
        self.initialized = False
        self.restore_deferred = False

    @property
    def location(self) -> QueryLocation:
        return self._location

    def restore_from_url(self) -> FilterCriteria | None:
        """Load criteria from the current query string into the store.

        Returns ``None`` and marks the restore as deferred while catalog
        bounds are unknown (empty catalog); call again once they arrive.
        """
        bounds = self._store.bounds
        if bounds is None:
            self.restore_deferred = True
            logger.info(
                "Deferring %s filter restore until catalog bounds are known",
                self._profile.name,
            )
            return None

        self._store.replace(self.parse(self._location.query, bounds))
        self.restore_deferred = False
        self.initialized = True
        return self._store.criteria

    def persist_to_url(self, criteria: FilterCriteria) -> bool:
        """Write ``criteria`` to the query string; returns True when written."""
        if not self.initialized:
            logger.debug("Skipping URL persist before the first restore")
            return False

        query = self.serialize(criteria)
        if query == self._location.query:
            return False
        self._location.replace(query)
        return True

    def parse(self, query: str, bounds: CatalogBounds) -> FilterCriteria:
        params = httpx.QueryParams(query.lstrip("?"))
        profile = self._profile
        return FilterCriteria(
            category=_facet(params.get("category")),
            secondary_tag=_facet(params.get(profile.secondary_tag_param)),
            availability=_availability(params.get(profile.availability_param)),
            sort_key=_SORT_KEYS.get((params.get("sort") or "").lower(), "newest"),
            search_text=params.get("search") or "",
            price_range=_range(
                params.get("priceMin"), params.get("priceMax"), bounds.price
            ),
            year_range=_range(
                params.get("yearMin"), params.get("yearMax"), bounds.year
            ),
            maker_id=_facet(params.get(profile.maker_param)),
            page=max(1, _int(params.get("page")) or 1),
        )

    def serialize(self, criteria: FilterCriteria) -> str:
        profile = self._profile
        bounds = self._store.bounds
        pairs: list[tuple[str, str]] = []

        if criteria.search_text:
            pairs.append(("search", criteria.search_text))
        if criteria.category is not None:
            pairs.append(("category", criteria.category))
        if criteria.secondary_tag is not None:
            pairs.append((profile.secondary_tag_param, criteria.secondary_tag))
        if criteria.availability == "available":
            pairs.append((profile.availability_param, "Available"))
        elif criteria.availability == "sold":
            pairs.append((profile.availability_param, profile.sold_label))
        if criteria.maker_id is not None:
            pairs.append((profile.maker_param, criteria.maker_id))
        if criteria.sort_key != "newest":
            pairs.append(("sort", SORT_PARAM_VALUES[criteria.sort_key]))
        if bounds is not None:
            pairs.extend(_range_pairs("price", criteria.price_range, bounds.price))
            pairs.extend(_range_pairs("year", criteria.year_range, bounds.year))
        if criteria.page > 1:
            pairs.append(("page", str(criteria.page)))

        return str(httpx.QueryParams(pairs))


def _facet(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    # Older links still carry the "All" sentinel.
    if not value or value.lower() == "all":
        return None
    return value


def _availability(value: str | None) -> Availability:
    normalized = (value or "").strip().lower()
    if normalized in _AVAILABLE_VALUES:
        return "available"
    if normalized in _SOLD_VALUES:
        return "sold"
    return "all"


def _int(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None


def _range(low: str | None, high: str | None, bounds: ValueRange) -> ValueRange:
    low_value = _int(low)
    high_value = _int(high)
    return ValueRange.clamped(
        bounds.min if low_value is None else low_value,
        bounds.max if high_value is None else high_value,
        bounds,
    )


def _range_pairs(
    prefix: str,
    value: ValueRange | None,
    bounds: ValueRange,
) -> list[tuple[str, str]]:
    if value is None:
        return []
    pairs = []
    if value.min != bounds.min:
        pairs.append((f"{prefix}Min", str(value.min)))
    if value.max != bounds.max:
        pairs.append((f"{prefix}Max", str(value.max)))
    return pairs
