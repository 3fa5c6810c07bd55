"""In-memory filter state for a single catalog view."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from storefront.models.catalog import (
    Availability,
    CatalogBounds,
    FilterCriteria,
    SortKey,
    ValueRange,
)

logger = logging.getLogger(__name__)

Listener = Callable[[FilterCriteria], None]


class FilterStore:
    """Holds the current criteria and notifies subscribers on every change.

    Any effective change to a field other than ``page`` resets ``page`` to 1.
    Price and year ranges are clamped to the catalog bounds instead of being
    rejected.
    """

    def __init__(
        self,
        bounds: CatalogBounds | None = None,
        criteria: FilterCriteria | None = None,
    ) -> None:
        self._bounds = bounds
        self._criteria = self._fit(criteria or FilterCriteria.defaults(bounds))
        self._listeners: list[Listener] = []

    @property
    def criteria(self) -> FilterCriteria:
        return self._criteria

    @property
    def bounds(self) -> CatalogBounds | None:
        return self._bounds

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; the returned callable unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def set_bounds(self, bounds: CatalogBounds) -> None:
        """Install new catalog bounds and re-clamp the current ranges."""
        self._bounds = bounds
        self._commit(self._fit(self._criteria), reset_page=False)

    def set_category(self, category: str | None) -> None:
        self._update(category=_facet(category))

    def set_secondary_tag(self, tag: str | None) -> None:
        self._update(secondary_tag=_facet(tag))

    def set_availability(self, availability: Availability) -> None:
        self._update(availability=availability)

    def set_sort_key(self, sort_key: SortKey) -> None:
        self._update(sort_key=sort_key)

    def set_search_text(self, text: str) -> None:
        self._update(search_text=text)

    def set_maker(self, maker_id: str | None) -> None:
        self._update(maker_id=_facet(maker_id))

    def set_price_range(self, low: int, high: int) -> None:
        if self._bounds is None:
            logger.debug("Ignoring price range before catalog bounds are known")
            return
        self._update(price_range=ValueRange.clamped(low, high, self._bounds.price))

    def set_year_range(self, low: int, high: int) -> None:
        if self._bounds is None:
            logger.debug("Ignoring year range before catalog bounds are known")
            return
        self._update(year_range=ValueRange.clamped(low, high, self._bounds.year))

    def set_page(self, page: int) -> None:
        updated = self._criteria.model_copy(update={"page": max(1, page)})
        self._commit(updated, reset_page=False)

    def replace(self, criteria: FilterCriteria) -> None:
        """Install a whole criteria object (e.g. restored from the URL) as-is."""
        self._commit(self._fit(criteria), reset_page=False)

    def reset(self) -> None:
        """Clear every filter back to the defaults."""
        self._commit(FilterCriteria.defaults(self._bounds), reset_page=False)

    def _update(self, **changes: Any) -> None:
        self._commit(self._criteria.model_copy(update=changes), reset_page=True)

    def _commit(self, candidate: FilterCriteria, *, reset_page: bool) -> None:
        if candidate == self._criteria:
            return
        if reset_page and candidate.page != 1:
            candidate = candidate.model_copy(update={"page": 1})
        self._criteria = candidate
        for listener in list(self._listeners):
            listener(candidate)

    def _fit(self, criteria: FilterCriteria) -> FilterCriteria:
        bounds = self._bounds
        if bounds is None:
            return criteria
        price = criteria.price_range or bounds.price
        year = criteria.year_range or bounds.year
        return criteria.model_copy(
            update={
                "price_range": ValueRange.clamped(price.min, price.max, bounds.price),
                "year_range": ValueRange.clamped(year.min, year.max, bounds.year),
            }
        )


def _facet(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None
