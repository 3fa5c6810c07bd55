"""Debounced catalog queries with stale-while-error results."""

from __future__ import annotations

import asyncio
import logging

from storefront.config import settings
from storefront.models.catalog import (
    CatalogBounds,
    CatalogPage,
    FilterCriteria,
    ValueRange,
)
from storefront.services.catalog.profiles import CatalogViewProfile
from storefront.services.clients.catalog_client import CatalogProvider, ProviderFilters
from storefront.services.errors import ProviderError

logger = logging.getLogger(__name__)

_SORT_ORDERING: dict[str, tuple[str, str]] = {
    "newest": ("createdAt", "desc"),
    "oldest": ("createdAt", "asc"),
    "price_asc": ("price", "asc"),
    "price_desc": ("price", "desc"),
}


class CatalogQueryExecutor:
    """Turns criteria into catalog provider requests and keeps the last page.

    ``schedule`` collapses bursts of changes: each call cancels the pending
    timer and starts a new one, so only the last criteria inside the quiet
    interval are sent. Every dispatch is tagged with a generation number and
    responses from superseded generations are dropped.
    """

    def __init__(
        self,
        provider: CatalogProvider,
        profile: CatalogViewProfile,
        *,
        page_size: int | None = None,
        debounce_seconds: float | None = None,
    ) -> None:
        self._provider = provider
        self._profile = profile
        self._page_size = page_size or settings.CATALOG_PAGE_SIZE
        self._debounce = (
            settings.search_debounce_seconds
            if debounce_seconds is None
            else debounce_seconds
        )
        self._generation = 0
        self._timer: asyncio.TimerHandle | None = None
        self._pending_filters: dict[str, str | int] | None = None
        self._inflight: set[asyncio.Task[CatalogPage | None]] = set()

        self.page: CatalogPage | None = None
        self.error: str | None = None
        self.is_loading = False

    @property
    def has_pending(self) -> bool:
        return self._timer is not None

    def build_filters(
        self,
        criteria: FilterCriteria,
        bounds: CatalogBounds | None = None,
    ) -> dict[str, str | int]:
        """Flatten criteria into provider filters; omitted keys mean no constraint.

        Availability is left out on purpose: the provider cannot filter on it
        and the refinement step applies it after the fetch.
        """
        filters: dict[str, str | int] = {
            "page": criteria.page,
            "limit": self._page_size,
        }
        if criteria.category is not None:
            filters["category"] = criteria.category
        if criteria.secondary_tag is not None:
            filters[self._profile.secondary_tag_param] = criteria.secondary_tag
        if criteria.search_text.strip():
            filters["search"] = criteria.search_text.strip()
        if criteria.maker_id is not None:
            filters[self._profile.maker_filter_key] = criteria.maker_id

        sort_by, sort_order = _SORT_ORDERING[criteria.sort_key]
        filters["sortBy"] = sort_by
        filters["sortOrder"] = sort_order

        _add_range(
            filters,
            "Price",
            criteria.price_range,
            bounds.price if bounds else None,
        )
        _add_range(
            filters,
            "Year",
            criteria.year_range,
            bounds.year if bounds else None,
        )
        return filters

    def schedule(
        self,
        criteria: FilterCriteria,
        bounds: CatalogBounds | None = None,
    ) -> None:
        """Debounce a query for ``criteria``, replacing any pending one."""
        self._cancel_timer()
        self._pending_filters = self.build_filters(criteria, bounds)
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._debounce, self._fire)

    async def execute(
        self,
        criteria: FilterCriteria,
        bounds: CatalogBounds | None = None,
    ) -> CatalogPage | None:
        """Dispatch a query immediately, superseding any pending one."""
        self._cancel_timer()
        return await self._dispatch(self.build_filters(criteria, bounds))

    async def flush(self) -> None:
        """Send a pending debounced query now and wait for in-flight requests."""
        if self._timer is not None and self._pending_filters is not None:
            filters = self._pending_filters
            self._cancel_timer()
            await self._dispatch(filters)
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    async def aclose(self) -> None:
        self._cancel_timer()
        for task in list(self._inflight):
            task.cancel()
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._pending_filters = None

    def _fire(self) -> None:
        filters = self._pending_filters
        self._timer = None
        self._pending_filters = None
        if filters is None:
            return
        task = asyncio.get_running_loop().create_task(self._dispatch(filters))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _dispatch(self, filters: ProviderFilters) -> CatalogPage | None:
        self._generation += 1
        generation = self._generation
        self.is_loading = True
        try:
            page = await self._provider.list_page(filters)
        except ProviderError as exc:
            if generation == self._generation:
                self.error = exc.message
                logger.warning(
                    "Catalog query failed, keeping previous page: %s",
                    exc.message,
                    extra={"view": self._profile.name},
                )
            return None
        except Exception as exc:  # pylint: disable=broad-exception-caught
            if generation == self._generation:
                self.error = str(exc) or "Failed to fetch catalog"
                logger.exception("Unexpected catalog query failure")
            return None
        finally:
            if generation == self._generation:
                self.is_loading = False

        if generation != self._generation:
            logger.debug(
                "Discarding superseded catalog response (generation %s < %s)",
                generation,
                self._generation,
            )
            return None

        self.page = page
        self.error = None
        return page


def _add_range(
    filters: dict[str, str | int],
    suffix: str,
    value: ValueRange | None,
    bounds: ValueRange | None,
) -> None:
    if value is None:
        return
    if bounds is None or value.min != bounds.min:
        filters[f"min{suffix}"] = value.min
    if bounds is None or value.max != bounds.max:
        filters[f"max{suffix}"] = value.max
