"""Catalog view wiring: filter store, URL sync, queries and refinement."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from storefront.models.catalog import (
    CatalogBounds,
    CatalogEntry,
    FacetValues,
    FilterCriteria,
)
from storefront.services.catalog.filter_store import FilterStore
from storefront.services.catalog.pagination import page_window
from storefront.services.catalog.profiles import CatalogViewProfile
from storefront.services.catalog.query_executor import CatalogQueryExecutor
from storefront.services.catalog.refinement import refine_by_availability
from storefront.services.catalog.url_sync import QueryLocation, UrlSynchronizer
from storefront.services.clients.catalog_client import CatalogProvider
from storefront.services.errors import ProviderError

logger = logging.getLogger(__name__)

FacetLoader = Callable[[], Awaitable[FacetValues]]


class CatalogView:
    """One mounted catalog view (gallery, shop, collections).

    Owns its filter store for the lifetime of the mount. Criteria changes are
    persisted to the location and trigger a debounced query; the visible
    items are the fetched page refined by availability.
    """

    def __init__(
        self,
        profile: CatalogViewProfile,
        provider: CatalogProvider,
        location: QueryLocation,
        *,
        facet_loader: FacetLoader | None = None,
        executor: CatalogQueryExecutor | None = None,
    ) -> None:
        self.profile = profile
        self.store = FilterStore()
        self.synchronizer = UrlSynchronizer(self.store, location, profile)
        self.executor = executor or CatalogQueryExecutor(provider, profile)
        self._load_facets = facet_loader or provider.get_facet_values
        self._unsubscribe: Callable[[], None] | None = None
        self.facets: FacetValues | None = None
        self.facets_error: str | None = None
        self.mounted = False

    @property
    def criteria(self) -> FilterCriteria:
        return self.store.criteria

    @property
    def visible_items(self) -> list[CatalogEntry]:
        page = self.executor.page
        if page is None:
            return []
        return refine_by_availability(page.items, self.criteria.availability)

    @property
    def page_window(self) -> list[int | str]:
        page = self.executor.page
        if page is None:
            return []
        return page_window(self.criteria.page, page.pagination.total_pages)

    @property
    def active_filter_count(self) -> int:
        return self.criteria.active_filter_count(self.store.bounds)

    async def mount(self) -> None:
        """Load facets, restore criteria from the URL and run the first query.

        When the facets carry no price/year ranges the restore waits for the
        first page, whose entries supply the bounds, and the query is re-run
        with the restored criteria.
        """
        self._unsubscribe = self.store.subscribe(self._on_change)
        await self.refresh_facets()
        await self.executor.execute(self.store.criteria, self.store.bounds)
        self.mounted = True
        if self.facets is not None and not self.synchronizer.initialized:
            self._adopt_catalog_bounds()
            await self._complete_restore()

    async def unmount(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self.mounted = False
        await self.executor.aclose()

    async def refresh_facets(self) -> None:
        """Reload facets; completes a deferred restore once bounds exist."""
        try:
            facets = await self._load_facets()
        except ProviderError as exc:
            self.facets_error = exc.message
            logger.warning(
                "Facet load failed for %s: %s", self.profile.name, exc.message
            )
            if not self.synchronizer.initialized:
                self.synchronizer.restore_deferred = True
            return

        self.facets = facets
        self.facets_error = None
        if facets.bounds is not None:
            self.store.set_bounds(facets.bounds)
        else:
            self._adopt_catalog_bounds()
        if not self.synchronizer.initialized:
            await self._complete_restore()

    async def navigate(self, query: str) -> None:
        """Follow a deep link or back navigation to ``query``."""
        self.synchronizer.location.navigate(query)
        if self.store.bounds is None:
            await self.refresh_facets()
            return
        self.synchronizer.restore_from_url()

    def clear_filters(self) -> None:
        self.store.reset()

    def go_to_page(self, page: int) -> bool:
        """Move to ``page`` when it exists in the current result set."""
        current = self.executor.page
        if current is None or not 1 <= page <= current.pagination.total_pages:
            return False
        self.store.set_page(page)
        return True

    def _adopt_catalog_bounds(self) -> None:
        if self.store.bounds is not None or self.executor.page is None:
            return
        bounds = CatalogBounds.from_entries(self.executor.page.items)
        if bounds is not None:
            logger.debug("Using bounds of the loaded %s page", self.profile.name)
            self.store.set_bounds(bounds)

    async def _complete_restore(self) -> None:
        criteria = self.synchronizer.restore_from_url()
        if criteria is not None and self.mounted:
            await self.executor.execute(criteria, self.store.bounds)

    def _on_change(self, criteria: FilterCriteria) -> None:
        self.synchronizer.persist_to_url(criteria)
        if self.mounted:
            self.executor.schedule(criteria, self.store.bounds)
