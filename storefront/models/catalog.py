"""Catalog view models: filter criteria, bounds, pages and facets."""

from __future__ import annotations

from datetime import date
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

Availability = Literal["all", "available", "sold"]
SortKey = Literal["newest", "oldest", "price_asc", "price_desc"]


class ValueRange(BaseModel):
    """Inclusive numeric range used for price and year filters."""

    model_config = ConfigDict(frozen=True)

    min: int
    max: int

    @model_validator(mode="after")
    def _ordered(self) -> ValueRange:
        if self.min > self.max:
            raise ValueError("range minimum must not exceed its maximum")
        return self

    @classmethod
    def clamped(cls, low: int, high: int, bounds: ValueRange) -> ValueRange:
        """Build a range inside ``bounds``; reversed input is reordered."""
        if low > high:
            low, high = high, low
        low = min(max(low, bounds.min), bounds.max)
        high = min(max(high, bounds.min), bounds.max)
        return cls(min=low, max=high)


class CatalogBounds(BaseModel):
    """Catalog-wide limits that price/year filters are clamped to."""

    model_config = ConfigDict(frozen=True)

    price: ValueRange
    year: ValueRange

    @classmethod
    def from_entries(cls, entries: list[CatalogEntry]) -> CatalogBounds | None:
        """Bounds spanned by loaded entries; ``None`` when there are none.

        Entries without a year leave the year range open from 0 to the
        current year.
        """
        if not entries:
            return None
        prices = [entry.price for entry in entries]
        years = [entry.year for entry in entries if entry.year is not None]
        year = (
            ValueRange(min=min(years), max=max(years))
            if years
            else ValueRange(min=0, max=date.today().year)
        )
        return cls(price=ValueRange(min=min(prices), max=max(prices)), year=year)


class FilterCriteria(BaseModel):
    """Filter, sort and pagination state of a single catalog view.

    ``None`` on a facet means "no constraint". Ranges are ``None`` only while
    the catalog bounds are still unknown.
    """

    model_config = ConfigDict(frozen=True)

    category: str | None = None
    secondary_tag: str | None = None
    availability: Availability = "all"
    sort_key: SortKey = "newest"
    search_text: str = ""
    price_range: ValueRange | None = None
    year_range: ValueRange | None = None
    maker_id: str | None = None
    page: int = Field(default=1, ge=1)

    @classmethod
    def defaults(cls, bounds: CatalogBounds | None = None) -> FilterCriteria:
        if bounds is None:
            return cls()
        return cls(price_range=bounds.price, year_range=bounds.year)

    def active_filter_count(self, bounds: CatalogBounds | None = None) -> int:
        """Number of constraints that differ from the defaults."""
        active = [
            bool(self.search_text),
            self.category is not None,
            self.secondary_tag is not None,
            self.availability != "all",
            self.maker_id is not None,
        ]
        if bounds is not None:
            active.append(self.price_range not in (None, bounds.price))
            active.append(self.year_range not in (None, bounds.year))
        return sum(active)


class CatalogEntry(BaseModel):
    """A product or artwork as shown in a catalog listing."""

    id: str
    title: str
    description: str | None = None
    category: str | None = None
    secondary_tag: str | None = None
    maker_id: str | None = None
    maker_name: str | None = None
    price: int = Field(0, ge=0)
    year: int | None = None
    in_stock: bool = True
    image_url: str | None = None


class Pagination(BaseModel):
    total: int = Field(0, ge=0)
    page: int = Field(1, ge=1)
    limit: int = Field(20, ge=1)
    total_pages: int = Field(0, ge=0)


class CatalogPage(BaseModel):
    """One page of catalog results returned by the catalog provider."""

    items: list[CatalogEntry] = Field(default_factory=list)
    pagination: Pagination = Field(default_factory=Pagination)

    @model_validator(mode="after")
    def _within_limit(self) -> CatalogPage:
        if len(self.items) > self.pagination.limit:
            raise ValueError("catalog page holds more items than its limit")
        return self


class FacetValues(BaseModel):
    """Selectable facet values plus catalog-wide numeric bounds."""

    categories: list[str] = Field(default_factory=list)
    secondary_tags: list[str] = Field(default_factory=list)
    price: ValueRange | None = None
    year: ValueRange | None = None

    @property
    def bounds(self) -> CatalogBounds | None:
        """Bounds are unknown while the catalog is empty."""
        if self.price is None or self.year is None:
            return None
        return CatalogBounds(price=self.price, year=self.year)


class CatalogViewResponse(BaseModel):
    """Response body for GET /catalog/{view}."""

    view: str
    criteria: FilterCriteria
    query: str = Field(..., description="Canonical query string for the criteria")
    items: list[CatalogEntry] = Field(default_factory=list)
    pagination: Pagination
    page_window: list[int | str] = Field(default_factory=list)
    active_filters: int = 0
    restore_deferred: bool = False
    error: str | None = None
