"""Per-view naming of query parameters and provider resources."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogViewProfile:
    """How one catalog view names its facets in URLs and upstream requests."""

    name: str
    resource: str
    secondary_tag_param: str
    availability_param: str
    maker_param: str
    maker_filter_key: str
    sold_label: str
    secondary_tag_facet_key: str


GALLERY = CatalogViewProfile(
    name="gallery",
    resource="artworks",
    secondary_tag_param="medium",
    availability_param="stock",
    maker_param="artistId",
    maker_filter_key="artistId",
    sold_label="Sold",
    secondary_tag_facet_key="mediums",
)

SHOP = CatalogViewProfile(
    name="shop",
    resource="products",
    secondary_tag_param="type",
    availability_param="stock",
    maker_param="brandId",
    maker_filter_key="manufacturerId",
    sold_label="Out of Stock",
    secondary_tag_facet_key="types",
)

COLLECTIONS = CatalogViewProfile(
    name="collections",
    resource="artworks",
    secondary_tag_param="medium",
    availability_param="availability",
    maker_param="artistId",
    maker_filter_key="artistId",
    sold_label="Sold",
    secondary_tag_facet_key="mediums",
)

PROFILES: dict[str, CatalogViewProfile] = {
    profile.name: profile for profile in (GALLERY, SHOP, COLLECTIONS)
}


def get_profile(name: str) -> CatalogViewProfile | None:
    return PROFILES.get(name.lower())
