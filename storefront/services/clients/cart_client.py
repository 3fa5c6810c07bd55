"""Cart provider abstractions and the REST implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated, Any

from fastapi import Depends

from storefront.models.cart import CartLine
from storefront.services.clients.http import RestApi, RestApiDependency, to_amount


class CartProvider(ABC):
    """Abstract server cart; adding an existing product/variant merges quantities."""

    @abstractmethod
    async def get_lines(self) -> list[CartLine]:
        """Return the authoritative cart contents."""

    @abstractmethod
    async def add_line(self, line: CartLine) -> None:
        """Add a line, merging with an existing product/variant."""

    @abstractmethod
    async def remove_line(self, line_id: str) -> None:
        """Remove a server cart item."""

    @abstractmethod
    async def clear(self) -> None:
        """Empty the server cart."""


class RestCartProvider(CartProvider):
    """Cart provider backed by the ``/cart`` endpoints."""

    def __init__(self, api: RestApi) -> None:
        self._api = api

    async def get_lines(self) -> list[CartLine]:
        payload = await self._api.request("GET", "/cart")
        return [_line(raw) for raw in payload.get("cartItems") or []]

    async def add_line(self, line: CartLine) -> None:
        await self._api.request(
            "POST",
            "/cart",
            json={
                "artworkId": line.product_id,
                "quantity": line.quantity,
                "type": "PRINT" if line.unit_reference else "ORIGINAL",
                "printSize": line.unit_reference,
            },
        )

    async def remove_line(self, line_id: str) -> None:
        await self._api.request("DELETE", f"/cart/{line_id}")

    async def clear(self) -> None:
        await self._api.request("DELETE", "/cart")


def _line(raw: dict[str, Any]) -> CartLine:
    artwork = raw.get("artwork") or raw.get("product") or {}
    quantity = max(1, int(raw.get("quantity") or 1))
    unit_reference = raw.get("printSize") if raw.get("type") == "PRINT" else None
    unit_price = to_amount(artwork.get("price"))
    if unit_reference:
        size = _print_size(artwork, unit_reference)
        if size is not None:
            unit_price = to_amount(size.get("price"))
    return CartLine(
        product_id=str(
            raw.get("artworkId") or raw.get("productId") or artwork.get("id")
        ),
        unit_reference=unit_reference,
        quantity=quantity,
        unit_price=unit_price,
        line_id=raw.get("id"),
        title=artwork.get("title"),
    )



def _print_size(artwork: dict[str, Any], name: str) -> dict[str, Any] | None:
    """Print size entry named ``name`` in the artwork's print options."""
    options = artwork.get("printOptions") or {}
    for size in options.get("sizes") or []:
        if size.get("name") == name:
            return size
    return None


def get_cart_provider(api: RestApiDependency) -> CartProvider:
    return RestCartProvider(api)


CartProviderDependency = Annotated[CartProvider, Depends(get_cart_provider)]
