"""Shipping rate provider abstractions and the REST implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import Annotated

from fastapi import Depends

from storefront.models.cart import CartLine
from storefront.models.checkout import ShippingRate
from storefront.services.clients.http import RestApi, RestApiDependency, to_amount


class ShippingRateProvider(ABC):
    """Abstract interface quoting shipping rates for a destination."""

    @abstractmethod
    async def quote(
        self, country: str, lines: Sequence[CartLine]
    ) -> list[ShippingRate]:
        """Return the available rates for shipping ``lines`` to ``country``."""


class RestShippingRateProvider(ShippingRateProvider):
    """Shipping rate provider backed by ``POST /shipping/rates``."""

    def __init__(self, api: RestApi) -> None:
        self._api = api

    async def quote(
        self, country: str, lines: Sequence[CartLine]
    ) -> list[ShippingRate]:
        payload = await self._api.request(
            "POST",
            "/shipping/rates",
            json={
                "country": country,
                "items": [
                    {"artworkId": line.product_id, "quantity": line.quantity}
                    for line in lines
                ],
            },
        )
        return [
            ShippingRate(
                id=str(raw["id"]),
                provider=raw.get("provider") or "",
                service=raw.get("service") or "",
                price=to_amount(raw.get("price")),
                currency=raw.get("currency") or "PKR",
                estimated_days=raw.get("estimatedDays"),
            )
            for raw in payload.get("rates") or []
            if raw.get("id")
        ]


def get_shipping_provider(api: RestApiDependency) -> ShippingRateProvider:
    return RestShippingRateProvider(api)


ShippingProviderDependency = Annotated[
    ShippingRateProvider, Depends(get_shipping_provider)
]
