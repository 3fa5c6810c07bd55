"""Order provider abstractions and the REST implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated, Any

from fastapi import Depends

from storefront.models.checkout import (
    CreatedOrder,
    OrderDetails,
    OrderDraft,
    OrderStatus,
)
from storefront.services.clients.http import RestApi, RestApiDependency, to_amount
from storefront.services.errors import ProviderError

# Upstream exposes one action endpoint per status change.
_STATUS_ACTIONS: dict[str, str] = {
    "PAID": "pay",
    "SHIPPED": "ship",
    "DELIVERED": "deliver",
    "CANCELLED": "cancel",
}


class OrderProvider(ABC):
    """Abstract order interface; ``create`` is not idempotent."""

    @abstractmethod
    async def create(self, draft: OrderDraft) -> CreatedOrder:
        """Persist a new order upstream and return its identifier."""

    @abstractmethod
    async def get_by_id(self, order_id: str) -> OrderDetails:
        """Fetch the current state of an order."""

    @abstractmethod
    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        tracking_ref: str | None = None,
    ) -> None:
        """Move an order to ``status``, optionally recording a tracking number."""


class RestOrderProvider(OrderProvider):
    """Order provider backed by the ``/orders`` endpoints."""

    def __init__(self, api: RestApi) -> None:
        self._api = api

    async def create(self, draft: OrderDraft) -> CreatedOrder:
        body = {
            "items": [
                {
                    "artworkId": item.product_id,
                    "quantity": item.quantity,
                    "type": item.type,
                    "printSize": item.print_size,
                }
                for item in draft.items
            ],
            "shippingAddress": draft.shipping_address,
            "shippingCity": draft.shipping_city,
            "shippingCountry": draft.shipping_country,
            "paymentMethod": draft.payment_method,
            "currency": draft.currency,
            "notes": draft.notes,
        }
        payload = await self._api.request("POST", "/orders", json=body)
        order = payload.get("order") or {}
        if not order.get("id"):
            raise ProviderError("Order response did not include an order id")
        return CreatedOrder(order_id=str(order["id"]))

    async def get_by_id(self, order_id: str) -> OrderDetails:
        payload = await self._api.request("GET", f"/orders/{order_id}")
        return _order_details(payload.get("order") or {})

    async def update_status(
        self,
        order_id: str,
        status: OrderStatus,
        tracking_ref: str | None = None,
    ) -> None:
        action = _STATUS_ACTIONS.get(status)
        if action is None:
            raise ValueError(f"Orders cannot be moved back to {status}")
        body = {"trackingNumber": tracking_ref} if tracking_ref else None
        await self._api.request("PUT", f"/orders/{order_id}/{action}", json=body)


def _order_details(raw: dict[str, Any]) -> OrderDetails:
    if not raw.get("id"):
        raise ProviderError("Order response did not include an order id")
    return OrderDetails(
        id=str(raw["id"]),
        status=raw.get("status") or "PENDING",
        total_amount=to_amount(raw.get("totalAmount")),
        payment_method=raw.get("paymentMethod") or "STRIPE",
        shipping_address=raw.get("shippingAddress"),
        tracking_number=raw.get("trackingNumber"),
    )


def get_order_provider(api: RestApiDependency) -> OrderProvider:
    return RestOrderProvider(api)


OrderProviderDependency = Annotated[OrderProvider, Depends(get_order_provider)]
