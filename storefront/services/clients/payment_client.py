"""Payment provider abstractions and the REST implementation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Annotated

from fastapi import Depends

from storefront.models.checkout import PaymentConfig, PaymentIntent
from storefront.services.clients.http import RestApi, RestApiDependency, to_amount
from storefront.services.errors import ProviderError


class PaymentProvider(ABC):
    """Abstract card payment interface.

    Confirmation itself happens client side; the outcome is reported back to
    the checkout session as a ``PaymentConfirmation``.
    """

    @abstractmethod
    async def get_config(self) -> PaymentConfig:
        """Return whether card payments are enabled and the public key."""

    @abstractmethod
    async def create_intent(self, order_id: str, currency: str) -> PaymentIntent:
        """Create a payment intent for a pending order."""


class RestPaymentProvider(PaymentProvider):
    """Payment provider backed by the ``/payments`` endpoints."""

    def __init__(self, api: RestApi) -> None:
        self._api = api

    async def get_config(self) -> PaymentConfig:
        payload = await self._api.request("GET", "/payments/config")
        return PaymentConfig(
            enabled=bool(payload.get("enabled")),
            public_key=payload.get("publishableKey"),
        )

    async def create_intent(self, order_id: str, currency: str) -> PaymentIntent:
        payload = await self._api.request(
            "POST",
            "/payments/create-intent",
            json={"orderId": order_id, "currency": currency.lower()},
        )
        client_secret = payload.get("clientSecret")
        if not client_secret:
            raise ProviderError("Payment intent response had no client secret")
        return PaymentIntent(
            client_secret=client_secret,
            payment_intent_id=payload.get("paymentIntentId"),
            amount=to_amount(payload.get("amount")),
            currency=payload.get("currency"),
        )


def get_payment_provider(api: RestApiDependency) -> PaymentProvider:
    return RestPaymentProvider(api)


PaymentProviderDependency = Annotated[PaymentProvider, Depends(get_payment_provider)]
