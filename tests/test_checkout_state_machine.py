"""Tests for the checkout state machine."""

from __future__ import annotations

import asyncio

import pytest

from storefront.models.checkout import PaymentConfirmation, ShippingRate
from storefront.services.cart.aggregate import CartAggregate
from storefront.services.checkout.state_machine import CheckoutStateMachine
from storefront.services.checkout.totals import PromoCodeBook
from storefront.services.errors import (
    AuthRequired,
    CheckoutValidationError,
    InvalidTransitionError,
    ProviderError,
)

from conftest import StubShippingProvider


class _FlatRateShipping(StubShippingProvider):
    async def quote(self, country, lines):
        self.quotes.append(country)
        return [
            ShippingRate(id="flat", provider="Leopards", service="Flat", price=2_000)
        ]


@pytest.fixture()
def make_machine(providers, customer, cart_lines):
    def _make(auth=customer, lines=None, **overrides):
        options = {
            "orders": providers["orders"],
            "payments": providers["payments"],
            "shipping": providers["shipping"],
            "cart_provider": providers["cart"],
            "promo_codes": PromoCodeBook({"MURAQQA10": 10}),
            "home_country": "Pakistan",
            "currency": "PKR",
            "auth_redirect": "/auth?next=/checkout",
        }
        options.update(overrides)
        cart = CartAggregate(cart_lines if lines is None else lines)
        return CheckoutStateMachine(cart, auth=auth, **options)

    return _make


async def _at_shipping(machine):
    await machine.proceed_to_shipping()
    return machine


@pytest.mark.asyncio
async def test_unauthenticated_checkout_redirects(make_machine, providers):
    machine = make_machine(auth=None)

    with pytest.raises(AuthRequired) as excinfo:
        await machine.proceed_to_shipping()

    assert excinfo.value.redirect_to == "/auth?next=/checkout"
    assert machine.session.step == "cart"
    assert providers["shipping"].quotes == []


@pytest.mark.asyncio
async def test_empty_cart_cannot_proceed(make_machine):
    machine = make_machine(lines=[])

    with pytest.raises(CheckoutValidationError):
        await machine.proceed_to_shipping()

    assert machine.session.step == "cart"
    assert machine.session.error == "Your cart is empty"


@pytest.mark.asyncio
async def test_entering_shipping_prefills_profile_and_quotes(make_machine, providers):
    machine = await _at_shipping(make_machine())

    details = machine.session.shipping_details
    assert machine.session.step == "shipping"
    assert (details.first_name, details.last_name) == ("Amna", "Siddiqui")
    assert details.address == "14 Mall Road, Gulberg"
    assert details.city == "Lahore"
    assert providers["shipping"].quotes == ["Pakistan"]
    assert machine.session.selected_shipping_rate_id == "pk-standard"


@pytest.mark.asyncio
async def test_invalid_shipping_details_block_without_network(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.update_shipping(
        machine.session.shipping_details.model_copy(
            update={"address": "Short st", "city": "L"}
        )
    )

    with pytest.raises(CheckoutValidationError) as excinfo:
        await machine.submit_shipping()

    assert len(excinfo.value.messages) == 2
    assert machine.session.step == "shipping"
    assert machine.session.error == excinfo.value.messages[0]
    assert providers["orders"].drafts == []


@pytest.mark.asyncio
async def test_double_submit_creates_one_order(make_machine, providers):
    machine = await _at_shipping(make_machine())
    providers["orders"].gate = asyncio.Event()

    first = asyncio.create_task(machine.submit_shipping())
    await asyncio.sleep(0)
    assert machine.submitting

    assert await machine.submit_shipping() == "shipping"
    providers["orders"].gate.set()
    assert await first == "payment"

    assert len(providers["orders"].drafts) == 1
    assert not machine.submitting


@pytest.mark.asyncio
async def test_card_payment_flow(make_machine, providers):
    machine = await _at_shipping(make_machine())

    assert await machine.submit_shipping() == "payment"
    draft = providers["orders"].drafts[0]
    assert draft.payment_method == "STRIPE"
    assert [(item.product_id, item.quantity) for item in draft.items] == [
        ("art-1", 1),
        ("art-2", 2),
    ]
    assert draft.notes == "Shipping: Standard (TCS)"
    assert machine.session.pending_order_id == "order-1"

    intent = await machine.start_payment()
    assert intent.client_secret == "secret-order-1"
    assert providers["payments"].intents == [("order-1", "PKR")]

    assert await machine.confirm_payment(PaymentConfirmation(success=True)) == "success"
    assert machine.cart.subtotal() == 0
    assert providers["cart"].cleared


@pytest.mark.asyncio
async def test_bank_transfer_skips_payment(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.update_shipping(payment_method="bank_transfer")

    assert await machine.submit_shipping() == "success"

    assert providers["orders"].drafts[0].payment_method == "BANK"
    assert providers["payments"].intents == []
    assert machine.cart.subtotal() == 0
    assert machine.is_complete


@pytest.mark.asyncio
async def test_order_failure_keeps_step_and_allows_retry(make_machine, providers):
    machine = await _at_shipping(make_machine())
    providers["orders"].fail_with = ProviderError("Artwork no longer available")

    assert await machine.submit_shipping() == "shipping"
    assert machine.session.error == "Artwork no longer available"
    assert not machine.submitting

    providers["orders"].fail_with = None
    assert await machine.submit_shipping() == "payment"
    assert machine.session.error is None


@pytest.mark.asyncio
async def test_declined_payment_can_be_retried(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()
    await machine.start_payment()

    declined = PaymentConfirmation(success=False, error_message="Card declined")
    assert await machine.confirm_payment(declined) == "payment"
    assert machine.session.error == "Card declined"
    assert not machine.cart.is_empty()

    assert await machine.confirm_payment(PaymentConfirmation(success=True)) == "success"


@pytest.mark.asyncio
async def test_payment_intent_failure_is_recorded(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()
    providers["payments"].fail_with = ProviderError("Stripe unavailable")

    assert await machine.start_payment() is None
    assert machine.session.error == "Stripe unavailable"
    assert machine.session.step == "payment"


@pytest.mark.asyncio
async def test_disabled_card_payments(make_machine, providers):
    providers["payments"].enabled = False
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()

    assert await machine.start_payment() is None
    assert machine.session.error == "Card payments are not available"


@pytest.mark.asyncio
async def test_back_navigation(make_machine):
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()
    await machine.start_payment()

    assert machine.go_back() == "shipping"
    assert machine.session.client_secret is None
    assert machine.go_back() == "cart"
    with pytest.raises(InvalidTransitionError):
        machine.go_back()


@pytest.mark.asyncio
async def test_success_is_terminal(make_machine):
    machine = await _at_shipping(make_machine())
    await machine.update_shipping(payment_method="bank_transfer")
    await machine.submit_shipping()

    with pytest.raises(InvalidTransitionError):
        machine.go_back()
    with pytest.raises(InvalidTransitionError):
        await machine.submit_shipping()
    with pytest.raises(InvalidTransitionError):
        await machine.refresh_shipping_rates()


@pytest.mark.asyncio
async def test_resubmitting_unchanged_details_reuses_the_order(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()
    machine.go_back()

    await machine.submit_shipping()
    assert machine.session.pending_order_id == "order-1"
    assert len(providers["orders"].drafts) == 1

    machine.go_back()
    await machine.update_shipping(rate_id="pk-express")
    await machine.submit_shipping()
    assert machine.session.pending_order_id == "order-2"


@pytest.mark.asyncio
async def test_country_change_requotes_and_resets_rate(make_machine, providers):
    machine = await _at_shipping(make_machine())

    await machine.update_shipping(
        machine.session.shipping_details.model_copy(update={"country": "USA"})
    )

    assert providers["shipping"].quotes == ["Pakistan", "USA"]
    assert machine.session.selected_shipping_rate_id == "intl-standard"


@pytest.mark.asyncio
async def test_quote_failure_keeps_previous_rates(make_machine, providers):
    machine = await _at_shipping(make_machine())
    providers["shipping"].fail_with = ProviderError("Courier API down")

    await machine.update_shipping(
        machine.session.shipping_details.model_copy(update={"country": "UAE"})
    )

    assert machine.session.rates_error == "Courier API down"
    assert [rate.id for rate in machine.session.shipping_rates] == [
        "pk-standard",
        "pk-express",
    ]


@pytest.mark.asyncio
async def test_unknown_rate_is_rejected(make_machine):
    machine = await _at_shipping(make_machine())

    with pytest.raises(CheckoutValidationError):
        await machine.update_shipping(rate_id="teleport")

    assert machine.session.selected_shipping_rate_id == "pk-standard"


@pytest.mark.asyncio
async def test_promo_codes(make_machine):
    machine = make_machine()

    with pytest.raises(CheckoutValidationError):
        machine.apply_promo_code("not valid!")
    with pytest.raises(CheckoutValidationError):
        machine.apply_promo_code("SUMMER50")

    totals = machine.apply_promo_code("muraqqa10")
    assert machine.session.promo_code == "MURAQQA10"
    assert totals.discount == 10_000

    machine.remove_promo_code()
    assert machine.totals().discount == 0


@pytest.mark.asyncio
async def test_totals_follow_destination(make_machine):
    machine = await _at_shipping(make_machine(shipping=_FlatRateShipping()))
    machine.apply_promo_code("MURAQQA10")

    assert machine.totals().total == 92_000

    await machine.update_shipping(
        machine.session.shipping_details.model_copy(update={"country": "USA"})
    )
    totals = machine.totals()
    assert totals.tax == 5_000
    assert totals.total == 97_000


@pytest.mark.asyncio
async def test_cart_clear_failure_does_not_block_success(make_machine, providers):
    providers["cart"].fail_with = ProviderError("Cart service timeout")
    machine = await _at_shipping(make_machine())
    await machine.update_shipping(payment_method="bank_transfer")

    assert await machine.submit_shipping() == "success"
    assert machine.cart.is_empty()
    assert machine.session.error is None


@pytest.mark.asyncio
async def test_rates_are_frozen_once_the_order_exists(make_machine, providers):
    machine = await _at_shipping(make_machine())
    await machine.submit_shipping()
    quotes = list(providers["shipping"].quotes)

    with pytest.raises(InvalidTransitionError):
        await machine.refresh_shipping_rates()

    assert providers["shipping"].quotes == quotes
    assert machine.session.selected_shipping_rate_id == "pk-standard"
