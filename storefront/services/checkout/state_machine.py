"""Checkout flow: cart -> shipping -> payment -> success."""

from __future__ import annotations

import logging
import uuid
from collections.abc import Sequence

from storefront.config import settings
from storefront.models.checkout import (
    AuthContext,
    CheckoutSession,
    CheckoutSessionView,
    CheckoutStep,
    CheckoutTotals,
    OrderDraft,
    OrderItemDraft,
    PaymentConfirmation,
    PaymentIntent,
    PaymentMethod,
    ShippingDetails,
    ShippingRate,
)
from storefront.services.cart.aggregate import CartAggregate
from storefront.services.checkout.totals import PromoCodeBook, compute_totals
from storefront.services.checkout.validation import shipping_errors
from storefront.services.clients.cart_client import CartProvider
from storefront.services.clients.order_client import OrderProvider
from storefront.services.clients.payment_client import PaymentProvider
from storefront.services.clients.shipping_client import ShippingRateProvider
from storefront.services.errors import (
    AuthRequired,
    CheckoutValidationError,
    InvalidTransitionError,
    ProviderError,
)

logger = logging.getLogger(__name__)

_PREVIOUS_STEP: dict[str, CheckoutStep] = {
    "payment": "shipping",
    "shipping": "cart",
}


class CheckoutStateMachine:
    """Drives one checkout attempt over a cart.

    Provider failures never escape: they are recorded on ``session.error``
    and the step stays where it was so the customer can retry. Validation
    failures are recorded the same way and raised as
    ``CheckoutValidationError`` without touching any provider.

    Order creation is not idempotent upstream, so ``submit_shipping`` is
    disabled while a creation request is in flight.
    """

    def __init__(
        self,
        cart: CartAggregate,
        *,
        orders: OrderProvider,
        payments: PaymentProvider,
        shipping: ShippingRateProvider,
        auth: AuthContext | None = None,
        cart_provider: CartProvider | None = None,
        promo_codes: PromoCodeBook | None = None,
        session_id: str | None = None,
        home_country: str | None = None,
        currency: str | None = None,
        auth_redirect: str | None = None,
    ) -> None:
        self._cart = cart
        self._orders = orders
        self._payments = payments
        self._shipping = shipping
        self._auth = auth
        self._cart_provider = cart_provider
        self._promo_codes = promo_codes or PromoCodeBook()
        self._home_country = home_country or settings.HOME_COUNTRY
        self._currency = currency or settings.CURRENCY
        self._auth_redirect = auth_redirect or settings.AUTH_REDIRECT_URL
        self._submitting = False
        self._pending_draft: OrderDraft | None = None

        self.session = CheckoutSession(
            session_id=session_id or str(uuid.uuid4()),
            shipping_details=ShippingDetails(country=self._home_country),
        )

    @property
    def cart(self) -> CartAggregate:
        return self._cart

    @property
    def submitting(self) -> bool:
        return self._submitting

    @property
    def is_complete(self) -> bool:
        return self.session.step == "success"

    @property
    def owner_id(self) -> str | None:
        return self._auth.user.id if self._auth else None

    def authenticate(self, auth: AuthContext) -> None:
        self._auth = auth

    def attach_providers(
        self,
        *,
        orders: OrderProvider,
        payments: PaymentProvider,
        shipping: ShippingRateProvider,
        cart_provider: CartProvider | None = None,
    ) -> None:
        """Swap in request-scoped providers carrying the caller's credentials."""
        self._orders = orders
        self._payments = payments
        self._shipping = shipping
        self._cart_provider = cart_provider

    def view(self) -> CheckoutSessionView:
        return CheckoutSessionView(
            session=self.session,
            totals=self.totals(),
            lines=self._cart.lines,
            submitting=self._submitting,
        )

    def totals(self) -> CheckoutTotals:
        rate = self.session.selected_rate
        return compute_totals(
            self._cart.subtotal(),
            shipping=rate.price if rate else 0,
            discount_percent=self._promo_codes.percent_for(self.session.promo_code),
            shipping_country=self.session.shipping_details.country,
            home_country=self._home_country,
            currency=self._currency,
        )

    # Cart -> Shipping

    async def proceed_to_shipping(self) -> CheckoutStep:
        self._require("cart", "proceed to shipping")
        if self._auth is None:
            logger.info(
                "Checkout %s requires sign-in, redirecting to %s",
                self.session.session_id,
                self._auth_redirect,
            )
            raise AuthRequired(self._auth_redirect)
        if self._cart.is_empty():
            self._reject(["Your cart is empty"])

        self._prefill_shipping_details()
        self.session.step = "shipping"
        self.session.error = None
        await self.refresh_shipping_rates()
        return self.session.step

    # Shipping step editing

    async def update_shipping(
        self,
        details: ShippingDetails | None = None,
        *,
        rate_id: str | None = None,
        payment_method: PaymentMethod | None = None,
    ) -> None:
        self._require_any(("cart", "shipping"), "change shipping details")
        country_changed = False
        if details is not None:
            previous = self.session.shipping_details.country.strip().lower()
            country_changed = details.country.strip().lower() != previous
            self.session.shipping_details = details
        if payment_method is not None:
            self.session.payment_method = payment_method
        if country_changed or (rate_id is not None and not self.session.shipping_rates):
            await self.refresh_shipping_rates()
        if rate_id is not None:
            self.select_shipping_rate(rate_id)

    async def refresh_shipping_rates(self) -> list[ShippingRate]:
        """Quote rates for the current country; failures keep the old rates."""
        self._require_any(("cart", "shipping"), "refresh shipping rates")
        country = self.session.shipping_details.country.strip()
        if not country:
            return self.session.shipping_rates
        try:
            rates = await self._shipping.quote(country, self._cart.lines)
        except ProviderError as exc:
            self.session.rates_error = exc.message
            logger.warning(
                "Shipping quote failed for checkout %s: %s",
                self.session.session_id,
                exc.message,
            )
            return self.session.shipping_rates

        self.session.shipping_rates = rates
        self.session.rates_error = None
        if self.session.selected_rate is None:
            self.session.selected_shipping_rate_id = rates[0].id if rates else None
        return rates

    def select_shipping_rate(self, rate_id: str) -> None:
        if not any(rate.id == rate_id for rate in self.session.shipping_rates):
            self._reject([f"Unknown shipping rate '{rate_id}'"])
        self.session.selected_shipping_rate_id = rate_id

    def apply_promo_code(self, code: str) -> CheckoutTotals:
        self._require_any(("cart", "shipping"), "apply a promo code")
        if not PromoCodeBook.is_well_formed(code):
            self._reject(["Promo code format is invalid"])
        if code not in self._promo_codes:
            self._reject(["Promo code is not recognised"])
        self.session.promo_code = PromoCodeBook.normalize(code)
        self.session.error = None
        return self.totals()

    def remove_promo_code(self) -> None:
        self.session.promo_code = None

    # Shipping -> Payment | Success

    async def submit_shipping(self) -> CheckoutStep:
        """Validate shipping, create the order and advance.

        Bank transfers finish immediately; card payments move to the payment
        step carrying the created order id.
        """
        if self._submitting:
            logger.info(
                "Ignoring duplicate order submission for checkout %s",
                self.session.session_id,
            )
            return self.session.step
        self._require("shipping", "submit shipping details")
        if self._auth is None:
            raise AuthRequired(self._auth_redirect)

        errors = shipping_errors(self.session)
        if self._cart.is_empty():
            errors.insert(0, "Your cart is empty")
        if errors:
            self._reject(errors)

        draft = self._order_draft()
        self._submitting = True
        self.session.error = None
        try:
            order_id = await self._place_order(draft)
        except ProviderError as exc:
            self.session.error = exc.message or "Failed to create order"
            logger.warning(
                "Order creation failed for checkout %s: %s",
                self.session.session_id,
                exc.message,
                exc_info=True,
            )
            return self.session.step
        finally:
            self._submitting = False

        self.session.pending_order_id = order_id
        if self.session.payment_method == "bank_transfer":
            await self._complete()
        else:
            self.session.step = "payment"
        return self.session.step

    # Payment -> Success

    async def start_payment(self) -> PaymentIntent | None:
        """Ask the payment provider for a client secret for the pending order."""
        self._require("payment", "start payment")
        order_id = self.session.pending_order_id
        if order_id is None:
            raise InvalidTransitionError(self.session.step, "start payment")
        try:
            config = await self._payments.get_config()
            if not config.enabled:
                self.session.error = "Card payments are not available"
                return None
            intent = await self._payments.create_intent(order_id, self._currency)
        except ProviderError as exc:
            self.session.error = exc.message
            logger.warning(
                "Payment intent failed for order %s: %s", order_id, exc.message
            )
            return None

        self.session.client_secret = intent.client_secret
        self.session.error = None
        return intent

    async def confirm_payment(self, confirmation: PaymentConfirmation) -> CheckoutStep:
        self._require("payment", "confirm payment")
        if not confirmation.success:
            self.session.error = (
                confirmation.error_message or "Payment failed. Please try again."
            )
            logger.warning(
                "Payment confirmation failed for order %s: %s",
                self.session.pending_order_id,
                self.session.error,
            )
            return self.session.step
        await self._complete()
        return self.session.step

    # Back navigation

    def go_back(self) -> CheckoutStep:
        """Return to the previous step; a pending order is left untouched."""
        previous = _PREVIOUS_STEP.get(self.session.step)
        if previous is None:
            raise InvalidTransitionError(self.session.step, "go back")
        if self.session.step == "payment":
            self.session.client_secret = None
        self.session.step = previous
        self.session.error = None
        return previous

    # Internals

    async def _place_order(self, draft: OrderDraft) -> str:
        pending = self.session.pending_order_id
        if pending is not None and draft == self._pending_draft:
            logger.info("Reusing pending order %s for unchanged details", pending)
            return pending
        if pending is not None:
            logger.warning(
                "Checkout %s changed after order %s was created, creating a new order",
                self.session.session_id,
                pending,
            )
        created = await self._orders.create(draft)
        self._pending_draft = draft
        logger.info(
            "Created order %s",
            created.order_id,
            extra={
                "checkout": self.session.session_id,
                "payment_method": draft.payment_method,
            },
        )
        return created.order_id

    async def _complete(self) -> None:
        self.session.step = "success"
        self.session.error = None
        self._cart.clear()
        if self._cart_provider is not None:
            try:
                await self._cart_provider.clear()
            except (ProviderError, AuthRequired) as exc:
                logger.warning("Server cart clear failed: %s", exc)
        logger.info(
            "Checkout %s completed with order %s",
            self.session.session_id,
            self.session.pending_order_id,
        )

    def _order_draft(self) -> OrderDraft:
        details = self.session.shipping_details
        rate = self.session.selected_rate
        return OrderDraft(
            items=[
                OrderItemDraft(
                    product_id=line.product_id,
                    quantity=line.quantity,
                    type="PRINT" if line.unit_reference else "ORIGINAL",
                    print_size=line.unit_reference,
                )
                for line in self._cart.lines
            ],
            shipping_address=details.address.strip(),
            shipping_city=details.city.strip(),
            shipping_country=details.country.strip(),
            payment_method=(
                "BANK" if self.session.payment_method == "bank_transfer" else "STRIPE"
            ),
            currency=self._currency,
            notes=f"Shipping: {rate.service} ({rate.provider})" if rate else None,
        )

    def _prefill_shipping_details(self) -> None:
        details = self.session.shipping_details
        if self._auth is None or details.address:
            return
        profile = self._auth.user
        saved = profile.default_address
        first_name, _, last_name = profile.full_name.strip().partition(" ")
        self.session.shipping_details = details.model_copy(
            update={
                "first_name": details.first_name or first_name,
                "last_name": details.last_name or last_name,
                "address": saved.address if saved else details.address,
                "city": saved.city if saved and saved.city else details.city,
                "country": (
                    saved.country if saved and saved.country else details.country
                ),
            }
        )

    def _require(self, step: CheckoutStep, action: str) -> None:
        if self.session.step != step:
            raise InvalidTransitionError(self.session.step, action)

    def _require_any(self, steps: Sequence[CheckoutStep], action: str) -> None:
        if self.session.step not in steps:
            raise InvalidTransitionError(self.session.step, action)

    def _reject(self, errors: list[str]) -> None:
        self.session.error = errors[0]
        raise CheckoutValidationError(errors)
