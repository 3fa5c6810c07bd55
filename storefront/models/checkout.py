"""Schemas used by the checkout flow and its providers."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Literal

from pydantic import BaseModel, Field

from storefront.models.cart import CartLine

CheckoutStep = Literal["cart", "shipping", "payment", "success"]
PaymentMethod = Literal["card", "bank_transfer"]
OrderStatus = Literal["PENDING", "PAID", "SHIPPED", "DELIVERED", "CANCELLED"]


class ShippingDetails(BaseModel):
    first_name: str = ""
    last_name: str = ""
    address: str = ""
    city: str = ""
    country: str = ""


class ShippingRate(BaseModel):
    """A quote returned by the shipping rate provider."""

    id: str
    provider: str
    service: str
    price: int = Field(..., ge=0)
    currency: str = "PKR"
    estimated_days: str | None = None


class SavedAddress(BaseModel):
    address: str = ""
    city: str = ""
    country: str = ""
    is_default: bool = False


class CustomerProfile(BaseModel):
    id: str
    full_name: str = ""
    email: str | None = None
    addresses: list[SavedAddress] = Field(default_factory=list)

    @property
    def default_address(self) -> SavedAddress | None:
        for address in self.addresses:
            if address.is_default:
                return address
        return self.addresses[0] if self.addresses else None


class AuthContext(BaseModel):
    """Token plus the customer it belongs to."""

    token: str = Field(..., min_length=1)
    user: CustomerProfile


class OrderItemDraft(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)
    type: Literal["ORIGINAL", "PRINT"] = "ORIGINAL"
    print_size: str | None = None


class OrderDraft(BaseModel):
    """Payload sent to the order provider when checkout creates an order."""

    items: list[OrderItemDraft] = Field(..., min_length=1)
    shipping_address: str
    shipping_city: str
    shipping_country: str
    payment_method: Literal["STRIPE", "BANK"] = "STRIPE"
    currency: str = "PKR"
    notes: str | None = None


class CreatedOrder(BaseModel):
    order_id: str


class OrderDetails(BaseModel):
    id: str
    status: OrderStatus = "PENDING"
    total_amount: int = 0
    payment_method: Literal["STRIPE", "BANK"] = "STRIPE"
    shipping_address: str | None = None
    tracking_number: str | None = None


class PaymentConfig(BaseModel):
    enabled: bool = False
    public_key: str | None = None


class PaymentIntent(BaseModel):
    client_secret: str
    payment_intent_id: str | None = None
    amount: int | None = None
    currency: str | None = None


class PaymentConfirmation(BaseModel):
    """Outcome reported by the client-side payment confirmation callback."""

    success: bool
    error_message: str | None = None


class CheckoutTotals(BaseModel):
    subtotal: int = 0
    shipping: int = 0
    discount: int = 0
    tax: int = 0
    total: int = 0
    currency: str = "PKR"


class CheckoutSession(BaseModel):
    """State of a single checkout attempt."""

    session_id: str
    step: CheckoutStep = "cart"
    shipping_details: ShippingDetails = Field(default_factory=ShippingDetails)
    shipping_rates: list[ShippingRate] = Field(default_factory=list)
    selected_shipping_rate_id: str | None = None
    payment_method: PaymentMethod = "card"
    promo_code: str | None = None
    pending_order_id: str | None = None
    client_secret: str | None = None
    error: str | None = None
    rates_error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def selected_rate(self) -> ShippingRate | None:
        for rate in self.shipping_rates:
            if rate.id == self.selected_shipping_rate_id:
                return rate
        return None


class CheckoutSessionView(BaseModel):
    """Response body returned by every checkout endpoint."""

    session: CheckoutSession
    totals: CheckoutTotals
    lines: list[CartLine] = Field(default_factory=list)
    submitting: bool = False


class ShippingUpdateRequest(BaseModel):
    """Body for PUT /checkout/sessions/{session_id}/shipping."""

    shipping_details: ShippingDetails | None = None
    shipping_rate_id: str | None = None
    payment_method: PaymentMethod | None = None


class PromoCodeRequest(BaseModel):
    code: str


class CheckoutSessionCreate(BaseModel):
    """Body for POST /checkout/sessions; guests send their local cart lines."""

    lines: list[CartLine] = Field(default_factory=list)
