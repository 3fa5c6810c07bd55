"""Shipping step validation."""

from __future__ import annotations

from storefront.models.checkout import CheckoutSession

MIN_ADDRESS_LENGTH = 10
MIN_CITY_LENGTH = 2


def shipping_errors(session: CheckoutSession) -> list[str]:
    """Return every problem blocking the shipping step; empty when valid."""
    details = session.shipping_details
    errors: list[str] = []
    if len(details.address.strip()) < MIN_ADDRESS_LENGTH:
        errors.append(
            f"Shipping address must be at least {MIN_ADDRESS_LENGTH} characters"
        )
    if len(details.city.strip()) < MIN_CITY_LENGTH:
        errors.append(f"City name must be at least {MIN_CITY_LENGTH} characters")
    if not details.country.strip():
        errors.append("Please select a valid country")
    if session.selected_rate is None:
        errors.append("Please select a shipping rate")
    return errors
