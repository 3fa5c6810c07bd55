"""Checkout total arithmetic and promo code lookup."""

from __future__ import annotations

import re
from collections.abc import Mapping

from storefront.config import settings
from storefront.models.checkout import CheckoutTotals

_PROMO_CODE_FORMAT = re.compile(r"^[A-Z0-9_-]{3,32}$")


class PromoCodeBook:
    """Recognised promo codes mapped to their percentage discount."""

    def __init__(self, codes: Mapping[str, int] | None = None) -> None:
        table = settings.promo_code_table if codes is None else codes
        self._codes = {code.strip().upper(): percent for code, percent in table.items()}

    @staticmethod
    def normalize(code: str) -> str:
        return code.strip().upper()

    @classmethod
    def is_well_formed(cls, code: str) -> bool:
        return bool(_PROMO_CODE_FORMAT.match(cls.normalize(code)))

    def percent_for(self, code: str | None) -> int:
        """Discount percentage for ``code``, 0 when unknown or absent."""
        if not code:
            return 0
        return self._codes.get(self.normalize(code), 0)

    def __contains__(self, code: object) -> bool:
        return isinstance(code, str) and self.normalize(code) in self._codes


def compute_totals(
    subtotal: int,
    *,
    shipping: int = 0,
    discount_percent: int = 0,
    shipping_country: str | None = None,
    home_country: str | None = None,
    tax_percent: int | None = None,
    currency: str | None = None,
) -> CheckoutTotals:
    """``total = subtotal + shipping - discount + tax`` in integer currency units.

    Tax applies only when the destination differs from the home country.
    Percentages are applied to the subtotal and rounded down.
    """
    home = (home_country or settings.HOME_COUNTRY).strip().lower()
    destination = (shipping_country or "").strip().lower()
    rate = settings.INTERNATIONAL_TAX_PERCENT if tax_percent is None else tax_percent

    tax = subtotal * rate // 100 if destination and destination != home else 0
    discount = subtotal * discount_percent // 100
    return CheckoutTotals(
        subtotal=subtotal,
        shipping=shipping,
        discount=discount,
        tax=tax,
        total=subtotal + shipping - discount + tax,
        currency=currency or settings.CURRENCY,
    )
