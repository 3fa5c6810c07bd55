"""In-memory cart with derived totals."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from storefront.models.cart import CartLine, CartSummary
from storefront.services.errors import CartLineNotFoundError

logger = logging.getLogger(__name__)


class CartAggregate:
    """Line items of one customer's cart, mirroring the server cart.

    Lines are keyed by product and variant; adding an existing combination
    bumps its quantity instead of creating a duplicate line.
    """

    def __init__(self, lines: Iterable[CartLine] = ()) -> None:
        self._lines: list[CartLine] = []
        for line in lines:
            self.add_line(line)

    @property
    def lines(self) -> list[CartLine]:
        return list(self._lines)

    def __len__(self) -> int:
        return len(self._lines)

    def is_empty(self) -> bool:
        return not self._lines

    def add_line(self, line: CartLine) -> CartLine:
        for index, existing in enumerate(self._lines):
            if existing.key == line.key:
                merged = existing.model_copy(
                    update={
                        "quantity": existing.quantity + line.quantity,
                        "line_id": existing.line_id or line.line_id,
                    }
                )
                self._lines[index] = merged
                return merged
        self._lines.append(line)
        return line

    def remove_line(self, product_id: str) -> None:
        """Drop every line for ``product_id``; unknown ids are ignored."""
        remaining = [line for line in self._lines if line.product_id != product_id]
        if len(remaining) == len(self._lines):
            logger.debug("Remove for product %s not in cart, ignoring", product_id)
            return
        self._lines = remaining

    def set_quantity(self, product_id: str, quantity: int) -> CartLine:
        if quantity < 1:
            raise ValueError("Quantity must be at least 1")
        for index, existing in enumerate(self._lines):
            if existing.product_id == product_id:
                updated = existing.model_copy(update={"quantity": quantity})
                self._lines[index] = updated
                return updated
        raise CartLineNotFoundError(product_id)

    def line_id_for(self, product_id: str) -> str | None:
        for line in self._lines:
            if line.product_id == product_id:
                return line.line_id
        return None

    def replace_all(self, lines: Iterable[CartLine]) -> None:
        """Swap in the authoritative server cart contents."""
        self._lines = []
        for line in lines:
            self.add_line(line)

    def clear(self) -> None:
        self._lines = []

    def subtotal(self) -> int:
        return sum(line.final_price for line in self._lines)

    def summary(self) -> CartSummary:
        return CartSummary(
            item_count=len(self._lines),
            total_quantity=sum(line.quantity for line in self._lines),
            subtotal=self.subtotal(),
        )
