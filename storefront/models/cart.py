"""Cart line models mirrored from the cart provider."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, computed_field


class CartLine(BaseModel):
    """One purchasable line; prices are integers in the base currency unit."""

    model_config = ConfigDict(frozen=True)

    product_id: str = Field(..., min_length=1)
    unit_reference: str | None = Field(
        None,
        description="Chosen variant such as a print size; None for the original",
    )
    quantity: int = Field(1, ge=1)
    unit_price: int = Field(0, ge=0)
    line_id: str | None = Field(
        None,
        description="Identifier of the matching item in the server cart",
    )
    title: str | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def final_price(self) -> int:
        return self.unit_price * self.quantity

    @property
    def key(self) -> tuple[str, str | None]:
        return self.product_id, self.unit_reference


class CartSummary(BaseModel):
    item_count: int = 0
    total_quantity: int = 0
    subtotal: int = 0
