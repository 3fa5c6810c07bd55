"""Exception types shared by the catalog and checkout services."""

from __future__ import annotations

from collections.abc import Sequence


class StorefrontError(Exception):
    """Base class for storefront errors."""


class ProviderError(StorefrontError):
    """An upstream provider call failed (network error or non-2xx response)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class CheckoutValidationError(StorefrontError):
    """User input was rejected before any provider call was made."""

    def __init__(self, messages: Sequence[str]) -> None:
        self.messages = list(messages)
        super().__init__("; ".join(self.messages))


class InvalidTransitionError(StorefrontError):
    """The requested checkout transition is not allowed from the current step."""

    def __init__(self, current: str, action: str) -> None:
        super().__init__(f"Cannot {action} while checkout is at step '{current}'")
        self.current = current
        self.action = action


class CartLineNotFoundError(StorefrontError, LookupError):
    """Raised when a quantity change targets a product that is not in the cart."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Item not found in cart: {product_id}")
        self.product_id = product_id


class AuthRequired(StorefrontError):
    """Redirect signal raised when an action needs an authenticated customer."""

    def __init__(self, redirect_to: str) -> None:
        super().__init__(f"Authentication required, redirect to {redirect_to}")
        self.redirect_to = redirect_to
