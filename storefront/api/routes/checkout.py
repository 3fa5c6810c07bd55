"""Routes driving checkout sessions through cart, shipping and payment."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status

from storefront.models.checkout import (
    AuthContext,
    CheckoutSessionCreate,
    CheckoutSessionView,
    PaymentConfirmation,
    PromoCodeRequest,
    ShippingUpdateRequest,
)
from storefront.services.cart.aggregate import CartAggregate
from storefront.services.checkout.registry import (
    CheckoutSessionRegistry,
    get_checkout_registry,
)
from storefront.services.checkout.state_machine import CheckoutStateMachine
from storefront.services.clients.auth_client import AuthProviderDependency
from storefront.services.clients.cart_client import CartProviderDependency
from storefront.services.clients.http import RestApiDependency
from storefront.services.clients.order_client import OrderProviderDependency
from storefront.services.clients.payment_client import PaymentProviderDependency
from storefront.services.clients.shipping_client import ShippingProviderDependency
from storefront.services.errors import (
    AuthRequired,
    CheckoutValidationError,
    InvalidTransitionError,
    ProviderError,
)

router = APIRouter(prefix="/checkout/sessions", tags=["checkout"])

RegistryDependency = Annotated[CheckoutSessionRegistry, Depends(get_checkout_registry)]


async def _resolve_auth(
    api: RestApiDependency,
    auth_provider: AuthProviderDependency,
) -> AuthContext | None:
    try:
        return await auth_provider.resolve(api.token)
    except ProviderError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
        ) from exc


AuthDependency = Annotated[AuthContext | None, Depends(_resolve_auth)]


async def _get_session(
    session_id: str,
    registry: RegistryDependency,
    auth: AuthDependency,
    orders: OrderProviderDependency,
    payments: PaymentProviderDependency,
    shipping: ShippingProviderDependency,
    cart_provider: CartProviderDependency,
) -> CheckoutStateMachine:
    machine = registry.get(session_id)
    if machine is None:
        raise HTTPException(status_code=404, detail="Unknown checkout session")
    if auth is not None:
        if machine.owner_id not in (None, auth.user.id):
            raise HTTPException(status_code=404, detail="Unknown checkout session")
        machine.authenticate(auth)
    machine.attach_providers(
        orders=orders,
        payments=payments,
        shipping=shipping,
        cart_provider=cart_provider if machine.owner_id else None,
    )
    return machine


SessionDependency = Annotated[CheckoutStateMachine, Depends(_get_session)]


@contextmanager
def _checkout_errors() -> Iterator[None]:
    """Translate checkout errors into HTTP responses."""
    try:
        yield
    except CheckoutValidationError as exc:
        raise HTTPException(
            status_code=422,
            detail={"errors": exc.messages},
        ) from exc
    except InvalidTransitionError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT, detail=str(exc)
        ) from exc
    except AuthRequired as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "message": "Authentication required",
                "redirect_to": exc.redirect_to,
            },
        ) from exc


@router.post(
    "",
    response_model=CheckoutSessionView,
    status_code=status.HTTP_201_CREATED,
    summary="Open a checkout session over the current cart",
)
async def create_checkout_session(
    registry: RegistryDependency,
    auth: AuthDependency,
    orders: OrderProviderDependency,
    payments: PaymentProviderDependency,
    shipping: ShippingProviderDependency,
    cart_provider: CartProviderDependency,
    payload: CheckoutSessionCreate | None = None,
) -> CheckoutSessionView:
    """Signed-in customers check out their server cart; guests send theirs."""
    if auth is not None:
        try:
            lines = await cart_provider.get_lines()
        except ProviderError as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message
            ) from exc
    else:
        lines = payload.lines if payload else []

    machine = CheckoutStateMachine(
        CartAggregate(lines),
        orders=orders,
        payments=payments,
        shipping=shipping,
        auth=auth,
        cart_provider=cart_provider if auth else None,
    )
    registry.add(machine)
    return machine.view()


@router.get(
    "/{session_id}",
    response_model=CheckoutSessionView,
    summary="Fetch the current state of a checkout session",
)
async def read_checkout_session(machine: SessionDependency) -> CheckoutSessionView:
    return machine.view()


@router.delete(
    "/{session_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Abandon a checkout session",
)
async def discard_checkout_session(
    session_id: str,
    registry: RegistryDependency,
) -> Response:
    registry.discard(session_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{session_id}/proceed", response_model=CheckoutSessionView)
async def proceed_to_shipping(machine: SessionDependency) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.proceed_to_shipping()
    return machine.view()


@router.put("/{session_id}/shipping", response_model=CheckoutSessionView)
async def update_shipping(
    payload: ShippingUpdateRequest,
    machine: SessionDependency,
) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.update_shipping(
            payload.shipping_details,
            rate_id=payload.shipping_rate_id,
            payment_method=payload.payment_method,
        )
    return machine.view()


@router.post("/{session_id}/shipping/rates", response_model=CheckoutSessionView)
async def refresh_shipping_rates(machine: SessionDependency) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.refresh_shipping_rates()
    return machine.view()


@router.post("/{session_id}/promo", response_model=CheckoutSessionView)
async def apply_promo_code(
    payload: PromoCodeRequest,
    machine: SessionDependency,
) -> CheckoutSessionView:
    with _checkout_errors():
        machine.apply_promo_code(payload.code)
    return machine.view()


@router.delete("/{session_id}/promo", response_model=CheckoutSessionView)
async def remove_promo_code(machine: SessionDependency) -> CheckoutSessionView:
    machine.remove_promo_code()
    return machine.view()


@router.post(
    "/{session_id}/submit",
    response_model=CheckoutSessionView,
    summary="Validate shipping and create the order",
)
async def submit_shipping(machine: SessionDependency) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.submit_shipping()
    return machine.view()


@router.post(
    "/{session_id}/payment",
    response_model=CheckoutSessionView,
    summary="Create a payment intent for the pending order",
)
async def start_payment(machine: SessionDependency) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.start_payment()
    return machine.view()


@router.post("/{session_id}/payment/confirm", response_model=CheckoutSessionView)
async def confirm_payment(
    payload: PaymentConfirmation,
    machine: SessionDependency,
) -> CheckoutSessionView:
    with _checkout_errors():
        await machine.confirm_payment(payload)
    return machine.view()


@router.post("/{session_id}/back", response_model=CheckoutSessionView)
async def go_back(machine: SessionDependency) -> CheckoutSessionView:
    with _checkout_errors():
        machine.go_back()
    return machine.view()
