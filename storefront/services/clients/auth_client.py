"""Auth provider resolving bearer tokens into customer profiles."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Annotated

from fastapi import Depends

from storefront.config import settings
from storefront.models.checkout import AuthContext, CustomerProfile, SavedAddress
from storefront.services.clients.http import RestApi, RestApiDependency
from storefront.services.errors import AuthRequired

logger = logging.getLogger(__name__)


class AuthProvider(ABC):
    """Abstract interface supplying ``{token, user}`` for a request."""

    redirect_target: str = settings.AUTH_REDIRECT_URL

    @abstractmethod
    async def resolve(self, token: str | None) -> AuthContext | None:
        """Return the auth context for ``token``, or None when unauthenticated."""


class RestAuthProvider(AuthProvider):
    """Auth provider backed by ``GET /users/profile``."""

    def __init__(self, api: RestApi) -> None:
        self._api = api

    async def resolve(self, token: str | None) -> AuthContext | None:
        if not token:
            return None
        try:
            payload = await self._api.with_token(token).request("GET", "/users/profile")
        except AuthRequired:
            logger.info("Bearer token rejected by the profile endpoint")
            return None

        raw = payload.get("user") or {}
        if not raw.get("id"):
            return None
        profile = CustomerProfile(
            id=str(raw["id"]),
            full_name=raw.get("fullName") or "",
            email=raw.get("email"),
            addresses=[
                SavedAddress(
                    address=address.get("address") or "",
                    city=address.get("city") or "",
                    country=address.get("country") or "",
                    is_default=bool(address.get("isDefault")),
                )
                for address in raw.get("addresses") or []
            ],
        )
        return AuthContext(token=token, user=profile)


def get_auth_provider(api: RestApiDependency) -> AuthProvider:
    return RestAuthProvider(api)


AuthProviderDependency = Annotated[AuthProvider, Depends(get_auth_provider)]
