"""Shared HTTP plumbing for the commerce REST API clients."""

from __future__ import annotations

import logging
from typing import Annotated, Any

import httpx
from fastapi import Depends, Header

from storefront.config import settings
from storefront.services.errors import AuthRequired, ProviderError

logger = logging.getLogger(__name__)

_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    """Return a singleton HTTP client for the current process."""

    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            base_url=settings.COMMERCE_API_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
        )
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


class RestApi:
    """Thin JSON wrapper that turns transport and HTTP failures into errors."""

    def __init__(self, client: httpx.AsyncClient, *, token: str | None = None) -> None:
        self._client = client
        self._token = token

    @property
    def token(self) -> str | None:
        return self._token

    def with_token(self, token: str | None) -> RestApi:
        return RestApi(self._client, token=token)

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json: Any = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            response = await self._client.request(
                method,
                path,
                params=params,
                json=json,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise ProviderError(f"{method} {path} failed: {exc}") from exc

        if response.status_code == httpx.codes.UNAUTHORIZED:
            raise AuthRequired(settings.AUTH_REDIRECT_URL)
        if response.is_error:
            message = _error_message(response)
            logger.warning(
                "%s %s returned %s: %s",
                method,
                path,
                response.status_code,
                message,
            )
            raise ProviderError(message, status_code=response.status_code)

        if not response.content:
            return {}
        try:
            payload = response.json()
        except ValueError as exc:
            raise ProviderError(f"{method} {path} returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise ProviderError(f"{method} {path} returned an unexpected payload")
        return payload


def _error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict) and payload.get("message"):
        return str(payload["message"])
    return f"Request failed with status {response.status_code}"


def to_amount(value: Any) -> int:
    """Coerce decimal strings/numbers from the API into integer currency units."""
    if value is None or value == "":
        return 0
    try:
        return int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0


def bearer_token(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    scheme, _, token = (authorization or "").strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def get_rest_api(
    authorization: Annotated[str | None, Header()] = None,
) -> RestApi:
    """Request-scoped API wrapper carrying the caller's bearer token."""

    return RestApi(get_http_client(), token=bearer_token(authorization))


RestApiDependency = Annotated[RestApi, Depends(get_rest_api)]
