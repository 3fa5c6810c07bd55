"""Pytest configuration and fixtures for the storefront service."""

import asyncio

import pytest
import pytest_asyncio
from fakeredis import aioredis as fakeredis
from httpx import ASGITransport, AsyncClient

from storefront.models.cart import CartLine
from storefront.models.catalog import (
    CatalogBounds,
    CatalogEntry,
    CatalogPage,
    FacetValues,
    Pagination,
    ValueRange,
)
from storefront.models.checkout import (
    AuthContext,
    CreatedOrder,
    CustomerProfile,
    OrderDetails,
    PaymentConfig,
    PaymentIntent,
    SavedAddress,
    ShippingRate,
)
from storefront.services.clients.auth_client import AuthProvider
from storefront.services.clients.cart_client import CartProvider
from storefront.services.clients.catalog_client import CatalogProvider
from storefront.services.clients.order_client import OrderProvider
from storefront.services.clients.payment_client import PaymentProvider
from storefront.services.clients.shipping_client import ShippingRateProvider

PRICE_BOUNDS = ValueRange(min=0, max=500_000)
YEAR_BOUNDS = ValueRange(min=1900, max=2024)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "asyncio: marks tests as async tests")


class StubCatalogProvider(CatalogProvider):
    """Serves a fixed list of entries, honouring category, search and paging."""

    def __init__(self, entries=None, facets=None):
        self.entries = list(entries or [])
        self.facets = facets or FacetValues(
            categories=["Painting", "Calligraphy"],
            secondary_tags=["Oil", "Ink"],
            price=PRICE_BOUNDS,
            year=YEAR_BOUNDS,
        )
        self.requests = []
        self.facet_calls = 0
        self.fail_with = None

    async def list_page(self, filters):
        self.requests.append(dict(filters))
        await asyncio.sleep(0)
        if self.fail_with is not None:
            raise self.fail_with
        matching = [entry for entry in self.entries if _matches(entry, filters)]
        page = int(filters.get("page", 1))
        limit = int(filters.get("limit", 20))
        start = (page - 1) * limit
        return CatalogPage(
            items=matching[start : start + limit],
            pagination=Pagination(
                total=len(matching),
                page=page,
                limit=limit,
                total_pages=-(-len(matching) // limit),
            ),
        )

    async def get_facet_values(self):
        self.facet_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        return self.facets


def _matches(entry, filters):
    if "category" in filters and entry.category != filters["category"]:
        return False
    search = str(filters.get("search", "")).lower()
    return search in entry.title.lower()


def make_entries(count=25):
    return [
        CatalogEntry(
            id=f"art-{index}",
            title=f"Artwork {index}",
            category="Painting" if index % 2 else "Calligraphy",
            secondary_tag="Oil" if index % 2 else "Ink",
            price=10_000 * index,
            year=2000 + index % 20,
            in_stock=index % 3 != 0,
        )
        for index in range(1, count + 1)
    ]


class StubOrderProvider(OrderProvider):
    def __init__(self):
        self.drafts = []
        self.status_updates = []
        self.fail_with = None
        self.gate = None

    async def create(self, draft):
        self.drafts.append(draft)
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        return CreatedOrder(order_id=f"order-{len(self.drafts)}")

    async def get_by_id(self, order_id):
        return OrderDetails(id=order_id)

    async def update_status(self, order_id, status, tracking_ref=None):
        self.status_updates.append((order_id, status, tracking_ref))


class StubPaymentProvider(PaymentProvider):
    def __init__(self, enabled=True):
        self.enabled = enabled
        self.intents = []
        self.fail_with = None

    async def get_config(self):
        return PaymentConfig(enabled=self.enabled, public_key="pk_test")

    async def create_intent(self, order_id, currency):
        self.intents.append((order_id, currency))
        if self.fail_with is not None:
            raise self.fail_with
        return PaymentIntent(
            client_secret=f"secret-{order_id}",
            payment_intent_id=f"pi-{order_id}",
            currency=currency.lower(),
        )


class StubShippingProvider(ShippingRateProvider):
    """Domestic and international rates for the home country of Pakistan."""

    def __init__(self):
        self.quotes = []
        self.fail_with = None

    async def quote(self, country, lines):
        self.quotes.append(country)
        if self.fail_with is not None:
            raise self.fail_with
        if country.lower() == "pakistan":
            return [
                _rate("pk-standard", "TCS", "Standard", 500),
                _rate("pk-express", "TCS", "Express", 1200),
            ]
        return [
            _rate("intl-standard", "DHL", "Standard", 8500),
            _rate("intl-express", "DHL", "Express", 15000),
        ]


def _rate(rate_id, provider, service, price):
    return ShippingRate(id=rate_id, provider=provider, service=service, price=price)


class StubCartProvider(CartProvider):
    def __init__(self, lines=None):
        self.lines = list(lines or [])
        self.cleared = False
        self.fail_with = None

    async def get_lines(self):
        return list(self.lines)

    async def add_line(self, line):
        self.lines.append(line)

    async def remove_line(self, line_id):
        self.lines = [line for line in self.lines if line.line_id != line_id]

    async def clear(self):
        if self.fail_with is not None:
            raise self.fail_with
        self.lines = []
        self.cleared = True


class StubAuthProvider(AuthProvider):
    def __init__(self, contexts):
        self.contexts = contexts

    async def resolve(self, token):
        return self.contexts.get(token) if token else None


@pytest.fixture()
def bounds():
    return CatalogBounds(price=PRICE_BOUNDS, year=YEAR_BOUNDS)


@pytest.fixture()
def catalog_provider():
    return StubCatalogProvider(make_entries())


@pytest.fixture()
def customer():
    return AuthContext(
        token="good-token",
        user=CustomerProfile(
            id="user-1",
            full_name="Amna Siddiqui",
            email="amna@example.com",
            addresses=[
                SavedAddress(
                    address="14 Mall Road, Gulberg",
                    city="Lahore",
                    country="Pakistan",
                    is_default=True,
                )
            ],
        ),
    )


@pytest.fixture()
def cart_lines():
    return [
        CartLine(product_id="art-1", quantity=1, unit_price=60_000, line_id="ci-1"),
        CartLine(product_id="art-2", quantity=2, unit_price=20_000, line_id="ci-2"),
    ]


@pytest.fixture()
def providers(cart_lines):
    return {
        "orders": StubOrderProvider(),
        "payments": StubPaymentProvider(),
        "shipping": StubShippingProvider(),
        "cart": StubCartProvider(cart_lines),
    }


@pytest_asyncio.fixture()
async def redis_client():
    """Provide a fake Redis client for each test."""
    from storefront.main import app
    from storefront.services.cache.facet_cache import get_redis_client

    client = fakeredis.FakeRedis(decode_responses=True)
    app.dependency_overrides[get_redis_client] = lambda: client
    try:
        yield client
    finally:
        await client.flushdb()
        await client.aclose()
        app.dependency_overrides.pop(get_redis_client, None)


@pytest.fixture()
def api_overrides(catalog_provider, providers, customer):
    """Route every provider dependency of the app to the in-memory stubs."""
    from storefront.api.routes.catalog import get_catalog_provider_factory
    from storefront.main import app
    from storefront.services.clients.auth_client import get_auth_provider
    from storefront.services.clients.cart_client import get_cart_provider
    from storefront.services.clients.order_client import get_order_provider
    from storefront.services.clients.payment_client import get_payment_provider
    from storefront.services.clients.shipping_client import get_shipping_provider

    overrides = {
        get_catalog_provider_factory: lambda: (lambda profile: catalog_provider),
        get_auth_provider: lambda: StubAuthProvider({customer.token: customer}),
        get_order_provider: lambda: providers["orders"],
        get_payment_provider: lambda: providers["payments"],
        get_shipping_provider: lambda: providers["shipping"],
        get_cart_provider: lambda: providers["cart"],
    }
    app.dependency_overrides.update(overrides)
    yield providers
    for dependency in overrides:
        app.dependency_overrides.pop(dependency, None)


@pytest_asyncio.fixture()
async def client(redis_client, api_overrides):
    """Return an HTTPX async client pointing at the FastAPI app."""
    from storefront.main import app

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as test_client:
        yield test_client
