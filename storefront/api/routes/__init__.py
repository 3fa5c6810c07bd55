"""API route registration."""

from fastapi import FastAPI

from storefront.api.routes import catalog, checkout, system


def include_api_routes(app: FastAPI) -> None:
    """Attach all API routers to the application."""

    app.include_router(system.router)
    app.include_router(catalog.router)
    app.include_router(checkout.router)
