"""
Configuration settings for the storefront service.
"""

import logging
import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    """Application settings loaded from environment variables."""

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Commerce REST API
    COMMERCE_API_URL: str = os.getenv("COMMERCE_API_URL", "http://localhost:5000/api")
    HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

    # Redis / facet cache
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    FACET_CACHE_KEY_PREFIX: str = os.getenv("FACET_CACHE_KEY_PREFIX", "catalog:facets:")
    FACET_CACHE_TTL_SECONDS: int = int(os.getenv("FACET_CACHE_TTL_SECONDS", "300"))

    # Catalog views
    CATALOG_PAGE_SIZE: int = int(os.getenv("CATALOG_PAGE_SIZE", "20"))
    SEARCH_DEBOUNCE_MS: int = int(os.getenv("SEARCH_DEBOUNCE_MS", "300"))

    # Checkout
    HOME_COUNTRY: str = os.getenv("HOME_COUNTRY", "Pakistan")
    CURRENCY: str = os.getenv("CURRENCY", "PKR")
    INTERNATIONAL_TAX_PERCENT: int = int(os.getenv("INTERNATIONAL_TAX_PERCENT", "5"))
    PROMO_CODES: str = os.getenv("PROMO_CODES", "MURAQQA10:10")
    CHECKOUT_SESSION_TTL_SECONDS: int = int(
        os.getenv("CHECKOUT_SESSION_TTL_SECONDS", "3600")
    )

    # Auth
    AUTH_REDIRECT_URL: str = os.getenv("AUTH_REDIRECT_URL", "/auth")

    @property
    def is_production(self) -> bool:
        """
        Check if running in production environment.
        """
        return self.ENVIRONMENT.lower() == "production"

    @property
    def search_debounce_seconds(self) -> float:
        """Quiet interval used to collapse keystroke-driven catalog queries."""
        return self.SEARCH_DEBOUNCE_MS / 1000

    @property
    def promo_code_table(self) -> dict[str, int]:
        """Parse ``PROMO_CODES`` (``CODE:PERCENT,CODE:PERCENT``) into a mapping."""
        table: dict[str, int] = {}
        for entry in self.PROMO_CODES.split(","):
            code, _, percent = entry.strip().partition(":")
            if not code or not percent.strip().isdigit():
                continue
            table[code.strip().upper()] = int(percent)
        return table

    def __init__(self):
        self.env = os.getenv("ENV", "dev")
        self.debug = os.getenv("DEBUG", "false").lower() == "true"
        self.log_level = os.getenv("LOG_LEVEL", "INFO")
        logging.basicConfig(level=self.log_level)
        self.logger = logging.getLogger(__name__)

        self.logger.debug(
            f"Config initialized with env={self.env}, debug={self.debug}, "
            f"log_level={self.log_level}"
        )


# Create a global settings instance for import
settings = Settings()
