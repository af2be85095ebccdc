"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

from food_lookup.domain.errors import InputValidationError
from food_lookup.domain.foods import Provider

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    fdc_api_key: str | None = None
    fdc_base_url: str = "https://api.nal.usda.gov/fdc/v1"
    openfoodfacts_base_url: str = "https://world.openfoodfacts.org"
    openfoodfacts_user_agent: str = "food-lookup/0.1 (nutrition lookup client)"
    upcitemdb_base_url: str = "https://api.upcitemdb.com"
    upcitemdb_api_key: str | None = None
    upcitemdb_key_type: str | None = None
    request_timeout_seconds: float = 15.0
    barcode_cache_ttl_days: int = 30
    search_cache_ttl_days: int = 7
    verified_min_score: float = 0.80
    fallback_order: str = "usda,openfoodfacts,upcitemdb"
    debug: bool = False
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_fallback_order(raw: str | None) -> list[Provider]:
    """Parse the comma-separated provider fallback order from env."""
    if raw is None:
        return []
    providers: list[Provider] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if not value:
            continue
        try:
            provider = Provider.parse(value)
        except InputValidationError:
            continue
        if provider not in providers:
            providers.append(provider)
    return providers
