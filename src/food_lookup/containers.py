"""Dependency container wiring for the application."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta

from supabase import create_client

from food_lookup.adapters.provider_factory import HttpxProviderFactory
from food_lookup.adapters.supabase_cache_repository import (
    SupabaseBarcodeCacheRepository,
    SupabaseSearchCacheRepository,
)
from food_lookup.adapters.supabase_override_repository import (
    SupabaseOverrideRepository,
)
from food_lookup.app_logging import configure_logging
from food_lookup.config import Settings, parse_fallback_order
from food_lookup.domain.foods import Provider
from food_lookup.services.cache import ResultCache
from food_lookup.services.fallback import FallbackCandidate, FallbackService
from food_lookup.services.overrides import OverrideService
from food_lookup.services.resolution import LookupOptions, ResolutionService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    provider_factory: HttpxProviderFactory
    override_service: OverrideService
    result_cache: ResultCache
    resolution_service: ResolutionService
    fallback_service: FallbackService
    close_resources: Callable[[], None]

    def default_candidates(self) -> list[FallbackCandidate]:
        """Build fallback candidates from the configured order and keys."""
        keys = {
            Provider.USDA: LookupOptions(api_key=self.settings.fdc_api_key),
            Provider.UPCITEMDB: LookupOptions(
                api_key=self.settings.upcitemdb_api_key,
                api_key_type=self.settings.upcitemdb_key_type,
            ),
        }
        return [
            FallbackCandidate(
                provider=provider, options=keys.get(provider, LookupOptions())
            )
            for provider in parse_fallback_order(self.settings.fallback_order)
        ]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    configure_logging(debug=resolved_settings.debug)
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    override_repository = SupabaseOverrideRepository(supabase_client)
    barcode_cache_repository = SupabaseBarcodeCacheRepository(supabase_client)
    search_cache_repository = SupabaseSearchCacheRepository(supabase_client)
    provider_factory = HttpxProviderFactory.create(
        fdc_base_url=resolved_settings.fdc_base_url,
        openfoodfacts_base_url=resolved_settings.openfoodfacts_base_url,
        openfoodfacts_user_agent=resolved_settings.openfoodfacts_user_agent,
        upcitemdb_base_url=resolved_settings.upcitemdb_base_url,
        timeout=resolved_settings.request_timeout_seconds,
    )
    result_cache = ResultCache(
        barcode_repository=barcode_cache_repository,
        search_repository=search_cache_repository,
        barcode_ttl=timedelta(days=resolved_settings.barcode_cache_ttl_days),
        search_ttl=timedelta(days=resolved_settings.search_cache_ttl_days),
    )
    override_service = OverrideService(override_repository)
    resolution_service = ResolutionService(
        providers=provider_factory,
        overrides=override_repository,
        cache=result_cache,
        verified_min_score=resolved_settings.verified_min_score,
        debug=resolved_settings.debug,
    )
    fallback_service = FallbackService(resolution_service)

    def close_resources() -> None:
        provider_factory.close()

    return AppContainer(
        settings=resolved_settings,
        provider_factory=provider_factory,
        override_service=override_service,
        result_cache=result_cache,
        resolution_service=resolution_service,
        fallback_service=fallback_service,
        close_resources=close_resources,
    )
