"""Shared test fixtures."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest

from food_lookup.config import Settings
from food_lookup.domain.cache import CacheEntry, SearchCacheEntry
from food_lookup.domain.errors import ProviderFailureError
from food_lookup.domain.foods import CanonicalFoodResult, Provider
from food_lookup.domain.overrides import OverrideRecord
from food_lookup.services.cache import (
    BarcodeCacheRepository,
    ResultCache,
    SearchCacheRepository,
)
from food_lookup.services.fallback import FallbackService
from food_lookup.services.overrides import OverrideRepository, OverrideService
from food_lookup.services.providers import (
    ProviderClient,
    ProviderClientFactory,
    ProviderLookup,
    ProviderOptions,
    ProviderSearch,
)
from food_lookup.services.resolution import ResolutionService


@dataclass
class FakeClock:
    """Controllable clock for TTL tests."""

    now: datetime = field(default_factory=lambda: datetime(2024, 5, 1, tzinfo=UTC))

    def __call__(self) -> datetime:
        return self.now

    def advance(self, delta: timedelta) -> None:
        self.now = self.now + delta


@dataclass
class InMemoryOverrideRepository(OverrideRepository):
    """In-memory override repository for tests."""

    records: dict[tuple[Provider, str], OverrideRecord] = field(default_factory=dict)

    def get_override(self, provider: Provider, barcode: str) -> OverrideRecord | None:
        return self.records.get((provider, barcode))

    def upsert_override(self, record: OverrideRecord) -> None:
        self.records[(record.provider, record.barcode)] = record

    def delete_override(self, provider: Provider, barcode: str) -> bool:
        return self.records.pop((provider, barcode), None) is not None

    def list_overrides(
        self, provider: Provider | None, limit: int
    ) -> list[OverrideRecord]:
        items = [
            record
            for record in self.records.values()
            if provider is None or record.provider == provider
        ]
        items.sort(key=lambda record: record.updated_at, reverse=True)
        return items[:limit]


@dataclass
class InMemoryBarcodeCacheRepository(BarcodeCacheRepository):
    """In-memory barcode cache repository for tests."""

    entries: dict[tuple[Provider, str], CacheEntry] = field(default_factory=dict)

    def get_entry(self, provider: Provider, barcode: str) -> CacheEntry | None:
        return self.entries.get((provider, barcode))

    def upsert_entry(self, entry: CacheEntry) -> None:
        self.entries[(entry.provider, entry.barcode)] = entry

    def list_entries(self, provider: Provider | None, limit: int) -> list[CacheEntry]:
        items = [
            entry
            for entry in self.entries.values()
            if provider is None or entry.provider == provider
        ]
        items.sort(key=lambda entry: entry.fetched_at, reverse=True)
        return items[:limit]

    def delete_entries(self, provider: Provider | None, barcode: str | None) -> int:
        doomed = [
            key
            for key in self.entries
            if (provider is None or key[0] == provider)
            and (barcode is None or key[1] == barcode)
        ]
        for key in doomed:
            del self.entries[key]
        return len(doomed)


@dataclass
class InMemorySearchCacheRepository(SearchCacheRepository):
    """In-memory search cache repository for tests."""

    entries: dict[tuple[Provider, str, int], SearchCacheEntry] = field(
        default_factory=dict
    )

    def get_entry(
        self, provider: Provider, query_norm: str, limit_requested: int
    ) -> SearchCacheEntry | None:
        return self.entries.get((provider, query_norm, limit_requested))

    def upsert_entry(self, entry: SearchCacheEntry) -> None:
        key = (entry.provider, entry.query_norm, entry.limit_requested)
        self.entries[key] = entry

    def list_entries(
        self, provider: Provider | None, query_norm: str | None, limit: int
    ) -> list[SearchCacheEntry]:
        items = [
            entry
            for entry in self.entries.values()
            if (provider is None or entry.provider == provider)
            and (query_norm is None or entry.query_norm == query_norm)
        ]
        items.sort(key=lambda entry: entry.fetched_at, reverse=True)
        return items[:limit]

    def delete_entries(self, provider: Provider | None, query_norm: str | None) -> int:
        doomed = [
            key
            for key in self.entries
            if (provider is None or key[0] == provider)
            and (query_norm is None or key[1] == query_norm)
        ]
        for key in doomed:
            del self.entries[key]
        return len(doomed)


@dataclass
class FakeProviderClient(ProviderClient):
    """Fake provider returning canned results and recording calls."""

    provider: Provider
    products: dict[str, CanonicalFoodResult] = field(default_factory=dict)
    search_results: list[CanonicalFoodResult] = field(default_factory=list)
    error: str | None = None
    raw: bytes = b'{"ok": true}'
    lookups: list[str] = field(default_factory=list)
    searches: list[tuple[str, int]] = field(default_factory=list)

    def lookup(self, barcode: str) -> ProviderLookup:
        self.lookups.append(barcode)
        if self.error:
            raise ProviderFailureError(self.provider, self.error)
        product = self.products.get(barcode)
        if product is None:
            raise ProviderFailureError(
                self.provider, f"no {self.provider} product found for {barcode}"
            )
        return ProviderLookup(result=product, raw=self.raw)

    def search(self, query: str, limit: int) -> ProviderSearch:
        self.searches.append((query, limit))
        if self.error:
            raise ProviderFailureError(self.provider, self.error)
        if not self.search_results:
            raise ProviderFailureError(
                self.provider, f"no {self.provider} food found for {query}"
            )
        return ProviderSearch(results=self.search_results[:limit], raw=self.raw)


@dataclass
class FakeProviderFactory(ProviderClientFactory):
    """Hands out one fake client per provider and records the options used."""

    clients: dict[Provider, FakeProviderClient] = field(
        default_factory=lambda: {
            provider: FakeProviderClient(provider=provider) for provider in Provider
        }
    )
    options_seen: list[tuple[Provider, ProviderOptions]] = field(default_factory=list)

    def client_for(
        self, provider: Provider, options: ProviderOptions
    ) -> ProviderClient:
        self.options_seen.append((provider, options))
        return self.clients[provider]


def greek_yogurt(provider: Provider = Provider.USDA, **changes) -> CanonicalFoodResult:
    """Complete provider result used across service tests."""
    values = {
        "provider": provider,
        "description": "Greek Yogurt",
        "brand": "Fage",
        "serving_amount": 170.0,
        "serving_unit": "g",
        "calories": 100.0,
        "protein_g": 17.0,
        "carbs_g": 6.0,
        "fat_g": 0.0,
        "source_id": 1234,
        "exact_match": True,
    }
    values.update(changes)
    return CanonicalFoodResult(**values)


@pytest.fixture(autouse=True)
def restore_package_logger() -> Iterator[None]:
    logger = logging.getLogger("food_lookup")
    handlers = list(logger.handlers)
    level = logger.level
    propagate = logger.propagate
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)
    logger.propagate = propagate


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        fdc_api_key="fdc-key",
        upcitemdb_api_key="upc-key",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def override_repository() -> InMemoryOverrideRepository:
    return InMemoryOverrideRepository()


@pytest.fixture
def barcode_cache_repository() -> InMemoryBarcodeCacheRepository:
    return InMemoryBarcodeCacheRepository()


@pytest.fixture
def search_cache_repository() -> InMemorySearchCacheRepository:
    return InMemorySearchCacheRepository()


@pytest.fixture
def result_cache(
    barcode_cache_repository: InMemoryBarcodeCacheRepository,
    search_cache_repository: InMemorySearchCacheRepository,
    clock: FakeClock,
) -> ResultCache:
    return ResultCache(
        barcode_repository=barcode_cache_repository,
        search_repository=search_cache_repository,
        clock=clock,
    )


@pytest.fixture
def provider_factory() -> FakeProviderFactory:
    return FakeProviderFactory()


@pytest.fixture
def override_service(
    override_repository: InMemoryOverrideRepository, clock: FakeClock
) -> OverrideService:
    return OverrideService(override_repository, clock=clock)


@pytest.fixture
def resolution_service(
    provider_factory: FakeProviderFactory,
    override_repository: InMemoryOverrideRepository,
    result_cache: ResultCache,
) -> ResolutionService:
    return ResolutionService(
        providers=provider_factory,
        overrides=override_repository,
        cache=result_cache,
    )


@pytest.fixture
def fallback_service(resolution_service: ResolutionService) -> FallbackService:
    return FallbackService(resolution_service)
