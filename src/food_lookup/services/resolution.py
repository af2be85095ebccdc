"""Tiered food resolution for a single provider: override, cache, provider."""

import logging
from dataclasses import dataclass, replace

from food_lookup.domain.errors import InputValidationError
from food_lookup.domain.foods import (
    CanonicalFoodResult,
    Provider,
    SourceTier,
    derive_nutrition_completeness,
    validate_barcode,
)
from food_lookup.services.cache import ResultCache
from food_lookup.services.confidence import (
    DEFAULT_VERIFIED_MIN_SCORE,
    score_barcode_confidence,
    score_search_confidence,
)
from food_lookup.services.overrides import OverrideRepository, resolve_override
from food_lookup.services.providers import ProviderClientFactory, ProviderOptions
from food_lookup.services.ranking import dedupe_and_rank, filter_verified

DEFAULT_SEARCH_LIMIT = 10
MAX_SEARCH_LIMIT = 50

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LookupOptions:
    """Per-call credentials and verification threshold for barcode lookups."""

    api_key: str | None = None
    api_key_type: str | None = None
    verified_min_score: float | None = None

    def provider_options(self) -> ProviderOptions:
        """Return the credentials handed to provider clients."""
        return ProviderOptions(api_key=self.api_key, api_key_type=self.api_key_type)


@dataclass(frozen=True)
class SearchOptions:
    """Per-call settings for text searches."""

    provider: Provider | str | None = None
    api_key: str | None = None
    api_key_type: str | None = None
    limit: int = DEFAULT_SEARCH_LIMIT
    verified_min_score: float | None = None
    verified_only: bool = False

    def provider_options(self) -> ProviderOptions:
        """Return the credentials handed to provider clients."""
        return ProviderOptions(api_key=self.api_key, api_key_type=self.api_key_type)


def normalize_search_limit(limit: int) -> int:
    """Clamp a requested search limit to the supported range."""
    if limit <= 0:
        return DEFAULT_SEARCH_LIMIT
    return min(limit, MAX_SEARCH_LIMIT)


@dataclass
class ResolutionService:
    """Resolve barcodes and queries against one provider at a time."""

    providers: ProviderClientFactory
    overrides: OverrideRepository
    cache: ResultCache
    verified_min_score: float = DEFAULT_VERIFIED_MIN_SCORE
    debug: bool = False

    def lookup_barcode(
        self,
        provider: Provider | str | None,
        barcode: str,
        options: LookupOptions | None = None,
    ) -> CanonicalFoodResult:
        """Resolve a barcode through the override, cache and provider tiers."""
        resolved_options = options or LookupOptions()
        resolved_provider = Provider.parse(provider, default=Provider.USDA)
        resolved_barcode = validate_barcode(barcode)

        record = self.overrides.get_override(resolved_provider, resolved_barcode)
        if record is not None:
            self._log_tier(SourceTier.OVERRIDE, resolved_provider, resolved_barcode)
            return resolve_override(record)

        cached, found = self.cache.get_barcode(resolved_provider, resolved_barcode)
        if found and cached is not None:
            self._log_tier(SourceTier.CACHE, resolved_provider, resolved_barcode)
            # USDA barcode matches are fuzzy, so cached USDA hits keep their flag.
            exact = cached.exact_match or resolved_provider != Provider.USDA
            return self._score_barcode(
                replace(
                    cached,
                    provider=resolved_provider,
                    identifier=resolved_barcode,
                    source_tier=SourceTier.CACHE,
                    exact_match=exact,
                ),
                resolved_options,
            )

        return self._fetch_barcode(
            resolved_provider, resolved_barcode, resolved_options
        )

    def refresh_cache(
        self,
        provider: Provider | str | None,
        barcode: str,
        options: LookupOptions | None = None,
    ) -> CanonicalFoodResult:
        """Fetch a barcode from the provider and overwrite its cache entry."""
        resolved_provider = Provider.parse(provider, default=Provider.USDA)
        resolved_barcode = validate_barcode(barcode)
        return self._fetch_barcode(
            resolved_provider, resolved_barcode, options or LookupOptions()
        )

    def search_foods(
        self, query: str, options: SearchOptions | None = None
    ) -> list[CanonicalFoodResult]:
        """Search one provider, then dedupe and rank its results."""
        resolved_options = options or SearchOptions()
        provider = Provider.parse(resolved_options.provider, default=Provider.USDA)
        results = self.search_provider(provider, query, resolved_options)
        ranked = dedupe_and_rank(results, [provider])
        if resolved_options.verified_only:
            ranked = filter_verified(ranked)
        return ranked

    def search_provider(
        self, provider: Provider, query: str, options: SearchOptions
    ) -> list[CanonicalFoodResult]:
        """Return scored search results for one provider, cache first."""
        cleaned = (query or "").strip()
        if not cleaned:
            raise InputValidationError("search query is required")
        limit = normalize_search_limit(options.limit)
        threshold = self._threshold(options.verified_min_score)

        cached, found = self.cache.get_search(provider, cleaned, limit)
        if found and cached is not None:
            if self.debug:
                _logger.info(
                    "Search cache hit: provider=%s query=%s results=%s",
                    provider,
                    cleaned,
                    len(cached),
                )
            return [
                self._score_search(item, provider, SourceTier.CACHE, cleaned, threshold)
                for item in cached
            ]

        client = self.providers.client_for(provider, options.provider_options())
        fetched = client.search(cleaned, limit)
        results = [
            self._score_search(item, provider, SourceTier.PROVIDER, cleaned, threshold)
            for item in fetched.results
        ]
        self.cache.put_search(provider, cleaned, limit, results, fetched.raw)
        if self.debug:
            _logger.info(
                "Search provider fetch: provider=%s query=%s results=%s",
                provider,
                cleaned,
                len(results),
            )
        return results

    def _fetch_barcode(
        self, provider: Provider, barcode: str, options: LookupOptions
    ) -> CanonicalFoodResult:
        client = self.providers.client_for(provider, options.provider_options())
        fetched = client.lookup(barcode)
        result = replace(
            fetched.result,
            provider=provider,
            identifier=barcode,
            source_tier=SourceTier.PROVIDER,
        )
        self.cache.put_barcode(provider, barcode, result, fetched.raw)
        self._log_tier(SourceTier.PROVIDER, provider, barcode)
        return self._score_barcode(result, options)

    def _score_barcode(
        self, result: CanonicalFoodResult, options: LookupOptions
    ) -> CanonicalFoodResult:
        result = replace(
            result, nutrition_completeness=derive_nutrition_completeness(result)
        )
        confidence = score_barcode_confidence(
            result, self._threshold(options.verified_min_score)
        )
        return replace(result, confidence=confidence)

    @staticmethod
    def _score_search(
        result: CanonicalFoodResult,
        provider: Provider,
        tier: SourceTier,
        query: str,
        threshold: float,
    ) -> CanonicalFoodResult:
        result = replace(result, provider=provider, source_tier=tier)
        result = replace(
            result, nutrition_completeness=derive_nutrition_completeness(result)
        )
        return replace(
            result, confidence=score_search_confidence(result, query, threshold)
        )

    def _threshold(self, override: float | None) -> float:
        if override is not None and override > 0:
            return override
        return self.verified_min_score

    def _log_tier(self, tier: SourceTier, provider: Provider, barcode: str) -> None:
        if self.debug:
            _logger.info(
                "Barcode resolved: tier=%s provider=%s barcode=%s",
                tier,
                provider,
                barcode,
            )
