"""Ordered multi-provider fallback for barcode lookups and searches."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field, replace

from food_lookup.domain.errors import (
    FallbackExhaustedError,
    InputValidationError,
    ProviderAttempt,
    ProviderFailureError,
)
from food_lookup.domain.foods import CanonicalFoodResult, Provider, validate_barcode
from food_lookup.services.ranking import dedupe_and_rank, filter_verified
from food_lookup.services.resolution import (
    LookupOptions,
    ResolutionService,
    SearchOptions,
    normalize_search_limit,
)

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FallbackCandidate:
    """A provider and the credentials to use with it."""

    provider: Provider | str
    options: LookupOptions = field(default_factory=LookupOptions)


@dataclass
class FallbackService:
    """Try providers in order for barcodes; aggregate all of them for searches."""

    resolution: ResolutionService

    def lookup_barcode_with_fallback(
        self, barcode: str, candidates: Sequence[FallbackCandidate]
    ) -> CanonicalFoodResult:
        """Return the first successful lookup, annotated with the lookup trail."""
        if not candidates:
            raise InputValidationError("no lookup providers configured")
        resolved_barcode = validate_barcode(barcode)

        trail: list[str] = []
        failures: list[ProviderAttempt] = []
        for candidate in candidates:
            provider = Provider.parse(candidate.provider, default=Provider.USDA)
            trail.append(str(provider))
            try:
                result = self.resolution.lookup_barcode(
                    provider, resolved_barcode, candidate.options
                )
            except ProviderFailureError as exc:
                _logger.warning(
                    "Barcode lookup failed: provider=%s barcode=%s error=%s",
                    provider,
                    resolved_barcode,
                    exc,
                )
                failures.append(
                    ProviderAttempt(provider=str(provider), reason=str(exc))
                )
                continue
            return replace(result, lookup_trail=tuple(trail))

        raise FallbackExhaustedError(resolved_barcode, failures, trail)

    def search_foods_with_fallback(
        self,
        query: str,
        candidates: Sequence[FallbackCandidate],
        options: SearchOptions | None = None,
    ) -> list[CanonicalFoodResult]:
        """Search every candidate and merge the results into one ranked list."""
        if not candidates:
            raise InputValidationError("no lookup providers configured")
        cleaned = (query or "").strip()
        if not cleaned:
            raise InputValidationError("search query is required")
        resolved_options = options or SearchOptions()

        provider_order: list[Provider] = []
        failures: list[ProviderAttempt] = []
        combined: list[CanonicalFoodResult] = []
        for candidate in candidates:
            try:
                provider = Provider.parse(candidate.provider, default=Provider.USDA)
            except InputValidationError as exc:
                _logger.warning(
                    "Search skipped: provider=%s error=%s", candidate.provider, exc
                )
                failures.append(
                    ProviderAttempt(provider=str(candidate.provider), reason=str(exc))
                )
                continue
            provider_order.append(provider)
            provider_options = replace(
                resolved_options,
                provider=provider,
                api_key=candidate.options.api_key,
                api_key_type=candidate.options.api_key_type,
            )
            try:
                combined.extend(
                    self.resolution.search_provider(provider, cleaned, provider_options)
                )
            except ProviderFailureError as exc:
                _logger.warning(
                    "Search failed: provider=%s query=%s error=%s",
                    provider,
                    cleaned,
                    exc,
                )
                failures.append(
                    ProviderAttempt(provider=str(provider), reason=str(exc))
                )

        if not combined:
            raise FallbackExhaustedError(
                cleaned, failures, [str(provider) for provider in provider_order]
            )
        ranked = dedupe_and_rank(combined, provider_order)
        if resolved_options.verified_only:
            ranked = filter_verified(ranked)
        trail = [str(provider) for provider in provider_order]
        return [
            replace(result, lookup_trail=tuple(trail))
            for result in ranked[: normalize_search_limit(resolved_options.limit)]
        ]
