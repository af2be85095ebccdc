"""Cache entry models for barcode and search results."""

from dataclasses import dataclass
from datetime import datetime

from food_lookup.domain.foods import CanonicalFoodResult, Provider


@dataclass(frozen=True)
class CacheEntry:
    """Cached barcode lookup for a (provider, barcode) pair."""

    provider: Provider
    barcode: str
    result: CanonicalFoodResult
    raw_payload: str | None
    fetched_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        """Return True while the entry has not passed its expiry."""
        return now < self.expires_at


@dataclass(frozen=True)
class SearchCacheEntry:
    """Cached search results for a (provider, query, limit) key."""

    provider: Provider
    query: str
    query_norm: str
    limit_requested: int
    results: list[CanonicalFoodResult]
    raw_payload: str | None
    fetched_at: datetime
    expires_at: datetime

    def is_fresh(self, now: datetime) -> bool:
        """Return True while the entry has not passed its expiry."""
        return now < self.expires_at
