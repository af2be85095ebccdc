"""TTL caches for barcode lookups and provider searches."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Protocol

from food_lookup.domain.cache import CacheEntry, SearchCacheEntry
from food_lookup.domain.errors import InputValidationError
from food_lookup.domain.foods import CanonicalFoodResult, Provider
from food_lookup.domain.text import normalize_text

DEFAULT_BARCODE_TTL = timedelta(days=30)
DEFAULT_SEARCH_TTL = timedelta(days=7)
DEFAULT_LIST_LIMIT = 100

_logger = logging.getLogger(__name__)


class BarcodeCacheRepository(Protocol):
    """Persistence interface for cached barcode lookups."""

    def get_entry(self, provider: Provider, barcode: str) -> CacheEntry | None:
        """Return the stored entry for a key, fresh or not."""

    def upsert_entry(self, entry: CacheEntry) -> None:
        """Insert or replace the entry for its (provider, barcode) key."""

    def list_entries(self, provider: Provider | None, limit: int) -> list[CacheEntry]:
        """Return entries, newest fetch first."""

    def delete_entries(self, provider: Provider | None, barcode: str | None) -> int:
        """Delete matching entries; no filters deletes every entry."""


class SearchCacheRepository(Protocol):
    """Persistence interface for cached search results."""

    def get_entry(
        self, provider: Provider, query_norm: str, limit_requested: int
    ) -> SearchCacheEntry | None:
        """Return the stored entry for a key, fresh or not."""

    def upsert_entry(self, entry: SearchCacheEntry) -> None:
        """Insert or replace the entry for its (provider, query, limit) key."""

    def list_entries(
        self, provider: Provider | None, query_norm: str | None, limit: int
    ) -> list[SearchCacheEntry]:
        """Return entries, newest fetch first."""

    def delete_entries(self, provider: Provider | None, query_norm: str | None) -> int:
        """Delete matching entries; no filters deletes every entry."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ResultCache:
    """Read-time expiring cache over the barcode and search repositories."""

    barcode_repository: BarcodeCacheRepository
    search_repository: SearchCacheRepository
    barcode_ttl: timedelta = DEFAULT_BARCODE_TTL
    search_ttl: timedelta = DEFAULT_SEARCH_TTL
    clock: Callable[[], datetime] = _utcnow

    def get_barcode(
        self, provider: Provider, barcode: str
    ) -> tuple[CanonicalFoodResult | None, bool]:
        """Return a cached barcode result and whether a fresh one was found."""
        entry = self.barcode_repository.get_entry(provider, barcode)
        if entry is None or not entry.is_fresh(self.clock()):
            return None, False
        return entry.result, True

    def put_barcode(
        self,
        provider: Provider,
        barcode: str,
        result: CanonicalFoodResult,
        raw: bytes | None,
        ttl: timedelta | None = None,
    ) -> CacheEntry:
        """Store a barcode result, resetting its fetch and expiry times."""
        now = self.clock()
        entry = CacheEntry(
            provider=provider,
            barcode=barcode,
            result=result,
            raw_payload=_raw_json(raw),
            fetched_at=now,
            expires_at=now + (self.barcode_ttl if ttl is None else ttl),
        )
        self.barcode_repository.upsert_entry(entry)
        return entry

    def get_search(
        self, provider: Provider, query: str, limit: int
    ) -> tuple[list[CanonicalFoodResult] | None, bool]:
        """Return cached search results and whether a fresh entry was found."""
        entry = self.search_repository.get_entry(
            provider, normalize_text(query), limit
        )
        if entry is None or not entry.is_fresh(self.clock()):
            return None, False
        return list(entry.results), True

    def put_search(  # noqa: PLR0913
        self,
        provider: Provider,
        query: str,
        limit: int,
        results: list[CanonicalFoodResult],
        raw: bytes | None,
        ttl: timedelta | None = None,
    ) -> SearchCacheEntry:
        """Store search results, resetting their fetch and expiry times."""
        now = self.clock()
        entry = SearchCacheEntry(
            provider=provider,
            query=query.strip(),
            query_norm=normalize_text(query),
            limit_requested=limit,
            results=list(results),
            raw_payload=_raw_json(raw),
            fetched_at=now,
            expires_at=now + (self.search_ttl if ttl is None else ttl),
        )
        self.search_repository.upsert_entry(entry)
        return entry

    def list_barcode_cache(
        self, provider: Provider | str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[CacheEntry]:
        """List barcode cache entries, optionally for one provider."""
        return self.barcode_repository.list_entries(
            _optional_provider(provider), _list_limit(limit)
        )

    def purge_barcode_cache(
        self,
        *,
        purge_all: bool = False,
        provider: Provider | str | None = None,
        barcode: str | None = None,
    ) -> int:
        """Delete barcode cache entries by scope and return the count removed."""
        scope_provider, scope_barcode = _purge_scope(purge_all, provider, barcode)
        removed = self.barcode_repository.delete_entries(scope_provider, scope_barcode)
        _logger.info(
            "Purged barcode cache: provider=%s barcode=%s removed=%s",
            scope_provider or "*",
            scope_barcode or "*",
            removed,
        )
        return removed

    def list_search_cache(
        self,
        provider: Provider | str | None = None,
        query: str | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[SearchCacheEntry]:
        """List search cache entries, optionally filtered by provider and query."""
        return self.search_repository.list_entries(
            _optional_provider(provider),
            normalize_text(query) or None,
            _list_limit(limit),
        )

    def purge_search_cache(
        self,
        *,
        purge_all: bool = False,
        provider: Provider | str | None = None,
        query: str | None = None,
    ) -> int:
        """Delete search cache entries by scope and return the count removed."""
        scope_provider, scope_query = _purge_scope(
            purge_all, provider, normalize_text(query)
        )
        removed = self.search_repository.delete_entries(scope_provider, scope_query)
        _logger.info(
            "Purged search cache: provider=%s query=%s removed=%s",
            scope_provider or "*",
            scope_query or "*",
            removed,
        )
        return removed


def _purge_scope(
    purge_all: bool, provider: Provider | str | None, key: str | None
) -> tuple[Provider | None, str | None]:
    """Resolve purge filters; at least one scope must be given."""
    if purge_all:
        return None, None
    scope_provider = _optional_provider(provider)
    scope_key = (key or "").strip() or None
    if scope_provider is None and scope_key is None:
        raise InputValidationError(
            "specify purge_all, a provider, a key, or a provider and key"
        )
    return scope_provider, scope_key


def _optional_provider(provider: Provider | str | None) -> Provider | None:
    if provider is None or (isinstance(provider, str) and not provider.strip()):
        return None
    return Provider.parse(provider)


def _list_limit(limit: int) -> int:
    return limit if limit > 0 else DEFAULT_LIST_LIMIT


def _raw_json(raw: bytes | None) -> str | None:
    """Keep the raw provider payload only when it is valid JSON text."""
    if not raw:
        return None
    try:
        text = raw.decode("utf-8")
        json.loads(text)
    except (UnicodeDecodeError, ValueError):
        return None
    return text
