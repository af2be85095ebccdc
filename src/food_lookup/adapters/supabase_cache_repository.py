"""Supabase repositories for the barcode and search result caches."""

from dataclasses import dataclass
from typing import Any

from supabase import Client

from food_lookup.adapters.supabase_rows import (
    execute,
    load_json,
    parse_timestamp,
    result_from_row,
    result_to_row,
)
from food_lookup.domain.cache import CacheEntry, SearchCacheEntry
from food_lookup.domain.foods import Provider
from food_lookup.services.cache import BarcodeCacheRepository, SearchCacheRepository

_BARCODE_TABLE = "barcode_cache"
_SEARCH_TABLE = "provider_search_cache"


@dataclass
class SupabaseBarcodeCacheRepository(BarcodeCacheRepository):
    """Barcode cache rows keyed by (provider, barcode)."""

    client: Client

    def get_entry(self, provider: Provider, barcode: str) -> CacheEntry | None:
        """Return the stored entry for a key, fresh or not."""
        response = execute(
            "get barcode cache",
            self.client.table(_BARCODE_TABLE)
            .select("*")
            .eq("provider", str(provider))
            .eq("barcode", barcode)
            .limit(1),
        )
        if not response.data:
            return None
        return _parse_barcode_entry(response.data[0])

    def upsert_entry(self, entry: CacheEntry) -> None:
        """Insert or replace the entry for its (provider, barcode) key."""
        row = {
            "provider": str(entry.provider),
            "barcode": entry.barcode,
            **result_to_row(entry.result),
            "raw_payload": entry.raw_payload,
            "fetched_at": entry.fetched_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
        }
        execute(
            "upsert barcode cache",
            self.client.table(_BARCODE_TABLE).upsert(
                row, on_conflict="provider,barcode"
            ),
        )

    def list_entries(self, provider: Provider | None, limit: int) -> list[CacheEntry]:
        """Return entries, newest fetch first."""
        query = self.client.table(_BARCODE_TABLE).select("*")
        if provider is not None:
            query = query.eq("provider", str(provider))
        response = execute(
            "list barcode cache", query.order("fetched_at", desc=True).limit(limit)
        )
        return [_parse_barcode_entry(row) for row in response.data or []]

    def delete_entries(self, provider: Provider | None, barcode: str | None) -> int:
        """Delete matching entries; no filters deletes every entry."""
        query = self.client.table(_BARCODE_TABLE).delete()
        if provider is not None:
            query = query.eq("provider", str(provider))
        if barcode is not None:
            query = query.eq("barcode", barcode)
        if provider is None and barcode is None:
            # PostgREST refuses unfiltered deletes.
            query = query.neq("barcode", "")
        response = execute("purge barcode cache", query)
        return len(response.data or [])


@dataclass
class SupabaseSearchCacheRepository(SearchCacheRepository):
    """Search cache rows keyed by (provider, query_norm, limit_requested)."""

    client: Client

    def get_entry(
        self, provider: Provider, query_norm: str, limit_requested: int
    ) -> SearchCacheEntry | None:
        """Return the stored entry for a key, fresh or not."""
        response = execute(
            "get search cache",
            self.client.table(_SEARCH_TABLE)
            .select("*")
            .eq("provider", str(provider))
            .eq("query_norm", query_norm)
            .eq("limit_requested", limit_requested)
            .limit(1),
        )
        if not response.data:
            return None
        return _parse_search_entry(response.data[0])

    def upsert_entry(self, entry: SearchCacheEntry) -> None:
        """Insert or replace the entry for its (provider, query, limit) key."""
        row = {
            "provider": str(entry.provider),
            "query": entry.query,
            "query_norm": entry.query_norm,
            "limit_requested": entry.limit_requested,
            "results": [
                {"identifier": result.identifier, **result_to_row(result)}
                for result in entry.results
            ],
            "raw_payload": entry.raw_payload,
            "fetched_at": entry.fetched_at.isoformat(),
            "expires_at": entry.expires_at.isoformat(),
        }
        execute(
            "upsert search cache",
            self.client.table(_SEARCH_TABLE).upsert(
                row, on_conflict="provider,query_norm,limit_requested"
            ),
        )

    def list_entries(
        self, provider: Provider | None, query_norm: str | None, limit: int
    ) -> list[SearchCacheEntry]:
        """Return entries, newest fetch first."""
        query = self.client.table(_SEARCH_TABLE).select("*")
        if provider is not None:
            query = query.eq("provider", str(provider))
        if query_norm is not None:
            query = query.eq("query_norm", query_norm)
        response = execute(
            "list search cache", query.order("fetched_at", desc=True).limit(limit)
        )
        return [_parse_search_entry(row) for row in response.data or []]

    def delete_entries(self, provider: Provider | None, query_norm: str | None) -> int:
        """Delete matching entries; no filters deletes every entry."""
        query = self.client.table(_SEARCH_TABLE).delete()
        if provider is not None:
            query = query.eq("provider", str(provider))
        if query_norm is not None:
            query = query.eq("query_norm", query_norm)
        if provider is None and query_norm is None:
            query = query.neq("query_norm", "")
        response = execute("purge search cache", query)
        return len(response.data or [])


def _parse_barcode_entry(row: dict[str, Any]) -> CacheEntry:
    provider = Provider.parse(row.get("provider"))
    barcode = str(row.get("barcode") or "")
    return CacheEntry(
        provider=provider,
        barcode=barcode,
        result=result_from_row(row, provider, identifier=barcode),
        raw_payload=row.get("raw_payload"),
        fetched_at=parse_timestamp(row.get("fetched_at")),
        expires_at=parse_timestamp(row.get("expires_at")),
    )


def _parse_search_entry(row: dict[str, Any]) -> SearchCacheEntry:
    provider = Provider.parse(row.get("provider"))
    items = load_json(row.get("results"))
    results = [
        result_from_row(item, provider)
        for item in (items if isinstance(items, list) else [])
        if isinstance(item, dict)
    ]
    return SearchCacheEntry(
        provider=provider,
        query=str(row.get("query") or ""),
        query_norm=str(row.get("query_norm") or ""),
        limit_requested=int(row.get("limit_requested") or 0),
        results=results,
        raw_payload=row.get("raw_payload"),
        fetched_at=parse_timestamp(row.get("fetched_at")),
        expires_at=parse_timestamp(row.get("expires_at")),
    )
