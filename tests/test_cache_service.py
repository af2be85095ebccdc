"""Tests for the barcode and search result caches."""

from datetime import timedelta

import pytest

from food_lookup.domain.errors import InputValidationError
from food_lookup.domain.foods import Provider
from food_lookup.services.cache import ResultCache
from tests.conftest import (
    FakeClock,
    InMemoryBarcodeCacheRepository,
    greek_yogurt,
)


def test_barcode_entry_expires_on_read(
    result_cache: ResultCache, clock: FakeClock
) -> None:
    result_cache.put_barcode(Provider.USDA, "12345678", greek_yogurt(), b"{}")

    clock.advance(timedelta(days=30) - timedelta(seconds=1))
    fresh, found = result_cache.get_barcode(Provider.USDA, "12345678")
    assert found is True
    assert fresh is not None

    clock.advance(timedelta(seconds=1))
    stale, found = result_cache.get_barcode(Provider.USDA, "12345678")
    assert found is False
    assert stale is None


def test_put_barcode_resets_expiry_and_honors_ttl(
    result_cache: ResultCache,
    barcode_cache_repository: InMemoryBarcodeCacheRepository,
    clock: FakeClock,
) -> None:
    result_cache.put_barcode(Provider.USDA, "12345678", greek_yogurt(), None)
    clock.advance(timedelta(days=40))
    entry = result_cache.put_barcode(
        Provider.USDA, "12345678", greek_yogurt(), None, ttl=timedelta(hours=1)
    )

    assert entry.fetched_at == clock.now
    assert entry.expires_at == clock.now + timedelta(hours=1)
    assert len(barcode_cache_repository.entries) == 1


def test_zero_ttl_expires_immediately(
    result_cache: ResultCache, clock: FakeClock
) -> None:
    entry = result_cache.put_barcode(
        Provider.USDA, "12345678", greek_yogurt(), None, ttl=timedelta(0)
    )
    search_entry = result_cache.put_search(
        Provider.USDA, "yogurt", 10, [greek_yogurt()], None, ttl=timedelta(0)
    )

    assert entry.expires_at == clock.now
    assert search_entry.expires_at == clock.now
    assert result_cache.get_barcode(Provider.USDA, "12345678") == (None, False)
    assert result_cache.get_search(Provider.USDA, "yogurt", 10) == (None, False)


def test_raw_payload_kept_only_when_valid_json(result_cache: ResultCache) -> None:
    valid = result_cache.put_barcode(
        Provider.USDA, "12345678", greek_yogurt(), b'{"foods": []}'
    )
    invalid = result_cache.put_barcode(
        Provider.USDA, "87654321", greek_yogurt(), b"<html>busy</html>"
    )

    assert valid.raw_payload == '{"foods": []}'
    assert invalid.raw_payload is None


def test_search_cache_keys_on_normalized_query_and_limit(
    result_cache: ResultCache, clock: FakeClock
) -> None:
    result_cache.put_search(
        Provider.USDA, " Greek, Yogurt ", 10, [greek_yogurt()], None
    )

    hit, found = result_cache.get_search(Provider.USDA, "greek yogurt", 10)
    _, other_limit = result_cache.get_search(Provider.USDA, "greek yogurt", 5)
    _, other_provider = result_cache.get_search(
        Provider.OPEN_FOOD_FACTS, "greek yogurt", 10
    )

    assert found is True
    assert hit is not None
    assert len(hit) == 1
    assert other_limit is False
    assert other_provider is False

    clock.advance(timedelta(days=7))
    _, expired = result_cache.get_search(Provider.USDA, "greek yogurt", 10)
    assert expired is False


def test_list_barcode_cache_newest_first(
    result_cache: ResultCache, clock: FakeClock
) -> None:
    result_cache.put_barcode(Provider.USDA, "11111111", greek_yogurt(), None)
    clock.advance(timedelta(minutes=1))
    result_cache.put_barcode(
        Provider.OPEN_FOOD_FACTS, "22222222", greek_yogurt(), None
    )

    entries = result_cache.list_barcode_cache()
    off_entries = result_cache.list_barcode_cache(provider="off")

    assert [entry.barcode for entry in entries] == ["22222222", "11111111"]
    assert [entry.barcode for entry in off_entries] == ["22222222"]


def test_list_search_cache_filters_by_query(result_cache: ResultCache) -> None:
    result_cache.put_search(Provider.USDA, "oat milk", 10, [], None)
    result_cache.put_search(Provider.USDA, "almond milk", 10, [], None)

    entries = result_cache.list_search_cache(query="OAT  milk")

    assert [entry.query for entry in entries] == ["oat milk"]


def test_purge_barcode_cache_scopes(result_cache: ResultCache) -> None:
    result_cache.put_barcode(Provider.USDA, "11111111", greek_yogurt(), None)
    result_cache.put_barcode(Provider.USDA, "22222222", greek_yogurt(), None)
    result_cache.put_barcode(Provider.UPCITEMDB, "11111111", greek_yogurt(), None)
    result_cache.put_barcode(
        Provider.OPEN_FOOD_FACTS, "33333333", greek_yogurt(), None
    )

    assert result_cache.purge_barcode_cache(provider="usda", barcode="22222222") == 1
    assert result_cache.purge_barcode_cache(barcode="11111111") == 2
    assert result_cache.purge_barcode_cache(provider="off") == 1
    assert result_cache.list_barcode_cache() == []


def test_purge_all(result_cache: ResultCache) -> None:
    result_cache.put_barcode(Provider.USDA, "11111111", greek_yogurt(), None)
    result_cache.put_search(Provider.USDA, "yogurt", 10, [], None)
    result_cache.put_search(Provider.UPCITEMDB, "yogurt", 10, [], None)

    assert result_cache.purge_barcode_cache(purge_all=True) == 1
    assert result_cache.purge_search_cache(purge_all=True) == 2


def test_purge_search_cache_by_query(result_cache: ResultCache) -> None:
    result_cache.put_search(Provider.USDA, "yogurt", 10, [], None)
    result_cache.put_search(Provider.USDA, "yogurt", 20, [], None)
    result_cache.put_search(Provider.USDA, "milk", 10, [], None)

    assert result_cache.purge_search_cache(query="Yogurt!") == 2
    assert [entry.query for entry in result_cache.list_search_cache()] == ["milk"]


def test_purge_requires_a_scope(result_cache: ResultCache) -> None:
    with pytest.raises(InputValidationError, match="purge_all"):
        result_cache.purge_barcode_cache()
    with pytest.raises(InputValidationError, match="purge_all"):
        result_cache.purge_search_cache(provider="  ", query="  ")
