"""Merge same-item search results across providers and rank them."""

from collections.abc import Callable, Sequence
from dataclasses import replace

from food_lookup.domain.foods import CanonicalFoodResult, Provider
from food_lookup.domain.text import normalize_text


def canonical_search_key(description: str, brand: str) -> str:
    """Return the dedup key for a description and brand."""
    return f"{normalize_text(description)}|{normalize_text(brand)}"


def dedupe_and_rank(
    results: Sequence[CanonicalFoodResult],
    provider_order: Sequence[Provider],
) -> list[CanonicalFoodResult]:
    """Group results by canonical key, keep the best of each, and rank groups."""
    groups: dict[str, list[CanonicalFoodResult]] = {}
    for result in results:
        key = canonical_search_key(result.description, result.brand)
        groups.setdefault(key, []).append(result)

    sort_key = _ranking_key(provider_order)
    primaries: list[CanonicalFoodResult] = []
    for group in groups.values():
        ranked = sorted(group, key=sort_key)
        primaries.append(replace(ranked[0], alternatives=tuple(ranked[1:])))
    return sorted(primaries, key=sort_key)


def filter_verified(
    results: Sequence[CanonicalFoodResult],
) -> list[CanonicalFoodResult]:
    """Keep only verified results."""
    return [result for result in results if result.is_verified]


def _ranking_key(
    provider_order: Sequence[Provider],
) -> Callable[[CanonicalFoodResult], tuple[float, int, int, str]]:
    """Score desc, completeness desc, provider preference asc, description asc."""
    preference: dict[Provider, int] = {}
    for index, provider in enumerate(provider_order):
        preference.setdefault(provider, index)
    unlisted = len(provider_order)

    def key(result: CanonicalFoodResult) -> tuple[float, int, int, str]:
        return (
            -result.score,
            -result.nutrition_completeness.rank,
            preference.get(result.provider, unlisted),
            result.description.lower(),
        )

    return key
