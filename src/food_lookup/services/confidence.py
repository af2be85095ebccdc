"""Confidence scoring for resolved food results.

The score blends four dimensions with fixed weights::

    score = 0.45 * provider_trust
          + 0.25 * nutrition_quality
          + 0.15 * serving_quality
          + 0.15 * identity_quality

Barcode results take identity from the barcode match; search results take it
from token overlap between the query and the candidate. Overrides are never
scored: callers attach ``override_confidence()`` instead.
"""

from food_lookup.domain.foods import CanonicalFoodResult, ConfidenceScore, Provider
from food_lookup.domain.text import tokenize

DEFAULT_VERIFIED_MIN_SCORE = 0.80
SEARCH_IDENTITY_GUARD = 0.70

PROVIDER_TRUST = {
    Provider.USDA: 0.90,
    Provider.OPEN_FOOD_FACTS: 0.75,
    Provider.UPCITEMDB: 0.60,
}
UNKNOWN_PROVIDER_TRUST = 0.50

_WEIGHTS = (0.45, 0.25, 0.15, 0.15)


def override_confidence() -> ConfidenceScore:
    """Return the fixed confidence attached to user overrides."""
    return ConfidenceScore(
        score=1.0,
        is_verified=True,
        reasons=(
            "provider_trust=1.00 (override)",
            "identity_quality=1.00 (exact barcode match)",
            "score=1.000 (user override, not scored)",
        ),
    )


def score_barcode_confidence(
    result: CanonicalFoodResult, min_score: float = DEFAULT_VERIFIED_MIN_SCORE
) -> ConfidenceScore:
    """Score a barcode lookup result."""
    threshold = _threshold(min_score)
    identity, identity_note = barcode_identity_quality(result)
    score, reasons = _blend(result, identity, identity_note)
    verified = score >= threshold
    note = "met" if verified else "not met"
    return ConfidenceScore(
        score=score,
        is_verified=verified,
        reasons=(*reasons, f"verified_threshold={threshold:.2f} ({note})"),
    )


def score_search_confidence(
    result: CanonicalFoodResult,
    query: str,
    min_score: float = DEFAULT_VERIFIED_MIN_SCORE,
) -> ConfidenceScore:
    """Score a search result against the query that produced it."""
    threshold = _threshold(min_score)
    identity, identity_note = search_identity_quality(
        query, result.description, result.brand
    )
    score, reasons = _blend(result, identity, identity_note)
    guarded = identity < SEARCH_IDENTITY_GUARD
    verified = score >= threshold and not guarded
    note = "met" if verified else "not met"
    if guarded:
        note = f"{note}, identity_guard requires identity>={SEARCH_IDENTITY_GUARD:.2f}"
    return ConfidenceScore(
        score=score,
        is_verified=verified,
        reasons=(*reasons, f"verified_threshold={threshold:.2f} ({note})"),
    )


def provider_trust(provider: Provider | str) -> float:
    """Return the fixed trust constant for a provider."""
    return PROVIDER_TRUST.get(provider, UNKNOWN_PROVIDER_TRUST)


def nutrition_quality(result: CanonicalFoodResult) -> tuple[float, str]:
    """Grade the nutrition figures present on a result."""
    macros = sum(
        1 for value in (result.protein_g, result.carbs_g, result.fat_g) if value > 0
    )
    has_calories = result.calories > 0
    if has_calories and macros == 3:
        return 1.0, "calories and all macros"
    if has_calories and macros >= 2:
        return 0.7, f"calories and {macros} macros"
    extras = (result.fiber_g or 0.0, result.sugar_g or 0.0, result.sodium_mg or 0.0)
    if (
        has_calories
        or macros
        or any(value > 0 for value in extras)
        or result.micronutrients
    ):
        return 0.4, "partial nutrition signal"
    return 0.2, "no nutrition data"


def serving_quality(amount: float, unit: str) -> tuple[float, str]:
    """Grade serving size information."""
    has_amount = amount > 0
    has_unit = bool(unit.strip())
    if has_amount and has_unit:
        return 1.0, "amount and unit"
    if has_amount or has_unit:
        return 0.5, "amount or unit missing"
    return 0.0, "no serving data"


def barcode_identity_quality(result: CanonicalFoodResult) -> tuple[float, str]:
    """Grade how strongly a barcode result is tied to the scanned code."""
    if result.exact_match:
        return 1.0, "exact barcode match"
    if result.source_id > 0:
        return 0.8, "source id present"
    return 0.5, "weak identity evidence"


def search_identity_quality(
    query: str, description: str, brand: str
) -> tuple[float, str]:
    """Grade token overlap between a query and a candidate's name and brand."""
    query_tokens = set(tokenize(query))
    if not query_tokens:
        return 0.4, "empty query tokens"
    description_tokens = set(tokenize(description))
    brand_tokens = set(tokenize(brand))

    overlap = len(query_tokens & description_tokens) / len(query_tokens)
    brand_matched = bool(query_tokens & brand_tokens)
    if overlap >= 0.75 and brand_matched:
        return 1.0, "high token overlap with brand match"
    if overlap >= 0.5 and brand_matched:
        return 0.7, "moderate token overlap with brand match"
    return 0.4, "weak token overlap"


def _blend(
    result: CanonicalFoodResult, identity: float, identity_note: str
) -> tuple[float, tuple[str, ...]]:
    trust = provider_trust(result.provider)
    nutrition, nutrition_note = nutrition_quality(result)
    serving, serving_note = serving_quality(result.serving_amount, result.serving_unit)
    components = (trust, nutrition, serving, identity)
    raw = sum(
        weight * value for weight, value in zip(_WEIGHTS, components, strict=True)
    )
    score = round(min(max(raw, 0.0), 1.0), 3)
    reasons = (
        f"provider_trust={trust:.2f} ({result.provider})",
        f"nutrition_quality={nutrition:.2f} ({nutrition_note})",
        f"serving_quality={serving:.2f} ({serving_note})",
        f"identity_quality={identity:.2f} ({identity_note})",
        f"score={score:.3f} (weighted blend)",
    )
    return score, reasons


def _threshold(min_score: float) -> float:
    return min_score if min_score > 0 else DEFAULT_VERIFIED_MIN_SCORE
