"""Tests for confidence scoring."""

import pytest

from food_lookup.domain.foods import CanonicalFoodResult, MicronutrientAmount, Provider
from food_lookup.services.confidence import (
    nutrition_quality,
    override_confidence,
    provider_trust,
    score_barcode_confidence,
    score_search_confidence,
    search_identity_quality,
    serving_quality,
)
from tests.conftest import greek_yogurt


def test_end_to_end_barcode_score() -> None:
    confidence = score_barcode_confidence(greek_yogurt())

    assert confidence.score == pytest.approx(0.88)
    assert confidence.is_verified is True
    assert confidence.reasons == (
        "provider_trust=0.90 (usda)",
        "nutrition_quality=0.70 (calories and 2 macros)",
        "serving_quality=1.00 (amount and unit)",
        "identity_quality=1.00 (exact barcode match)",
        "score=0.880 (weighted blend)",
        "verified_threshold=0.80 (met)",
    )


def test_nutrition_quality_is_monotonic() -> None:
    full, _ = nutrition_quality(greek_yogurt(fat_g=1.5))
    calories_only, _ = nutrition_quality(
        greek_yogurt(protein_g=0.0, carbs_g=0.0, fat_g=0.0)
    )

    assert full == 1.0
    assert calories_only == 0.4
    assert full > calories_only


def test_nutrition_quality_tiers() -> None:
    empty = CanonicalFoodResult(provider=Provider.USDA, description="Water")
    sodium_only = CanonicalFoodResult(
        provider=Provider.USDA, description="Salt", sodium_mg=390.0
    )
    micros_only = CanonicalFoodResult(
        provider=Provider.USDA,
        description="Supplement",
        micronutrients={"vitamin_c": MicronutrientAmount(60.0, "mg")},
    )

    assert nutrition_quality(empty)[0] == 0.2
    assert nutrition_quality(sodium_only)[0] == 0.4
    assert nutrition_quality(micros_only)[0] == 0.4


def test_serving_quality() -> None:
    assert serving_quality(100.0, "g")[0] == 1.0
    assert serving_quality(100.0, "")[0] == 0.5
    assert serving_quality(0.0, "g")[0] == 0.5
    assert serving_quality(0.0, " ")[0] == 0.0


def test_barcode_identity_tiers() -> None:
    fuzzy = score_barcode_confidence(greek_yogurt(exact_match=False))
    weak = score_barcode_confidence(greek_yogurt(exact_match=False, source_id=0))

    assert fuzzy.score == pytest.approx(0.85)
    assert weak.score == pytest.approx(0.805)
    assert "identity_quality=0.50 (weak identity evidence)" in weak.reasons


def test_provider_trust_ordering() -> None:
    assert provider_trust(Provider.USDA) > provider_trust(Provider.OPEN_FOOD_FACTS)
    assert provider_trust(Provider.OPEN_FOOD_FACTS) > provider_trust(
        Provider.UPCITEMDB
    )
    assert provider_trust("nutritionix") == 0.5


def test_search_identity_quality_tiers() -> None:
    quality, _ = search_identity_quality("fage greek yogurt", "Greek Yogurt", "Fage")
    assert quality == 0.7
    assert search_identity_quality("fage yogurt", "Greek Yogurt", "Fage")[0] == 0.7
    assert (
        search_identity_quality("fage greek yogurt", "Fage Greek Yogurt", "Fage")[0]
        == 1.0
    )
    assert search_identity_quality("greek yogurt", "Greek Yogurt", "Fage")[0] == 0.4
    assert search_identity_quality("!!!", "Greek Yogurt", "Fage")[0] == 0.4


def test_search_identity_guard_blocks_unrelated_match() -> None:
    result = greek_yogurt(fat_g=2.0, description="Cheddar Cheese", brand="Tillamook")

    confidence = score_search_confidence(result, "fage greek yogurt")

    assert confidence.score == pytest.approx(0.865)
    assert confidence.is_verified is False
    assert confidence.reasons[-1] == (
        "verified_threshold=0.80 (not met, identity_guard requires identity>=0.70)"
    )


def test_threshold_falls_back_to_default() -> None:
    confidence = score_barcode_confidence(greek_yogurt(), min_score=0)

    assert confidence.reasons[-1] == "verified_threshold=0.80 (met)"


def test_override_confidence_is_fixed() -> None:
    confidence = override_confidence()

    assert confidence.score == 1.0
    assert confidence.is_verified is True
