"""Tests for provider nutrient parsing helpers."""

import pytest

from food_lookup.adapters.nutrient_parsing import (
    is_micronutrient_name,
    parse_amount,
    parse_float,
    parse_serving_text,
    same_barcode,
)
from food_lookup.domain.foods import MicronutrientAmount
from food_lookup.domain.text import normalize_text, tokenize


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (12, 12.0),
        (3.5, 3.5),
        ("4.2", 4.2),
        ("4,2", 4.2),
        ("n/a", None),
        (True, None),
        (None, None),
    ],
)
def test_parse_float(raw: object, expected: float | None) -> None:
    assert parse_float(raw) == expected


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("1,200 mg", MicronutrientAmount(1200.0, "mg")),
        ("5g", MicronutrientAmount(5.0, "g")),
        ("2.5 mcg", MicronutrientAmount(2.5, "ug")),
        ("400 IU", MicronutrientAmount(400.0, "iu")),
        ("150", MicronutrientAmount(150.0, "g")),
        ("150 kcal", MicronutrientAmount(150.0, "kcal")),
        (7, MicronutrientAmount(7.0, "g")),
        ("trace", None),
        ("", None),
    ],
)
def test_parse_amount(raw: object, expected: MicronutrientAmount | None) -> None:
    assert parse_amount(raw) == expected


def test_parse_serving_text() -> None:
    assert parse_serving_text("170 g") == (170.0, "g")
    assert parse_serving_text("2 (cookies)") == (2.0, "cookies")
    assert parse_serving_text("one cup") is None
    assert parse_serving_text("170") is None


def test_is_micronutrient_name() -> None:
    assert is_micronutrient_name("Vitamin C, total ascorbic acid")
    assert is_micronutrient_name("Iron, Fe")
    assert not is_micronutrient_name("Protein")


def test_same_barcode_ignores_leading_zeros() -> None:
    assert same_barcode("012345678905", "12345678905")
    assert same_barcode(" 0012345678905", "012345678905")
    assert not same_barcode("012345678905", "012345678906")
    assert not same_barcode("", "0000")


def test_normalize_text_and_tokenize() -> None:
    assert normalize_text("  Greek-Yogurt,  PLAIN! ") == "greek yogurt plain"
    assert normalize_text(None) == ""
    assert tokenize("Yogurt greek GREEK") == ["greek", "yogurt"]
