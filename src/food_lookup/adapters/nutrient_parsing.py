"""Best-effort parsing of provider nutrient values."""

import re

from food_lookup.domain.foods import MicronutrientAmount

_NUMBER = re.compile(r"\d+(?:\.\d+)?|\.\d+")
_MINERALS = (
    "iron",
    "calcium",
    "potassium",
    "zinc",
    "magnesium",
    "phosphorus",
    "selenium",
    "copper",
    "manganese",
)


def parse_float(value: object) -> float | None:
    """Parse a number from a JSON value, accepting numeric strings."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip().replace(",", "."))
        except ValueError:
            return None
    return None


def parse_amount(raw: object) -> MicronutrientAmount | None:
    """Extract a value and unit from unit-mixed text such as ``"1,200 mg"``."""
    if raw is None:
        return None
    if isinstance(raw, int | float) and not isinstance(raw, bool):
        return MicronutrientAmount(value=float(raw), unit="g")
    text = str(raw).strip().lower()
    if not text:
        return None
    match = _NUMBER.search(text.replace(",", ""))
    if match is None:
        return None
    return MicronutrientAmount(value=float(match.group()), unit=_detect_unit(text))


def _detect_unit(text: str) -> str:
    if "mg" in text:
        return "mg"
    if "mcg" in text or "ug" in text or "µg" in text:
        return "ug"
    if "iu" in text:
        return "iu"
    if "kcal" in text or "cal" in text:
        return "kcal"
    return "g"


def parse_serving_text(text: str | None) -> tuple[float, str] | None:
    """Parse ``"170 g"`` style serving text into amount and unit."""
    parts = (text or "").strip().split()
    if len(parts) < 2:
        return None
    amount = parse_float(parts[0].replace(",", ""))
    if amount is None or amount <= 0:
        return None
    return amount, parts[1].strip("(),")


def is_micronutrient_name(name: str) -> bool:
    """Return True for vitamin and mineral nutrient names."""
    lowered = name.lower()
    return "vitamin" in lowered or any(mineral in lowered for mineral in _MINERALS)


def same_barcode(left: str | None, right: str | None) -> bool:
    """Compare barcodes ignoring surrounding space and leading zeros."""
    left_clean = (left or "").strip().lstrip("0")
    right_clean = (right or "").strip().lstrip("0")
    return bool(left_clean) and left_clean == right_clean
