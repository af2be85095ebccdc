"""Canonical food result models shared by every lookup component."""

import re
from dataclasses import dataclass, field
from enum import StrEnum

from food_lookup.domain.errors import InputValidationError

_BARCODE_PATTERN = re.compile(r"^\d{8,14}$")


class Provider(StrEnum):
    """External nutrition data sources."""

    USDA = "usda"
    OPEN_FOOD_FACTS = "openfoodfacts"
    UPCITEMDB = "upcitemdb"

    @classmethod
    def parse(
        cls, raw: "str | Provider | None", default: "Provider | None" = None
    ) -> "Provider":
        """Resolve a provider name or alias, raising on unknown values."""
        if isinstance(raw, Provider):
            return raw
        cleaned = (raw or "").strip().lower()
        if not cleaned and default is not None:
            return default
        resolved = _PROVIDER_ALIASES.get(cleaned)
        if resolved is None:
            try:
                resolved = cls(cleaned)
            except ValueError as exc:
                raise InputValidationError(f"unsupported provider {raw!r}") from exc
        return resolved


_PROVIDER_ALIASES = {
    "off": Provider.OPEN_FOOD_FACTS,
    "upc": Provider.UPCITEMDB,
    "fdc": Provider.USDA,
}


class SourceTier(StrEnum):
    """Provenance of a resolved result."""

    OVERRIDE = "override"
    CACHE = "cache"
    PROVIDER = "provider"


class NutritionCompleteness(StrEnum):
    """Coarse completeness grade of a result's nutrition data."""

    UNKNOWN = "unknown"
    PARTIAL = "partial"
    COMPLETE = "complete"

    @property
    def rank(self) -> int:
        """Return a sortable rank, higher is more complete."""
        return {"unknown": 0, "partial": 1, "complete": 2}[self.value]


@dataclass(frozen=True)
class MicronutrientAmount:
    """Amount of a single micronutrient."""

    value: float
    unit: str


@dataclass(frozen=True)
class ConfidenceScore:
    """Blended trust metric attached to every resolved result."""

    score: float
    is_verified: bool
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalFoodResult:
    """Provider-agnostic normalized nutrition record."""

    provider: Provider
    description: str
    identifier: str = ""
    brand: str = ""
    serving_amount: float = 0.0
    serving_unit: str = ""
    calories: float = 0.0
    protein_g: float = 0.0
    carbs_g: float = 0.0
    fat_g: float = 0.0
    fiber_g: float | None = None
    sugar_g: float | None = None
    sodium_mg: float | None = None
    micronutrients: dict[str, MicronutrientAmount] = field(default_factory=dict)
    source_id: int = 0
    source_tier: SourceTier | None = None
    exact_match: bool = False
    nutrition_completeness: NutritionCompleteness = NutritionCompleteness.UNKNOWN
    confidence: ConfidenceScore | None = None
    alternatives: tuple["CanonicalFoodResult", ...] = ()
    lookup_trail: tuple[str, ...] = ()

    @property
    def score(self) -> float:
        """Return the confidence score, or 0 when unscored."""
        return self.confidence.score if self.confidence else 0.0

    @property
    def is_verified(self) -> bool:
        """Return whether the result cleared the verification threshold."""
        return bool(self.confidence and self.confidence.is_verified)


def validate_barcode(barcode: str | None) -> str:
    """Return a trimmed barcode or raise if it is not 8-14 digits."""
    cleaned = (barcode or "").strip()
    if not _BARCODE_PATTERN.match(cleaned):
        raise InputValidationError(
            f"invalid barcode {cleaned!r} (expected 8-14 digits)"
        )
    return cleaned


def has_nutrition_signal(result: CanonicalFoodResult) -> bool:
    """Return True when any nutrition figure is non-zero."""
    figures = (
        result.calories,
        result.protein_g,
        result.carbs_g,
        result.fat_g,
        result.fiber_g or 0.0,
        result.sugar_g or 0.0,
        result.sodium_mg or 0.0,
    )
    if any(value > 0 for value in figures):
        return True
    return any(amount.value > 0 for amount in result.micronutrients.values())


def derive_nutrition_completeness(
    result: CanonicalFoodResult,
) -> NutritionCompleteness:
    """Grade how complete a result's description, serving and nutrition are."""
    if not result.description.strip():
        return NutritionCompleteness.UNKNOWN
    has_serving = result.serving_amount > 0 and bool(result.serving_unit.strip())
    if has_serving and has_nutrition_signal(result):
        return NutritionCompleteness.COMPLETE
    return NutritionCompleteness.PARTIAL
