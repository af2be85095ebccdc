"""Models for user-maintained barcode overrides."""

import json
import re
from dataclasses import dataclass
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from food_lookup.domain.foods import CanonicalFoodResult, Provider

_MICRONUTRIENT_KEY = re.compile(r"^[a-z0-9_]+$")


class MicronutrientInput(BaseModel):
    """Single micronutrient amount supplied by the user."""

    model_config = ConfigDict(extra="forbid")

    value: float = Field(ge=0.0)
    unit: str

    @field_validator("unit")
    @classmethod
    def _require_unit(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("unit is required")
        return cleaned


class OverrideInput(BaseModel):
    """Validated payload for creating or replacing an override."""

    model_config = ConfigDict(extra="forbid")

    description: str
    brand: str = ""
    serving_amount: float = Field(gt=0.0)
    serving_unit: str
    calories: float = Field(default=0.0, ge=0.0)
    protein_g: float = Field(default=0.0, ge=0.0)
    carbs_g: float = Field(default=0.0, ge=0.0)
    fat_g: float = Field(default=0.0, ge=0.0)
    fiber_g: float | None = Field(default=None, ge=0.0)
    sugar_g: float | None = Field(default=None, ge=0.0)
    sodium_mg: float | None = Field(default=None, ge=0.0)
    micronutrients: dict[str, MicronutrientInput] = Field(default_factory=dict)
    source_id: int = Field(default=0, ge=0)
    notes: str = ""

    @field_validator("description", "serving_unit")
    @classmethod
    def _require_text(cls, value: str) -> str:
        cleaned = value.strip()
        if not cleaned:
            raise ValueError("must not be empty")
        return cleaned

    @field_validator("brand", "notes")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        return value.strip()

    @field_validator("micronutrients", mode="before")
    @classmethod
    def _normalize_micronutrients(cls, value: object) -> object:
        if value is None:
            return {}
        if isinstance(value, str):
            if not value.strip():
                return {}
            try:
                value = json.loads(value)
            except json.JSONDecodeError as exc:
                raise ValueError(
                    f"micronutrients must be a valid JSON object: {exc.msg}"
                ) from exc
        if not isinstance(value, dict):
            raise ValueError("micronutrients must be an object")
        normalized: dict[str, object] = {}
        for raw_key, amount in value.items():
            key = normalize_micronutrient_key(str(raw_key))
            if not key or not _MICRONUTRIENT_KEY.match(key):
                raise ValueError(
                    f"invalid micronutrient key {raw_key!r} "
                    "(expected lowercase snake_case)"
                )
            normalized[key] = amount
        return normalized


def normalize_micronutrient_key(raw: str) -> str:
    """Convert a micronutrient name to lowercase snake_case."""
    key = raw.strip().lower().replace("-", "_").replace(" ", "_")
    while "__" in key:
        key = key.replace("__", "_")
    return key.strip("_")


@dataclass(frozen=True)
class OverrideRecord:
    """Stored override for a (provider, barcode) pair."""

    provider: Provider
    barcode: str
    result: CanonicalFoodResult
    notes: str
    updated_at: datetime
