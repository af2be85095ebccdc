"""Row mapping and error handling shared by the Supabase repositories."""

import json
from dataclasses import replace
from datetime import datetime
from typing import Any

import httpx
from postgrest import APIError

from food_lookup.domain.errors import StoreFailureError
from food_lookup.domain.foods import (
    CanonicalFoodResult,
    MicronutrientAmount,
    Provider,
    derive_nutrition_completeness,
)


def execute(action: str, query: Any) -> Any:
    """Run a PostgREST query, wrapping store errors with the action name."""
    try:
        return query.execute()
    except (APIError, httpx.HTTPError) as exc:
        raise StoreFailureError(f"{action}: {exc}") from exc


def result_to_row(result: CanonicalFoodResult) -> dict[str, object]:
    """Serialize the stored fields of a result into column values."""
    return {
        "description": result.description,
        "brand": result.brand,
        "serving_amount": result.serving_amount,
        "serving_unit": result.serving_unit,
        "calories": result.calories,
        "protein_g": result.protein_g,
        "carbs_g": result.carbs_g,
        "fat_g": result.fat_g,
        "fiber_g": result.fiber_g,
        "sugar_g": result.sugar_g,
        "sodium_mg": result.sodium_mg,
        "micronutrients": {
            key: {"value": amount.value, "unit": amount.unit}
            for key, amount in result.micronutrients.items()
        },
        "source_id": result.source_id,
        "exact_match": result.exact_match,
    }


def result_from_row(
    row: dict[str, Any], provider: Provider, identifier: str = ""
) -> CanonicalFoodResult:
    """Parse stored columns back into an unscored result."""
    result = CanonicalFoodResult(
        provider=provider,
        identifier=identifier or str(row.get("identifier") or ""),
        description=str(row.get("description") or ""),
        brand=str(row.get("brand") or ""),
        serving_amount=float(row.get("serving_amount") or 0.0),
        serving_unit=str(row.get("serving_unit") or ""),
        calories=float(row.get("calories") or 0.0),
        protein_g=float(row.get("protein_g") or 0.0),
        carbs_g=float(row.get("carbs_g") or 0.0),
        fat_g=float(row.get("fat_g") or 0.0),
        fiber_g=_optional_float(row.get("fiber_g")),
        sugar_g=_optional_float(row.get("sugar_g")),
        sodium_mg=_optional_float(row.get("sodium_mg")),
        micronutrients=_parse_micronutrients(row.get("micronutrients")),
        source_id=int(row.get("source_id") or 0),
        exact_match=bool(row.get("exact_match")),
    )
    return replace(
        result, nutrition_completeness=derive_nutrition_completeness(result)
    )


def parse_timestamp(raw: object) -> datetime:
    """Parse an ISO-8601 timestamp column."""
    if isinstance(raw, datetime):
        return raw
    text = str(raw or "")
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    return datetime.fromisoformat(text)


def load_json(raw: object) -> object:
    """Decode a JSON column that may arrive as text or already decoded."""
    if isinstance(raw, str):
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return None
    return raw


def _parse_micronutrients(raw: object) -> dict[str, MicronutrientAmount]:
    data = load_json(raw)
    if not isinstance(data, dict):
        return {}
    out: dict[str, MicronutrientAmount] = {}
    for key, amount in data.items():
        if not isinstance(amount, dict):
            continue
        value = _optional_float(amount.get("value"))
        if value is None:
            continue
        out[str(key)] = MicronutrientAmount(
            value=value, unit=str(amount.get("unit") or "")
        )
    return out


def _optional_float(raw: object) -> float | None:
    if raw is None or isinstance(raw, bool):
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        return None
