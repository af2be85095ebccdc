"""USDA FoodData Central API client."""

from dataclasses import dataclass, replace

import httpx

from food_lookup.adapters.nutrient_parsing import (
    is_micronutrient_name,
    parse_float,
    same_barcode,
)
from food_lookup.adapters.provider_http import request_json
from food_lookup.domain.errors import ProviderFailureError
from food_lookup.domain.foods import CanonicalFoodResult, MicronutrientAmount, Provider
from food_lookup.domain.text import normalize_text
from food_lookup.services.providers import (
    DEFAULT_TIMEOUT_SECONDS,
    ProviderClient,
    ProviderLookup,
    ProviderSearch,
)

DEFAULT_BASE_URL = "https://api.nal.usda.gov/fdc/v1"

_NUTRIENT_IDS = {
    1008: "calories",
    1003: "protein_g",
    1005: "carbs_g",
    1004: "fat_g",
    1079: "fiber_g",
    2000: "sugar_g",
    1093: "sodium_mg",
}

_NUTRIENT_NAMES = {
    "energy": "calories",
    "protein": "protein_g",
    "carbohydrate, by difference": "carbs_g",
    "total lipid (fat)": "fat_g",
    "fiber, total dietary": "fiber_g",
    "sugars, total including nlea": "sugar_g",
    "sugars, total": "sugar_g",
    "sodium, na": "sodium_mg",
}


@dataclass
class HttpxFdcClient(ProviderClient):
    """HTTPX-backed FDC client."""

    api_key: str | None
    http_client: httpx.Client
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def lookup(self, barcode: str) -> ProviderLookup:
        """Find a branded food by barcode via the search endpoint."""
        payload, raw = self._search_payload(
            {"query": barcode, "dataType": ["Branded"], "pageSize": 20}
        )
        foods = _food_list(payload)
        if not foods:
            raise ProviderFailureError(
                Provider.USDA, f"no USDA branded food found for barcode {barcode!r}"
            )
        food, exact = _select_barcode_match(foods, barcode)
        result = replace(_to_result(food), identifier=barcode, exact_match=exact)
        return ProviderLookup(result=result, raw=raw)

    def search(self, query: str, limit: int) -> ProviderSearch:
        """Search foods by free text."""
        payload, raw = self._search_payload({"query": query, "pageSize": limit})
        results = [
            _to_result(food)
            for food in _food_list(payload)
            if str(food.get("description") or "").strip()
        ]
        if not results:
            raise ProviderFailureError(
                Provider.USDA, f"no USDA food found for query {query!r}"
            )
        return ProviderSearch(results=results[:limit], raw=raw)

    def _search_payload(
        self, body: dict[str, object]
    ) -> tuple[dict[str, object], bytes]:
        if not (self.api_key or "").strip():
            raise ProviderFailureError(Provider.USDA, "missing USDA API key")
        return request_json(
            self.http_client,
            Provider.USDA,
            "POST",
            f"{self.base_url.rstrip('/')}/foods/search",
            timeout=self.timeout,
            params={"api_key": self.api_key},
            json_body=body,
        )


def _food_list(payload: dict[str, object]) -> list[dict[str, object]]:
    foods = payload.get("foods")
    if not isinstance(foods, list):
        return []
    return [food for food in foods if isinstance(food, dict)]


def _select_barcode_match(
    foods: list[dict[str, object]], barcode: str
) -> tuple[dict[str, object], bool]:
    """Prefer the candidate whose GTIN equals the barcode."""
    for food in foods:
        if str(food.get("gtinUpc") or "").strip() == barcode:
            return food, True
    for food in foods:
        if same_barcode(str(food.get("gtinUpc") or ""), barcode):
            return food, True
    return foods[0], False


def _to_result(food: dict[str, object]) -> CanonicalFoodResult:
    """Map an FDC food into a canonical result."""
    values: dict[str, float] = {}
    micronutrients: dict[str, MicronutrientAmount] = {}
    for nutrient in food.get("foodNutrients") or []:
        if not isinstance(nutrient, dict):
            continue
        name, unit, nutrient_id, amount = _unpack_nutrient(nutrient)
        if amount is None:
            continue
        field_name = _NUTRIENT_IDS.get(nutrient_id) or _NUTRIENT_NAMES.get(
            name.lower()
        )
        if field_name == "calories" and unit.lower() not in {"", "kcal"}:
            continue
        if field_name:
            values.setdefault(field_name, amount)
            continue
        if is_micronutrient_name(name) and unit:
            key = normalize_text(name).replace(" ", "_")
            if key:
                micronutrients[key] = MicronutrientAmount(
                    value=amount, unit=unit.lower()
                )

    fdc_id = food.get("fdcId")
    return CanonicalFoodResult(
        provider=Provider.USDA,
        identifier=str(food.get("gtinUpc") or "").strip(),
        description=str(food.get("description") or "").strip(),
        brand=str(food.get("brandOwner") or food.get("brandName") or "").strip(),
        serving_amount=parse_float(food.get("servingSize")) or 0.0,
        serving_unit=str(food.get("servingSizeUnit") or "").strip(),
        calories=values.get("calories", 0.0),
        protein_g=values.get("protein_g", 0.0),
        carbs_g=values.get("carbs_g", 0.0),
        fat_g=values.get("fat_g", 0.0),
        fiber_g=values.get("fiber_g"),
        sugar_g=values.get("sugar_g"),
        sodium_mg=values.get("sodium_mg"),
        micronutrients=micronutrients,
        source_id=fdc_id if isinstance(fdc_id, int) else 0,
    )


def _unpack_nutrient(
    nutrient: dict[str, object],
) -> tuple[str, str, int | None, float | None]:
    """Read name, unit, id and amount from search or detail nutrient shapes."""
    info = nutrient.get("nutrient")
    info = info if isinstance(info, dict) else {}
    name = str(nutrient.get("nutrientName") or info.get("name") or "").strip()
    unit = str(nutrient.get("unitName") or info.get("unitName") or "").strip()
    raw_id = info.get("id") or nutrient.get("nutrientId")
    nutrient_id = raw_id if isinstance(raw_id, int) else None
    amount = parse_float(nutrient.get("value", nutrient.get("amount")))
    return name, unit, nutrient_id, amount
