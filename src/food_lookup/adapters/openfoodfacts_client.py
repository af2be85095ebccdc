"""Open Food Facts API client."""

from dataclasses import dataclass, replace

import httpx

from food_lookup.adapters.nutrient_parsing import (
    is_micronutrient_name,
    parse_float,
    parse_serving_text,
    same_barcode,
)
from food_lookup.adapters.provider_http import request_json
from food_lookup.domain.errors import ProviderFailureError
from food_lookup.domain.foods import CanonicalFoodResult, MicronutrientAmount, Provider
from food_lookup.services.providers import (
    DEFAULT_TIMEOUT_SECONDS,
    ProviderClient,
    ProviderLookup,
    ProviderSearch,
)

DEFAULT_BASE_URL = "https://world.openfoodfacts.org"
DEFAULT_USER_AGENT = "food-lookup/0.1 (nutrition lookup client)"

_CORE_NUTRIMENTS = {
    "energy-kcal",
    "proteins",
    "carbohydrates",
    "fat",
    "fiber",
    "sugars",
    "sodium",
}
_MICROGRAM_NUTRIMENTS = ("vitamin-a", "vitamin-d", "vitamin-b12", "selenium")


@dataclass
class HttpxOpenFoodFactsClient(ProviderClient):
    """HTTPX-backed Open Food Facts client."""

    http_client: httpx.Client
    base_url: str = DEFAULT_BASE_URL
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def lookup(self, barcode: str) -> ProviderLookup:
        """Fetch a product by barcode."""
        payload, raw = request_json(
            self.http_client,
            Provider.OPEN_FOOD_FACTS,
            "GET",
            f"{self.base_url.rstrip('/')}/api/v2/product/{barcode}.json",
            timeout=self.timeout,
            headers=self._headers(),
        )
        product = payload.get("product")
        if (
            payload.get("status") != 1
            or not isinstance(product, dict)
            or not str(product.get("product_name") or "").strip()
        ):
            raise ProviderFailureError(
                Provider.OPEN_FOOD_FACTS,
                f"no openfoodfacts product found for barcode {barcode!r}",
            )
        code = str(product.get("code") or "").strip()
        exact = bool(code) and same_barcode(code, barcode)
        result = replace(_to_result(product), identifier=barcode, exact_match=exact)
        return ProviderLookup(result=result, raw=raw)

    def search(self, query: str, limit: int) -> ProviderSearch:
        """Search products by free text."""
        payload, raw = request_json(
            self.http_client,
            Provider.OPEN_FOOD_FACTS,
            "GET",
            f"{self.base_url.rstrip('/')}/cgi/search.pl",
            timeout=self.timeout,
            params={
                "search_terms": query.strip(),
                "search_simple": 1,
                "action": "process",
                "json": 1,
                "page_size": limit,
            },
            headers=self._headers(),
        )
        products = payload.get("products")
        results = [
            _to_result(product)
            for product in products or []
            if isinstance(product, dict)
            and str(product.get("product_name") or "").strip()
        ]
        if not results:
            raise ProviderFailureError(
                Provider.OPEN_FOOD_FACTS,
                f"no openfoodfacts product found for query {query!r}",
            )
        return ProviderSearch(results=results[:limit], raw=raw)

    def _headers(self) -> dict[str, str]:
        return {"User-Agent": self.user_agent, "Accept": "application/json"}


def _to_result(product: dict[str, object]) -> CanonicalFoodResult:
    """Map an Open Food Facts product into a canonical result."""
    nutriments = product.get("nutriments")
    nutriments = nutriments if isinstance(nutriments, dict) else {}
    serving_amount, serving_unit = _parse_serving(product)
    sodium_g = _nutriment(nutriments, "sodium")
    return CanonicalFoodResult(
        provider=Provider.OPEN_FOOD_FACTS,
        identifier=str(product.get("code") or "").strip(),
        description=str(product.get("product_name") or "").strip(),
        brand=str(product.get("brands") or "").strip(),
        serving_amount=serving_amount,
        serving_unit=serving_unit,
        calories=_nutriment(nutriments, "energy-kcal") or 0.0,
        protein_g=_nutriment(nutriments, "proteins") or 0.0,
        carbs_g=_nutriment(nutriments, "carbohydrates") or 0.0,
        fat_g=_nutriment(nutriments, "fat") or 0.0,
        fiber_g=_nutriment(nutriments, "fiber"),
        sugar_g=_nutriment(nutriments, "sugars"),
        sodium_mg=sodium_g * 1000 if sodium_g is not None else None,
        micronutrients=_parse_micronutrients(nutriments),
        source_id=_source_id(product),
    )


def _nutriment(nutriments: dict[str, object], base: str) -> float | None:
    """Read a per-serving value, falling back to the per-100g value."""
    for key in (f"{base}_serving", f"{base}_100g"):
        value = parse_float(nutriments.get(key))
        if value is not None:
            return value
    return None


def _parse_micronutrients(
    nutriments: dict[str, object],
) -> dict[str, MicronutrientAmount]:
    out: dict[str, MicronutrientAmount] = {}
    for key, raw in nutriments.items():
        lowered = key.lower()
        if lowered.endswith("_serving"):
            base = lowered.removesuffix("_serving")
        elif lowered.endswith("_100g"):
            base = lowered.removesuffix("_100g")
        else:
            continue
        if base in _CORE_NUTRIMENTS or not is_micronutrient_name(base):
            continue
        canonical = base.replace("-", "_")
        if canonical in out and lowered.endswith("_100g"):
            continue
        value = parse_float(raw)
        if value is None:
            continue
        unit = "ug" if base.startswith(_MICROGRAM_NUTRIMENTS) else "mg"
        out[canonical] = MicronutrientAmount(value=value, unit=unit)
    return out


def _parse_serving(product: dict[str, object]) -> tuple[float, str]:
    quantity = parse_float(product.get("serving_quantity"))
    if quantity is not None and quantity > 0:
        unit = str(product.get("serving_quantity_unit") or "").strip() or "g"
        return quantity, unit
    parsed = parse_serving_text(str(product.get("serving_size") or ""))
    if parsed is not None:
        return parsed
    return 100.0, "g"


def _source_id(product: dict[str, object]) -> int:
    for key in ("_id", "code"):
        raw = str(product.get(key) or "").strip()
        if raw.isdigit():
            return int(raw)
    return 0
