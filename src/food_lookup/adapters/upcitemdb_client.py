"""UPCitemdb API client."""

import re
from dataclasses import dataclass, replace

import httpx

from food_lookup.adapters.nutrient_parsing import (
    is_micronutrient_name,
    parse_amount,
    parse_serving_text,
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

DEFAULT_BASE_URL = "https://api.upcitemdb.com"
DEFAULT_KEY_TYPE = "3scale"

_FACT_SEPARATORS = re.compile(r"[;\n]|,(?=\s*[a-zA-Z])")
_CORE_FACTS = ("calorie", "protein", "carbohydrate", "fat", "fiber", "sugar", "sodium")


@dataclass
class HttpxUpcItemDbClient(ProviderClient):
    """HTTPX-backed UPCitemdb client, using the trial plan without a key."""

    http_client: httpx.Client
    api_key: str | None = None
    api_key_type: str | None = None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    def lookup(self, barcode: str) -> ProviderLookup:
        """Fetch a product by UPC/EAN."""
        payload, raw = self._get("lookup", {"upc": barcode})
        items = _item_list(payload)
        if not items:
            raise ProviderFailureError(
                Provider.UPCITEMDB,
                f"no upcitemdb product found for barcode {barcode!r}",
            )
        item, exact = _select_barcode_match(items, barcode)
        result = replace(_to_result(item), identifier=barcode, exact_match=exact)
        return ProviderLookup(result=result, raw=raw)

    def search(self, query: str, limit: int) -> ProviderSearch:
        """Search products by free text."""
        payload, raw = self._get("search", {"s": query.strip(), "type": "product"})
        results = [
            _to_result(item)
            for item in _item_list(payload)
            if str(item.get("title") or "").strip()
        ]
        if not results:
            raise ProviderFailureError(
                Provider.UPCITEMDB,
                f"no upcitemdb product found for query {query!r}",
            )
        return ProviderSearch(results=results[:limit], raw=raw)

    def _get(
        self, action: str, params: dict[str, object]
    ) -> tuple[dict[str, object], bytes]:
        key = (self.api_key or "").strip()
        plan = "v1" if key else "trial"
        headers = {"Accept": "application/json"}
        if key:
            headers["user_key"] = key
            key_type = (self.api_key_type or "").strip()
            headers["key_type"] = key_type or DEFAULT_KEY_TYPE
        payload, raw = request_json(
            self.http_client,
            Provider.UPCITEMDB,
            "GET",
            f"{self.base_url.rstrip('/')}/prod/{plan}/{action}",
            timeout=self.timeout,
            params=params,
            headers=headers,
        )
        if str(payload.get("code") or "").upper() != "OK":
            message = payload.get("message") or payload.get("code") or "unknown error"
            raise ProviderFailureError(
                Provider.UPCITEMDB, f"upcitemdb {action} returned {message}"
            )
        return payload, raw


def _item_list(payload: dict[str, object]) -> list[dict[str, object]]:
    items = payload.get("items")
    if not isinstance(items, list):
        return []
    return [item for item in items if isinstance(item, dict)]


def _select_barcode_match(
    items: list[dict[str, object]], barcode: str
) -> tuple[dict[str, object], bool]:
    for item in items:
        if same_barcode(str(item.get("upc") or ""), barcode) or same_barcode(
            str(item.get("ean") or ""), barcode
        ):
            return item, True
    return items[0], False


def _to_result(item: dict[str, object]) -> CanonicalFoodResult:
    """Map a UPCitemdb item into a canonical result."""
    facts = _nutrition_facts(item.get("nutrition_facts"))
    serving = parse_serving_text(str(item.get("size") or "")) or (100.0, "g")
    sodium = _fact(facts, "sodium")
    sodium_mg = None
    if sodium is not None:
        sodium_mg = sodium.value * 1000 if sodium.unit == "g" else sodium.value
    return CanonicalFoodResult(
        provider=Provider.UPCITEMDB,
        identifier=str(item.get("upc") or item.get("ean") or "").strip(),
        description=str(item.get("title") or "").strip(),
        brand=str(item.get("brand") or "").strip(),
        serving_amount=serving[0],
        serving_unit=serving[1],
        calories=_fact_value(facts, "calorie"),
        protein_g=_fact_value(facts, "protein"),
        carbs_g=_fact_value(facts, "carbohydrate"),
        fat_g=_fact_value(facts, "fat"),
        fiber_g=_optional_value(facts, "fiber"),
        sugar_g=_optional_value(facts, "sugar"),
        sodium_mg=sodium_mg,
        micronutrients=_micronutrients(facts),
    )


def _nutrition_facts(raw: object) -> dict[str, str]:
    """Normalize mapping or free-text nutrition facts into name -> text."""
    if isinstance(raw, dict):
        return {str(key).strip().lower(): str(value) for key, value in raw.items()}
    if not isinstance(raw, str):
        return {}
    facts: dict[str, str] = {}
    for chunk in _FACT_SEPARATORS.split(raw):
        name, sep, value = chunk.partition(":")
        if sep and name.strip():
            facts[name.strip().lower()] = value.strip()
    return facts


def _fact(facts: dict[str, str], contains: str) -> MicronutrientAmount | None:
    for name, text in facts.items():
        if contains in name and not _is_derived_fact(name, contains):
            amount = parse_amount(text)
            if amount is not None:
                return amount
    return None


def _is_derived_fact(name: str, contains: str) -> bool:
    """Skip sub-facts such as "calories from fat" or "saturated fat"."""
    if "from" in name:
        return True
    return contains == "fat" and ("saturated" in name or "trans" in name)


def _fact_value(facts: dict[str, str], contains: str) -> float:
    amount = _fact(facts, contains)
    return amount.value if amount else 0.0


def _optional_value(facts: dict[str, str], contains: str) -> float | None:
    amount = _fact(facts, contains)
    return amount.value if amount else None


def _micronutrients(facts: dict[str, str]) -> dict[str, MicronutrientAmount]:
    out: dict[str, MicronutrientAmount] = {}
    for name, text in facts.items():
        if any(core in name for core in _CORE_FACTS) or not is_micronutrient_name(
            name
        ):
            continue
        amount = parse_amount(text)
        if amount is None:
            continue
        out[normalize_text(name).replace(" ", "_")] = amount
    return out
