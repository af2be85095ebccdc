"""User-maintained barcode overrides."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Protocol

from pydantic import ValidationError

from food_lookup.domain.errors import InputValidationError
from food_lookup.domain.foods import (
    CanonicalFoodResult,
    MicronutrientAmount,
    Provider,
    SourceTier,
    derive_nutrition_completeness,
    validate_barcode,
)
from food_lookup.domain.overrides import OverrideInput, OverrideRecord
from food_lookup.services.confidence import override_confidence

DEFAULT_LIST_LIMIT = 100

_logger = logging.getLogger(__name__)


class OverrideRepository(Protocol):
    """Persistence interface for overrides."""

    def get_override(self, provider: Provider, barcode: str) -> OverrideRecord | None:
        """Return the override for a (provider, barcode) pair, if present."""

    def upsert_override(self, record: OverrideRecord) -> None:
        """Insert or replace an override."""

    def delete_override(self, provider: Provider, barcode: str) -> bool:
        """Delete an override and report whether a row was removed."""

    def list_overrides(
        self, provider: Provider | None, limit: int
    ) -> list[OverrideRecord]:
        """Return overrides, most recently updated first."""


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class OverrideService:
    """Application service for override operations."""

    repository: OverrideRepository
    clock: Callable[[], datetime] = _utcnow

    def set_override(
        self,
        provider: Provider | str | None,
        barcode: str,
        payload: OverrideInput | Mapping[str, object],
    ) -> OverrideRecord:
        """Validate and store an override, replacing any existing one."""
        resolved_provider = Provider.parse(provider, default=Provider.USDA)
        resolved_barcode = validate_barcode(barcode)
        data = _validate_payload(payload)
        result = _to_result(resolved_provider, resolved_barcode, data)
        record = OverrideRecord(
            provider=resolved_provider,
            barcode=resolved_barcode,
            result=result,
            notes=data.notes,
            updated_at=self.clock(),
        )
        self.repository.upsert_override(record)
        _logger.info(
            "Stored override: provider=%s barcode=%s",
            resolved_provider,
            resolved_barcode,
        )
        return record

    def get_override(
        self, provider: Provider | str | None, barcode: str
    ) -> OverrideRecord | None:
        """Return the override for a provider and barcode, if present."""
        return self.repository.get_override(
            Provider.parse(provider, default=Provider.USDA), validate_barcode(barcode)
        )

    def delete_override(self, provider: Provider | str | None, barcode: str) -> None:
        """Delete an override, raising when none exists."""
        resolved_provider = Provider.parse(provider, default=Provider.USDA)
        resolved_barcode = validate_barcode(barcode)
        if not self.repository.delete_override(resolved_provider, resolved_barcode):
            raise InputValidationError(
                f"no override found for {resolved_provider} barcode {resolved_barcode}"
            )
        _logger.info(
            "Deleted override: provider=%s barcode=%s",
            resolved_provider,
            resolved_barcode,
        )

    def list_overrides(
        self, provider: Provider | str | None = None, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[OverrideRecord]:
        """List overrides, optionally for one provider."""
        resolved_provider = None
        if provider is not None and str(provider).strip():
            resolved_provider = Provider.parse(provider)
        return self.repository.list_overrides(
            resolved_provider, limit if limit > 0 else DEFAULT_LIST_LIMIT
        )


def resolve_override(record: OverrideRecord) -> CanonicalFoodResult:
    """Return the stored snapshot tagged as an override hit."""
    result = replace(
        record.result,
        identifier=record.barcode,
        source_tier=SourceTier.OVERRIDE,
        exact_match=True,
        confidence=override_confidence(),
    )
    return replace(
        result, nutrition_completeness=derive_nutrition_completeness(result)
    )


def _validate_payload(payload: OverrideInput | Mapping[str, object]) -> OverrideInput:
    if isinstance(payload, OverrideInput):
        return payload
    try:
        return OverrideInput.model_validate(dict(payload))
    except ValidationError as exc:
        raise InputValidationError(_describe_validation_error(exc)) from exc


def _describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error["loc"]) or "payload"
        parts.append(f"{location}: {error['msg']}")
    return "invalid override: " + "; ".join(parts)


def _to_result(
    provider: Provider, barcode: str, data: OverrideInput
) -> CanonicalFoodResult:
    result = CanonicalFoodResult(
        provider=provider,
        identifier=barcode,
        description=data.description,
        brand=data.brand,
        serving_amount=data.serving_amount,
        serving_unit=data.serving_unit,
        calories=data.calories,
        protein_g=data.protein_g,
        carbs_g=data.carbs_g,
        fat_g=data.fat_g,
        fiber_g=data.fiber_g,
        sugar_g=data.sugar_g,
        sodium_mg=data.sodium_mg,
        micronutrients={
            key: MicronutrientAmount(value=amount.value, unit=amount.unit)
            for key, amount in data.micronutrients.items()
        },
        source_id=data.source_id,
        source_tier=SourceTier.OVERRIDE,
        exact_match=True,
        confidence=override_confidence(),
    )
    return replace(
        result, nutrition_completeness=derive_nutrition_completeness(result)
    )
