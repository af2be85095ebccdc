"""Supabase repository for barcode overrides."""

from dataclasses import dataclass
from typing import Any

from supabase import Client

from food_lookup.adapters.supabase_rows import (
    execute,
    parse_timestamp,
    result_from_row,
    result_to_row,
)
from food_lookup.domain.foods import Provider
from food_lookup.domain.overrides import OverrideRecord
from food_lookup.services.overrides import OverrideRepository

_TABLE = "food_overrides"


@dataclass
class SupabaseOverrideRepository(OverrideRepository):
    """Supabase-backed override store keyed by (provider, barcode)."""

    client: Client

    def get_override(self, provider: Provider, barcode: str) -> OverrideRecord | None:
        """Return the override for a (provider, barcode) pair, if present."""
        response = execute(
            "get override",
            self.client.table(_TABLE)
            .select("*")
            .eq("provider", str(provider))
            .eq("barcode", barcode)
            .limit(1),
        )
        if not response.data:
            return None
        return _parse_override(response.data[0])

    def upsert_override(self, record: OverrideRecord) -> None:
        """Insert or replace an override."""
        row = {
            "provider": str(record.provider),
            "barcode": record.barcode,
            **result_to_row(record.result),
            "notes": record.notes,
            "updated_at": record.updated_at.isoformat(),
        }
        execute(
            "upsert override",
            self.client.table(_TABLE).upsert(row, on_conflict="provider,barcode"),
        )

    def delete_override(self, provider: Provider, barcode: str) -> bool:
        """Delete an override and report whether a row was removed."""
        response = execute(
            "delete override",
            self.client.table(_TABLE)
            .delete()
            .eq("provider", str(provider))
            .eq("barcode", barcode),
        )
        return bool(response.data)

    def list_overrides(
        self, provider: Provider | None, limit: int
    ) -> list[OverrideRecord]:
        """Return overrides, most recently updated first."""
        query = self.client.table(_TABLE).select("*")
        if provider is not None:
            query = query.eq("provider", str(provider))
        response = execute(
            "list overrides", query.order("updated_at", desc=True).limit(limit)
        )
        return [_parse_override(row) for row in response.data or []]


def _parse_override(row: dict[str, Any]) -> OverrideRecord:
    """Parse an override row into a domain record."""
    provider = Provider.parse(row.get("provider"))
    barcode = str(row.get("barcode") or "")
    return OverrideRecord(
        provider=provider,
        barcode=barcode,
        result=result_from_row(row, provider, identifier=barcode),
        notes=str(row.get("notes") or ""),
        updated_at=parse_timestamp(row.get("updated_at")),
    )
