"""Provider capability interface shared by all external data sources."""

from dataclasses import dataclass, field
from typing import Protocol

from food_lookup.domain.foods import CanonicalFoodResult, Provider

DEFAULT_TIMEOUT_SECONDS = 15.0


@dataclass(frozen=True)
class ProviderOptions:
    """Per-invocation credentials for a provider."""

    api_key: str | None = None
    api_key_type: str | None = None


@dataclass(frozen=True)
class ProviderLookup:
    """Normalized barcode lookup plus the raw provider response."""

    result: CanonicalFoodResult
    raw: bytes


@dataclass(frozen=True)
class ProviderSearch:
    """Normalized search results plus the raw provider response."""

    results: list[CanonicalFoodResult] = field(default_factory=list)
    raw: bytes = b""


class ProviderClient(Protocol):
    """Interface every provider adapter implements."""

    def lookup(self, barcode: str) -> ProviderLookup:
        """Fetch a single product by barcode."""

    def search(self, query: str, limit: int) -> ProviderSearch:
        """Search products by free text."""


class ProviderClientFactory(Protocol):
    """Builds provider clients for a given provider and credentials."""

    def client_for(
        self, provider: Provider, options: ProviderOptions
    ) -> ProviderClient:
        """Return a client for the provider."""
