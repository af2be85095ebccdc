"""Builds HTTPX provider clients that share one HTTP session."""

from dataclasses import dataclass

import httpx

from food_lookup.adapters import fdc_client, openfoodfacts_client, upcitemdb_client
from food_lookup.domain.foods import Provider
from food_lookup.services.providers import (
    DEFAULT_TIMEOUT_SECONDS,
    ProviderClient,
    ProviderClientFactory,
    ProviderOptions,
)


@dataclass
class HttpxProviderFactory(ProviderClientFactory):
    """Creates provider adapters with per-invocation credentials."""

    http_client: httpx.Client
    fdc_base_url: str = fdc_client.DEFAULT_BASE_URL
    openfoodfacts_base_url: str = openfoodfacts_client.DEFAULT_BASE_URL
    openfoodfacts_user_agent: str = openfoodfacts_client.DEFAULT_USER_AGENT
    upcitemdb_base_url: str = upcitemdb_client.DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT_SECONDS

    @classmethod
    def create(  # noqa: PLR0913
        cls,
        *,
        fdc_base_url: str = fdc_client.DEFAULT_BASE_URL,
        openfoodfacts_base_url: str = openfoodfacts_client.DEFAULT_BASE_URL,
        openfoodfacts_user_agent: str = openfoodfacts_client.DEFAULT_USER_AGENT,
        upcitemdb_base_url: str = upcitemdb_client.DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> "HttpxProviderFactory":
        """Create a factory with a managed httpx session."""
        return cls(
            http_client=httpx.Client(),
            fdc_base_url=fdc_base_url,
            openfoodfacts_base_url=openfoodfacts_base_url,
            openfoodfacts_user_agent=openfoodfacts_user_agent,
            upcitemdb_base_url=upcitemdb_base_url,
            timeout=timeout,
        )

    def client_for(
        self, provider: Provider, options: ProviderOptions
    ) -> ProviderClient:
        """Return the adapter for a provider."""
        if provider is Provider.USDA:
            return fdc_client.HttpxFdcClient(
                api_key=options.api_key,
                http_client=self.http_client,
                base_url=self.fdc_base_url,
                timeout=self.timeout,
            )
        if provider is Provider.OPEN_FOOD_FACTS:
            return openfoodfacts_client.HttpxOpenFoodFactsClient(
                http_client=self.http_client,
                base_url=self.openfoodfacts_base_url,
                user_agent=self.openfoodfacts_user_agent,
                timeout=self.timeout,
            )
        return upcitemdb_client.HttpxUpcItemDbClient(
            http_client=self.http_client,
            api_key=options.api_key,
            api_key_type=options.api_key_type,
            base_url=self.upcitemdb_base_url,
            timeout=self.timeout,
        )

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.http_client.close()
