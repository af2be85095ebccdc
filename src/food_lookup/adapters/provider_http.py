"""Shared request handling for provider adapters."""

import json
import time
from collections.abc import Callable

import httpx

from food_lookup.domain.errors import ProviderFailureError
from food_lookup.domain.foods import Provider


def request_json(  # noqa: PLR0913
    http_client: httpx.Client,
    provider: Provider,
    method: str,
    url: str,
    *,
    timeout: float,
    params: dict[str, object] | None = None,
    json_body: dict[str, object] | None = None,
    headers: dict[str, str] | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> tuple[dict[str, object], bytes]:
    """Send a request and return the decoded JSON object with raw bytes.

    httpx applies ``timeout`` to each phase separately, so the body is
    streamed and the whole exchange is also held to ``timeout`` seconds.
    """
    deadline = clock() + timeout
    try:
        with http_client.stream(
            method,
            url,
            params=params,
            json=json_body,
            headers=headers,
            timeout=timeout,
        ) as response:
            chunks: list[bytes] = []
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                if clock() > deadline:
                    raise _timed_out(provider, timeout)
    except httpx.TimeoutException as exc:
        raise _timed_out(provider, timeout) from exc
    except httpx.HTTPError as exc:
        raise ProviderFailureError(
            provider, f"execute {provider} request: {exc}"
        ) from exc

    if not response.is_success:
        raise ProviderFailureError(
            provider,
            f"{provider} request failed with status {response.status_code}",
        )
    content = b"".join(chunks)
    try:
        payload = json.loads(content)
    except ValueError as exc:
        raise ProviderFailureError(
            provider, f"decode {provider} response: {exc}"
        ) from exc
    if not isinstance(payload, dict):
        raise ProviderFailureError(
            provider, f"decode {provider} response: expected a JSON object"
        )
    return payload, content


def _timed_out(provider: Provider, timeout: float) -> ProviderFailureError:
    return ProviderFailureError(
        provider, f"{provider} request timed out after {timeout:g}s"
    )
