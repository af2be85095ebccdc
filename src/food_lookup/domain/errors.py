"""Error taxonomy for food lookups."""

from collections.abc import Sequence
from dataclasses import dataclass


class FoodLookupError(Exception):
    """Base class for all food lookup failures."""


class InputValidationError(FoodLookupError, ValueError):
    """Raised for malformed caller input; never retried."""


class StoreFailureError(FoodLookupError, RuntimeError):
    """Raised when the override or cache store cannot be read or written."""


class ProviderFailureError(FoodLookupError):
    """Raised when an external provider cannot produce a usable result."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


@dataclass(frozen=True)
class ProviderAttempt:
    """Outcome of a single failed provider attempt during fallback."""

    provider: str
    reason: str


class FallbackExhaustedError(ProviderFailureError):
    """Raised when every fallback candidate failed."""

    def __init__(
        self,
        subject: str,
        failures: Sequence[ProviderAttempt],
        lookup_trail: Sequence[str],
    ) -> None:
        details = "; ".join(f"{item.provider}: {item.reason}" for item in failures)
        message = f"lookup failed for {subject!r} across providers"
        if details:
            message = f"{message} ({details})"
        super().__init__(provider=",".join(lookup_trail), message=message)
        self.failures = tuple(failures)
        self.lookup_trail = tuple(lookup_trail)
