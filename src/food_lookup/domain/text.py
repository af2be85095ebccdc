"""Text normalization shared by caching, scoring and ranking."""

import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def normalize_text(value: str | None) -> str:
    """Lowercase, replace punctuation with spaces and collapse whitespace."""
    if not value:
        return ""
    lowered = _NON_ALNUM.sub(" ", value.strip().lower())
    return " ".join(lowered.split())


def tokenize(value: str | None) -> list[str]:
    """Return the distinct normalized tokens of a string, sorted."""
    return sorted(set(normalize_text(value).split()))
