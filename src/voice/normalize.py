"""Text normalization for field names and reference labels."""

from __future__ import annotations

import re

_CAMEL_BOUNDARY_RE = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")
_SEPARATOR_RE = re.compile(r"[\s\-]+")
_MULTISPACE_RE = re.compile(r"\s+")


def to_snake_case(name: str) -> str:
    """Convert an LLM-produced field name to snake_case (`hourlyRate` -> `hourly_rate`)."""

    value = (name or "").strip()
    value = _CAMEL_BOUNDARY_RE.sub("_", value)
    value = _SEPARATOR_RE.sub("_", value)
    return value.lower()


def normalize_token(value: str) -> str:
    """Normalize an enum-like token: lowercase, spaces and hyphens become underscores.

    `"Super Admin"`, `"super-admin"` and `"SUPER_ADMIN"` all normalize to `"super_admin"`.
    """

    return _SEPARATOR_RE.sub("_", (value or "").strip().lower())


def normalize_label(label: str) -> str:
    """Normalize a human-readable reference label for exact matching.

    Normalization is intentionally conservative:
        - Trim and collapse internal whitespace.
        - Casefold.

    No partial or fuzzy matching is implied; two labels match only if they normalize equal.
    """

    value = _MULTISPACE_RE.sub(" ", (label or "").strip())
    return value.casefold()
