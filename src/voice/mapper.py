"""Field mapper: loosely-typed NLU data -> canonically-typed intent fields.

The mapper never raises for bad input. A value that cannot be coerced to its declared type is kept
as an explicit `Unmapped` marker so the validation stage can report every bad field in one pass.

Reference fields are passed through as trimmed labels; resolving them needs a store lookup and
belongs to the validation stage.
"""

from __future__ import annotations

import logging
import math
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from src.voice.dates import parse_field_date
from src.voice.dictionaries import ROLE_SYNONYMS, canonical_field_name, parse_boolean_term
from src.voice.normalize import normalize_token, to_snake_case
from src.voice.schema import LOWEST_ROLE, FieldType, IntentConfig

logger = logging.getLogger(__name__)

DEFAULT_HOURLY_RATE = 50.0

_NUMBER_SEPARATORS_RE = re.compile(r"(?<=\d)[,_](?=\d{3}\b)")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")


@dataclass(frozen=True)
class Unmapped:
    """Marker for a value that failed to coerce to its declared type."""

    raw: Any
    reason: str


@dataclass(frozen=True)
class MappedFields:
    """Mapper output: canonical field name -> typed value or `Unmapped`."""

    intent: str
    values: dict[str, Any] = field(default_factory=dict)

    @property
    def unmapped(self) -> dict[str, Unmapped]:
        return {k: v for k, v in self.values.items() if isinstance(v, Unmapped)}

    def typed(self) -> dict[str, Any]:
        """Only the successfully mapped values."""

        return {k: v for k, v in self.values.items() if not isinstance(v, Unmapped)}

    def has(self, name: str) -> bool:
        return name in self.values


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _map_string(name: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        return Unmapped(value, f"{name} must be text")
    text = str(value).strip()
    if name.endswith("email"):
        text = text.lower()
    return text


def _map_number(name: str, value: Any) -> Any:
    if isinstance(value, bool):
        return Unmapped(value, f"{name} must be a number")
    if isinstance(value, (int, float)):
        number = value
    elif isinstance(value, str):
        text = _NUMBER_SEPARATORS_RE.sub("", value.strip())
        try:
            number = int(text) if _INTEGER_RE.match(text) else float(text)
        except ValueError:
            return Unmapped(value, f"{name} must be a number")
    else:
        return Unmapped(value, f"{name} must be a number")

    if isinstance(number, float) and not math.isfinite(number):
        return Unmapped(value, f"{name} must be a finite number")
    return number


def _map_date(name: str, value: Any) -> Any:
    parsed = parse_field_date(value)
    if parsed is None:
        return Unmapped(value, f"{name} must be a valid date")
    return parsed


def _map_boolean(name: str, value: Any) -> Any:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        parsed = parse_boolean_term(value)
        if parsed is not None:
            return parsed
    return Unmapped(value, f"{name} must be a boolean value (true/false)")


def _map_reference(name: str, value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, (str, int)):
        return Unmapped(value, f"{name} must be a name or identifier")
    return str(value).strip()


def _map_array(name: str, value: Any) -> Any:
    if isinstance(value, str):
        items = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        if any(isinstance(item, bool) or not isinstance(item, (str, int, float)) for item in value):
            return Unmapped(value, f"{name} must be a list of values")
        items = [str(item).strip() for item in value]
    else:
        return Unmapped(value, f"{name} must be a list of values")

    items = [item for item in items if item]
    if not items:
        return Unmapped(value, f"{name} must not be empty")
    return items


def _enum_token(value: str) -> str:
    """Separator-insensitive token: `InProgress`, `in progress` and `in_progress` compare equal."""

    return normalize_token(value).replace("_", "")


def _map_enum(name: str, value: Any, allowed: tuple[str, ...]) -> Any:
    if not isinstance(value, str):
        return Unmapped(value, f"{name} must be one of: {', '.join(allowed)}")

    token = normalize_token(value)
    if name == "role" and token in ROLE_SYNONYMS:
        token = ROLE_SYNONYMS[token].value
    token = token.replace("_", "")

    if not allowed:
        return value.strip()

    for candidate in allowed:
        if _enum_token(candidate) == token:
            return candidate
    return Unmapped(value, f"{name} must be one of: {', '.join(allowed)}")


class FieldMapper:
    """Map raw intent data to typed fields according to an `IntentConfig`."""

    def __init__(self, *, default_hourly_rate: float = DEFAULT_HOURLY_RATE) -> None:
        self._intent_defaults: dict[str, dict[str, Any]] = {
            "create_user": {
                "role": LOWEST_ROLE.value,
                "hourly_rate": default_hourly_rate,
                "is_active": True,
                "is_approved_by_super_admin": False,
            },
            "create_client": {"is_active": True},
        }

    def _canonical_keys(self, config: IntentConfig, data: Mapping[str, Any]) -> dict[str, Any]:
        """Snake-case and de-alias keys; an explicit canonical key wins over an alias."""

        explicit: dict[str, Any] = {}
        aliased: dict[str, Any] = {}
        for raw_key, value in data.items():
            key = to_snake_case(str(raw_key))
            canonical = canonical_field_name(config.intent, key)
            if canonical == key:
                explicit[key] = value
            else:
                aliased.setdefault(canonical, value)

        merged = {**aliased, **explicit}
        dropped = sorted(k for k in merged if k not in config.field_types)
        if dropped:
            logger.debug("dropping undeclared fields intent=%s fields=%s", config.intent, dropped)
        return {k: v for k, v in merged.items() if k in config.field_types}

    def map_value(self, config: IntentConfig, name: str, value: Any) -> Any:
        """Coerce one value to the type declared for `name`."""

        field_type = config.field_types[name]
        if field_type == FieldType.string:
            return _map_string(name, value)
        if field_type == FieldType.number:
            return _map_number(name, value)
        if field_type == FieldType.date:
            return _map_date(name, value)
        if field_type == FieldType.boolean:
            return _map_boolean(name, value)
        if field_type == FieldType.reference:
            return _map_reference(name, value)
        if field_type == FieldType.array:
            return _map_array(name, value)
        return _map_enum(name, value, config.enum_values.get(name, ()))

    def map_fields(self, config: IntentConfig, data: Mapping[str, Any] | None) -> MappedFields:
        """Map a raw data mapping for `config.intent`.

        Blank values (None, empty or whitespace-only strings) are treated as absent. Intent defaults
        fill absent keys only; a value that failed to coerce is never replaced by a default.
        """

        values: dict[str, Any] = {}
        for name, value in self._canonical_keys(config, data or {}).items():
            if _is_blank(value):
                continue
            values[name] = self.map_value(config, name, value)

        for name, default in self._intent_defaults.get(config.intent, {}).items():
            values.setdefault(name, default)

        return MappedFields(intent=config.intent, values=values)
