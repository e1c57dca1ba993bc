"""Intent catalogue <-> row conversion helpers.

Both the seeding CLI and the Postgres registry (and its integration tests) convert between
`IntentConfig` and rows of the `intent_definitions` table. Keeping the conversion in one place
prevents drift between what is written and what is read back.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from psycopg.types.json import Jsonb

from src.voice.schema import IntentConfig

INTENT_COLUMNS: tuple[str, ...] = (
    "intent",
    "category",
    "description",
    "allowed_roles",
    "required_fields",
    "optional_fields",
    "field_types",
    "enum_values",
    "reference_types",
    "unique_fields",
    "operation_overrides",
    "redirect_url_template",
    "example_command",
    "is_active",
)


def iter_intent_rows(configs: Iterable[IntentConfig]) -> Iterable[tuple[Any, ...]]:
    """Yield row tuples (in `INTENT_COLUMNS` order) for the `intent_definitions` table."""

    for config in configs:
        yield (
            config.intent,
            config.category,
            config.description,
            sorted(r.value for r in config.allowed_roles),
            list(config.required_fields),
            list(config.optional_fields),
            Jsonb({k: v.value for k, v in config.field_types.items()}),
            Jsonb({k: list(v) for k, v in config.enum_values.items()}),
            Jsonb({k: v.value for k, v in config.reference_types.items()}),
            Jsonb({k: v.value for k, v in config.unique_fields.items()}),
            Jsonb({k.value: v for k, v in config.operation_overrides.items()}),
            config.redirect_url_template,
            config.example_command,
            config.is_active,
        )


def config_from_row(row: Mapping[str, Any]) -> IntentConfig:
    """Build an `IntentConfig` from a dict row of `intent_definitions`."""

    return IntentConfig.model_validate(
        {
            "intent": row["intent"],
            "category": row.get("category"),
            "description": row.get("description"),
            "allowed_roles": row.get("allowed_roles") or [],
            "required_fields": row.get("required_fields") or [],
            "optional_fields": row.get("optional_fields") or [],
            "field_types": row.get("field_types") or {},
            "enum_values": row.get("enum_values") or {},
            "reference_types": row.get("reference_types") or {},
            "unique_fields": row.get("unique_fields") or {},
            "operation_overrides": row.get("operation_overrides") or {},
            "redirect_url_template": row.get("redirect_url_template"),
            "example_command": row.get("example_command"),
            "is_active": row.get("is_active", True),
        }
    )
