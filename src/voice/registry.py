"""Intent configuration registry.

The validation pipeline depends only on the `IntentConfigRegistry` capability (`get_by_intent`).
Implementations live here (in-memory, backed by the bundled JSON catalogue) and in
`src.db.intent_store` (Postgres). Callers must treat every lookup as possibly slow or failing; no
caching is implied.
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from src.voice.schema import IntentConfig, Role

DEFAULT_DEFINITIONS_PATH = Path(__file__).resolve().parent / "intent_definitions.json"


class IntentConfigNotFoundError(LookupError):
    """Raised when no active configuration exists for an intent."""

    def __init__(self, intent: str) -> None:
        super().__init__(f"No active configuration found for intent '{intent}'")
        self.intent = intent


class IntentConfigRegistry(Protocol):
    """Lookup capability injected into the validation orchestrator."""

    async def get_by_intent(self, intent: str) -> IntentConfig:
        """Return the configuration for `intent` or raise."""
        ...


@dataclass(frozen=True)
class IntentCatalog:
    """Active intents split by whether a role may use them."""

    allowed: tuple[IntentConfig, ...]
    disallowed: tuple[IntentConfig, ...]


def split_by_role(configs: Iterable[IntentConfig], role: Role) -> IntentCatalog:
    """Partition active intents into allowed/disallowed for `role`, sorted by category and name."""

    active = sorted(
        (c for c in configs if c.is_active),
        key=lambda c: (c.category or "", c.intent),
    )
    return IntentCatalog(
        allowed=tuple(c for c in active if role in c.allowed_roles),
        disallowed=tuple(c for c in active if role not in c.allowed_roles),
    )


def parse_intent_definitions(payload: Any) -> list[IntentConfig]:
    """Validate a decoded JSON catalogue (`{"intents": [...]}` or a bare list)."""

    if isinstance(payload, dict) and isinstance(payload.get("intents"), list):
        items = payload["intents"]
    elif isinstance(payload, list):
        items = payload
    else:
        raise ValueError(
            "Unexpected intent catalogue format: expected a list or an object with key 'intents'"
        )
    return [IntentConfig.model_validate(item) for item in items]


def load_intent_definitions(path: str | Path | None = None) -> list[IntentConfig]:
    """Load intent configurations from a JSON file (the bundled catalogue by default)."""

    source = Path(path) if path else DEFAULT_DEFINITIONS_PATH
    payload = json.loads(source.read_text(encoding="utf-8"))
    return parse_intent_definitions(payload)


class StaticIntentConfigRegistry:
    """In-memory registry over a fixed set of configurations."""

    def __init__(self, configs: Iterable[IntentConfig]) -> None:
        self._configs: dict[str, IntentConfig] = {c.intent: c for c in configs}

    @classmethod
    def from_file(cls, path: str | Path | None = None) -> StaticIntentConfigRegistry:
        return cls(load_intent_definitions(path))

    async def get_by_intent(self, intent: str) -> IntentConfig:
        config = self._configs.get(intent)
        if config is None or not config.is_active:
            raise IntentConfigNotFoundError(intent)
        return config

    def all_intents(self) -> list[IntentConfig]:
        return [c for c in self._configs.values() if c.is_active]

    def intents_for_role(self, role: Role) -> IntentCatalog:
        return split_by_role(self._configs.values(), role)
