"""Seed the intent catalogue into Postgres.

The catalogue is a JSON object with a single top-level key `"intents"` (or a bare list) of intent
definitions in the camelCase shape of `IntentConfig`. By default the bundled
`src/voice/intent_definitions.json` is loaded. Existing intents are updated in place.
"""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from urllib.request import urlopen

from dotenv import load_dotenv

from src.config.logging import configure_logging
from src.db.connection import connect_utc, require_database_url
from src.db.intent_rows import iter_intent_rows
from src.voice.registry import DEFAULT_DEFINITIONS_PATH, parse_intent_definitions

logger = logging.getLogger(__name__)

UPSERT_INTENT_SQL = """
    INSERT INTO intent_definitions (intent, category, description,
                                    allowed_roles, required_fields, optional_fields,
                                    field_types, enum_values, reference_types, unique_fields,
                                    operation_overrides, redirect_url_template, example_command,
                                    is_active)
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s) ON CONFLICT (intent) DO
    UPDATE SET
        category = EXCLUDED.category,
        description = EXCLUDED.description,
        allowed_roles = EXCLUDED.allowed_roles,
        required_fields = EXCLUDED.required_fields,
        optional_fields = EXCLUDED.optional_fields,
        field_types = EXCLUDED.field_types,
        enum_values = EXCLUDED.enum_values,
        reference_types = EXCLUDED.reference_types,
        unique_fields = EXCLUDED.unique_fields,
        operation_overrides = EXCLUDED.operation_overrides,
        redirect_url_template = EXCLUDED.redirect_url_template,
        example_command = EXCLUDED.example_command,
        is_active = EXCLUDED.is_active,
        updated_at = NOW()
"""


def _load_json_bytes(*, path: str | None, url: str | None) -> bytes:
    if path and url:
        raise ValueError("At most one of --path or --url may be provided")

    if url:
        with urlopen(url) as resp:  # noqa: S310 (controlled URL from CLI)
            return resp.read()

    return Path(path or DEFAULT_DEFINITIONS_PATH).read_bytes()


def seed_intents(*, path: str | None, url: str | None, truncate: bool) -> int:
    """Upsert the catalogue into `intent_definitions`; returns the number of intents written."""

    load_dotenv(".env")
    database_url = require_database_url()

    payload = json.loads(_load_json_bytes(path=path, url=url))
    configs = parse_intent_definitions(payload)

    with connect_utc(database_url) as conn:
        with conn.transaction():
            with conn.cursor() as cur:
                if truncate:
                    cur.execute("TRUNCATE intent_definitions", prepare=False)
                cur.executemany(UPSERT_INTENT_SQL, list(iter_intent_rows(configs)))

    logger.info("seeded intent catalogue intents=%d truncate=%s", len(configs), truncate)
    return len(configs)


def main() -> None:
    """CLI entry point for seeding the intent catalogue."""

    parser = argparse.ArgumentParser(description="Seed the voice intent catalogue into Postgres.")
    src = parser.add_mutually_exclusive_group()
    src.add_argument("--path", help="Path to a catalogue JSON file (default: bundled catalogue).")
    src.add_argument("--url", help="URL to download the catalogue JSON.")
    parser.add_argument(
        "--truncate",
        action="store_true",
        help="TRUNCATE intent_definitions before loading (destructive).",
    )
    args = parser.parse_args()

    configure_logging()
    seed_intents(path=args.path, url=args.url, truncate=args.truncate)


if __name__ == "__main__":
    main()
