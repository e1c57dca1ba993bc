"""Command-line entrypoint: validate a batch of interpreted voice actions without dispatching.

Reads a JSON list of `{intent, data, confidence}` objects and prints one JSON validation result per
action. Intents and references are looked up in Postgres (`DATABASE_URL` is required).
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

from src.app import create_app
from src.config.logging import configure_logging
from src.config.settings import load_settings
from src.voice.schema import ActingUser, Role, VoiceAction

logger = logging.getLogger(__name__)


def _read_actions(path: str) -> list[VoiceAction]:
    text = sys.stdin.read() if path == "-" else Path(path).read_text(encoding="utf-8")
    payload = json.loads(text)
    if not isinstance(payload, list):
        raise ValueError("Unexpected actions format: expected a JSON list of actions")
    return [VoiceAction.model_validate(item) for item in payload]


async def validate_batch(
        actions: list[VoiceAction],
        acting_user: ActingUser,
) -> list[dict[str, Any]]:
    """Validate every action against the configured intent store; nothing is dispatched."""

    settings = load_settings()
    configure_logging(settings.log_level)
    if not settings.database_url:
        raise RuntimeError("DATABASE_URL is required to validate actions from the command line")

    app = create_app(settings, {})
    assert app.pool is not None
    await app.pool.open(wait=True)

    try:
        results = []
        for action in actions:
            result = await app.orchestrator.validate_voice_command(
                action.intent, acting_user.role, action.data, acting_user
            )
            results.append({"intent": action.intent, **result.model_dump(mode="json")})
        return results
    finally:
        logger.info("shutting down")
        await app.pool.close()


def main() -> None:
    """CLI entry point for dry-run validation."""

    parser = argparse.ArgumentParser(description="Validate interpreted voice actions.")
    parser.add_argument("actions", help="Path to a JSON list of actions, or '-' for stdin.")
    parser.add_argument("--role", required=True, choices=[r.value for r in Role])
    parser.add_argument("--user-id", default="cli")
    args = parser.parse_args()

    acting_user = ActingUser(id=args.user_id, role=Role(args.role))
    results = asyncio.run(validate_batch(_read_actions(args.actions), acting_user))
    json.dump(results, sys.stdout, indent=2, ensure_ascii=False)
    sys.stdout.write("\n")


if __name__ == "__main__":
    main()
