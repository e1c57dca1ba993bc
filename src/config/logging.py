"""Logging configuration for the voice command service."""

from __future__ import annotations

import logging
import os


def configure_logging(level: str | None = None) -> None:
    """Configure Python logging for the process.

    Logs are internal diagnostics only. Messages shown to the acting user come from `VoiceError` and
    `ActionResult`, never from log records.
    """

    log_level = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )

    # Reduce noisy third-party logs by default.
    logging.getLogger("psycopg.pool").setLevel(logging.WARNING)
