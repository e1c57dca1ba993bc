"""Shared Postgres connection helpers.

Intent definitions carry `created_at`/`updated_at` timestamps; every DB session is locked to UTC so
they are stored and compared consistently.
"""

from __future__ import annotations

import os

import psycopg
from psycopg import AsyncConnection


def require_database_url(database_url: str | None = None) -> str:
    """Return `database_url`, falling back to `DATABASE_URL`, or raise a clear error."""

    database_url = database_url or os.getenv("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL is required (set it in .env or environment)")
    return database_url


def connect_utc(database_url: str) -> psycopg.Connection:
    """Connect to Postgres (sync, for CLIs) and lock the session timezone to UTC."""

    conn = psycopg.connect(database_url)
    conn.execute("SET TIME ZONE 'UTC'", prepare=False)
    return conn


async def ensure_utc(conn: AsyncConnection) -> None:
    """Pool `configure` hook: set the session timezone to UTC on a new connection."""

    async with conn.cursor() as cur:
        await cur.execute("SET TIME ZONE 'UTC'", prepare=False)
    # `SET` opens a transaction when autocommit is off; commit so the pool doesn't see INTRANS.
    await conn.commit()
