"""Safe DB query helpers.

Lookups never interpolate user values into SQL: statements are fixed strings from an allowlist and
every value travels through `params`. Rows come back as plain dicts.
"""

from __future__ import annotations

from typing import Any, LiteralString, cast

from psycopg import AsyncConnection
from psycopg.rows import dict_row


async def fetch_one(
        conn: AsyncConnection, sql: str, params: tuple[Any, ...] = ()
) -> dict[str, Any] | None:
    """Execute a query and return its first row, or `None` when it yields nothing.

    DB errors are not swallowed (caller decides how to handle them).
    """

    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(cast(LiteralString, sql), params)
        return await cur.fetchone()


async def fetch_all(
        conn: AsyncConnection, sql: str, params: tuple[Any, ...] = ()
) -> list[dict[str, Any]]:
    """Execute a query and return every row."""

    async with conn.cursor(row_factory=dict_row) as cur:
        await cur.execute(cast(LiteralString, sql), params)
        return await cur.fetchall()
