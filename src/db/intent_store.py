"""Postgres-backed intent configuration registry.

Reads active rows of `intent_definitions` on every call; nothing is cached, so an edit to the table
takes effect on the next action.
"""

from __future__ import annotations

import logging

from psycopg_pool import AsyncConnectionPool

from src.db.intent_rows import INTENT_COLUMNS, config_from_row
from src.db.pool import get_conn
from src.db.query import fetch_all, fetch_one
from src.voice.registry import IntentCatalog, IntentConfigNotFoundError, split_by_role
from src.voice.schema import IntentConfig, Role

logger = logging.getLogger(__name__)

_SELECT_COLUMNS = ", ".join(INTENT_COLUMNS)

_BY_INTENT_SQL = (
    f"SELECT {_SELECT_COLUMNS} FROM intent_definitions WHERE intent = %s AND is_active"
)
_ACTIVE_SQL = (
    f"SELECT {_SELECT_COLUMNS} FROM intent_definitions WHERE is_active ORDER BY category, intent"
)


class PostgresIntentConfigRegistry:
    """`IntentConfigRegistry` over the `intent_definitions` table."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def get_by_intent(self, intent: str) -> IntentConfig:
        """Return the active configuration for `intent`.

        Raises:
            IntentConfigNotFoundError: no active row exists.
            psycopg.Error: the lookup itself failed.
        """

        async with get_conn(self._pool) as conn:
            row = await fetch_one(conn, _BY_INTENT_SQL, (intent,))
        if row is None:
            raise IntentConfigNotFoundError(intent)
        return config_from_row(row)

    async def list_active(self) -> list[IntentConfig]:
        async with get_conn(self._pool) as conn:
            rows = await fetch_all(conn, _ACTIVE_SQL)
        logger.debug("loaded active intents count=%d", len(rows))
        return [config_from_row(row) for row in rows]

    async def intents_for_role(self, role: Role) -> IntentCatalog:
        """Active intents split by whether `role` may use them."""

        return split_by_role(await self.list_active(), role)
