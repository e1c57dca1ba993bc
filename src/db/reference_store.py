"""Postgres-backed reference resolver.

Resolves values against the backend's `clients`, `users`, `projects` and `tasks` tables. Each
`ReferenceKind` has exactly one allowlisted lookup statement and one suggestion statement; the value
is always a bound parameter.

A value matches a row when it equals the row id, or when it equals the row's label after trimming,
collapsing whitespace and lower-casing on both sides. An id match wins over a label match.
Soft-deleted rows (`deleted_at IS NOT NULL`) never match and are never suggested.
"""

from __future__ import annotations

import logging

from psycopg_pool import AsyncConnectionPool

from src.db.pool import get_conn
from src.db.query import fetch_all, fetch_one
from src.voice.dictionaries import MANAGER_LEVEL_ROLES
from src.voice.normalize import normalize_label
from src.voice.references import MAX_SUGGESTIONS
from src.voice.schema import ReferenceKind, ResolvedReference

logger = logging.getLogger(__name__)

_NORMALIZED = "lower(regexp_replace(btrim({column}), '\\s+', ' ', 'g'))"

_NAME_MATCH = f"(id::text = %s OR {_NORMALIZED.format(column='name')} = %s)"
_PERSON_MATCH = (
    f"(id::text = %s OR {_NORMALIZED.format(column='full_name')} = %s "
    "OR lower(btrim(email)) = %s)"
)
_ID_FIRST = "ORDER BY (id::text = %s) DESC, created_at LIMIT 1"

_LOOKUP_SQL: dict[ReferenceKind, str] = {
    ReferenceKind.client: (
        "SELECT id::text AS id, name AS label FROM clients "
        f"WHERE deleted_at IS NULL AND {_NAME_MATCH} {_ID_FIRST}"
    ),
    ReferenceKind.project: (
        "SELECT id::text AS id, name AS label FROM projects "
        f"WHERE deleted_at IS NULL AND {_NAME_MATCH} {_ID_FIRST}"
    ),
    ReferenceKind.task: (
        "SELECT id::text AS id, name AS label FROM tasks "
        f"WHERE deleted_at IS NULL AND {_NAME_MATCH} {_ID_FIRST}"
    ),
    ReferenceKind.user: (
        "SELECT id::text AS id, full_name AS label FROM users "
        f"WHERE deleted_at IS NULL AND {_PERSON_MATCH} {_ID_FIRST}"
    ),
    ReferenceKind.manager: (
        "SELECT id::text AS id, full_name AS label FROM users "
        "WHERE deleted_at IS NULL AND is_active AND role = ANY(%s) "
        f"AND {_PERSON_MATCH} {_ID_FIRST}"
    ),
}

_SUGGEST_SQL: dict[ReferenceKind, str] = {
    ReferenceKind.client: (
        "SELECT DISTINCT name AS label FROM clients "
        f"WHERE deleted_at IS NULL AND {_NORMALIZED.format(column='name')} LIKE %s "
        "ORDER BY label LIMIT %s"
    ),
    ReferenceKind.project: (
        "SELECT DISTINCT name AS label FROM projects "
        f"WHERE deleted_at IS NULL AND {_NORMALIZED.format(column='name')} LIKE %s "
        "ORDER BY label LIMIT %s"
    ),
    ReferenceKind.task: (
        "SELECT DISTINCT name AS label FROM tasks "
        f"WHERE deleted_at IS NULL AND {_NORMALIZED.format(column='name')} LIKE %s "
        "ORDER BY label LIMIT %s"
    ),
    ReferenceKind.user: (
        "SELECT DISTINCT full_name AS label FROM users "
        f"WHERE deleted_at IS NULL AND {_NORMALIZED.format(column='full_name')} LIKE %s "
        "ORDER BY label LIMIT %s"
    ),
    ReferenceKind.manager: (
        "SELECT DISTINCT full_name AS label FROM users "
        "WHERE deleted_at IS NULL AND is_active AND role = ANY(%s) "
        f"AND {_NORMALIZED.format(column='full_name')} LIKE %s "
        "ORDER BY label LIMIT %s"
    ),
}

_MANAGER_ROLES: list[str] = sorted(r.value for r in MANAGER_LEVEL_ROLES)


def _params(kind: ReferenceKind, value: str) -> tuple[object, ...]:
    if kind == ReferenceKind.manager:
        return _MANAGER_ROLES, value, value, value, value
    if kind == ReferenceKind.user:
        return value, value, value, value
    return value, value, value


def _suggest_params(kind: ReferenceKind, pattern: str, limit: int) -> tuple[object, ...]:
    if kind == ReferenceKind.manager:
        return _MANAGER_ROLES, pattern, limit
    return pattern, limit


def _contains_pattern(normalized: str) -> str:
    escaped = normalized.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class PostgresReferenceResolver:
    """`ReferenceResolver` over the backend's entity tables (read-only)."""

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def resolve(self, kind: ReferenceKind, label: str) -> ResolvedReference | None:
        normalized = normalize_label(label)
        if not normalized:
            return None

        async with get_conn(self._pool) as conn:
            row = await fetch_one(conn, _LOOKUP_SQL[kind], _params(kind, normalized))

        if row is None:
            logger.debug("reference not found kind=%s", kind)
            return None
        return ResolvedReference(kind=kind, id=row["id"], label=row["label"])

    async def suggest(
            self, kind: ReferenceKind, label: str, limit: int = MAX_SUGGESTIONS
    ) -> list[str]:
        """Labels containing `label`; any labels of the kind when none do."""

        sql = _SUGGEST_SQL[kind]
        async with get_conn(self._pool) as conn:
            rows = await fetch_all(
                conn, sql, _suggest_params(kind, _contains_pattern(normalize_label(label)), limit)
            )
            if not rows:
                rows = await fetch_all(conn, sql, _suggest_params(kind, "%", limit))
        return [row["label"] for row in rows]
