"""Tests for DB helpers that do not need a live database."""

from __future__ import annotations

from pathlib import Path

import pytest

from src.db.intent_rows import INTENT_COLUMNS, config_from_row, iter_intent_rows
from src.db.migrate import MIGRATIONS_DIR, list_migration_files, pending_migrations
from src.voice.registry import load_intent_definitions


def test_migration_files_are_ordered() -> None:
    names = [p.name for p in list_migration_files()]
    assert names == sorted(names)
    assert names[0] == "001_create_intent_definitions.sql"


def test_pending_migrations_skip_applied() -> None:
    files = list_migration_files(MIGRATIONS_DIR)
    pending = pending_migrations(files, {"001_create_intent_definitions.sql"})
    assert [p.name for p in pending] == [p.name for p in files[1:]]


def test_empty_migrations_directory_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(RuntimeError, match="No .sql migration files"):
        list_migration_files(tmp_path)


def test_intent_rows_match_columns_and_read_back() -> None:
    configs = load_intent_definitions()
    rows = list(iter_intent_rows(configs))

    assert len(rows) == len(configs)
    for config, row in zip(configs, rows, strict=True):
        assert len(row) == len(INTENT_COLUMNS)
        # Jsonb wrappers expose the adapted Python object as `.obj`.
        record = {
            column: getattr(value, "obj", value)
            for column, value in zip(INTENT_COLUMNS, row, strict=True)
        }
        assert config_from_row(record).model_dump() == config.model_dump()
