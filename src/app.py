"""Application composition root.

This module wires together configuration, the intent registry, reference resolution, validation,
routing and batch dispatch. With `DATABASE_URL` set, intents and references come from Postgres;
otherwise the bundled (or `INTENT_DEFINITIONS_PATH`) catalogue is served and the caller injects a
reference resolver.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from psycopg_pool import AsyncConnectionPool

from src.config.settings import Settings
from src.db.intent_store import PostgresIntentConfigRegistry
from src.db.pool import create_pool
from src.db.reference_store import PostgresReferenceResolver
from src.voice.dispatcher import BatchDispatcher
from src.voice.mapper import FieldMapper
from src.voice.references import ReferenceResolver
from src.voice.registry import IntentConfigRegistry, StaticIntentConfigRegistry
from src.voice.routing import BackendOperation, OperationRouter
from src.voice.validation import ValidationOrchestrator


@dataclass(frozen=True)
class App:
    """Shared application dependencies for callers of the voice pipeline."""

    settings: Settings
    registry: IntentConfigRegistry
    resolver: ReferenceResolver
    orchestrator: ValidationOrchestrator
    router: OperationRouter
    dispatcher: BatchDispatcher
    pool: AsyncConnectionPool | None = None


def create_app(
        settings: Settings,
        operations: Mapping[str, BackendOperation],
        *,
        resolver: ReferenceResolver | None = None,
) -> App:
    """Create the application container.

    Note:
        When a DB pool is created it is not opened. Call `await app.pool.open()` at startup.

    Raises:
        RuntimeError: no database is configured and no `resolver` was supplied.
    """

    pool: AsyncConnectionPool | None = None
    registry: IntentConfigRegistry

    if settings.database_url:
        pool = create_pool(settings.database_url, max_size=10)
        registry = PostgresIntentConfigRegistry(pool)
        resolver = resolver or PostgresReferenceResolver(pool)
    else:
        registry = StaticIntentConfigRegistry.from_file(settings.intent_definitions_path)
        if resolver is None:
            raise RuntimeError("A reference resolver is required when DATABASE_URL is not set")

    orchestrator = ValidationOrchestrator(
        registry,
        resolver,
        FieldMapper(default_hourly_rate=settings.default_hourly_rate),
    )
    router = OperationRouter(operations)
    return App(
        settings=settings,
        registry=registry,
        resolver=resolver,
        orchestrator=orchestrator,
        router=router,
        dispatcher=BatchDispatcher(orchestrator, router),
        pool=pool,
    )
