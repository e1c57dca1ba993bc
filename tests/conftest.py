"""Pytest configuration.

The repository uses a flat `src/` layout without an installed package. This conftest ensures tests
can import from the `src.*` namespace when running `pytest` locally, and provides in-memory
collaborators for the voice pipeline.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure `import src...` works when running pytest without installing the package.
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from src.voice.references import DirectoryEntry, StaticReferenceResolver  # noqa: E402
from src.voice.registry import StaticIntentConfigRegistry  # noqa: E402
from src.voice.routing import OperationRequest  # noqa: E402
from src.voice.schema import ActingUser, ReferenceKind, Role  # noqa: E402
from src.voice.validation import ValidationOrchestrator  # noqa: E402


class RecordingBackend:
    """Fake backend: one async operation per name, recording every call."""

    def __init__(self) -> None:
        self.calls: list[OperationRequest] = []
        self._failing: dict[str, Exception] = {}
        self._next_id = 0

    def fail(self, name: str, exc: Exception) -> None:
        """Make every later call of `name` raise `exc`."""
        self._failing[name] = exc

    def operation(self, name: str) -> Any:
        async def _invoke(request: OperationRequest) -> dict[str, Any]:
            self.calls.append(request)
            if name in self._failing:
                raise self._failing[name]
            self._next_id += 1
            return {"success": True, "data": {"id": f"{name}-{self._next_id}", **request.data}}

        return _invoke

    def operations(self, *names: str) -> dict[str, Any]:
        return {name: self.operation(name) for name in names}

    @property
    def called(self) -> list[str]:
        return [c.operation for c in self.calls]


@pytest.fixture
def registry() -> StaticIntentConfigRegistry:
    return StaticIntentConfigRegistry.from_file()


@pytest.fixture
def directory() -> StaticReferenceResolver:
    return StaticReferenceResolver(
        [
            DirectoryEntry(ReferenceKind.client, "c-1", ("Acme Corp",)),
            DirectoryEntry(ReferenceKind.client, "c-2", ("Globex",)),
            DirectoryEntry(ReferenceKind.manager, "u-10", ("John Smith", "john.smith@company.com")),
            DirectoryEntry(ReferenceKind.user, "u-10", ("John Smith", "john.smith@company.com")),
            DirectoryEntry(ReferenceKind.user, "u-11", ("Jane Taken", "taken@company.com")),
            DirectoryEntry(ReferenceKind.project, "p-1", ("AI Platform",)),
        ]
    )


@pytest.fixture
def orchestrator(
        registry: StaticIntentConfigRegistry, directory: StaticReferenceResolver
) -> ValidationOrchestrator:
    return ValidationOrchestrator(registry, directory)


@pytest.fixture
def backend() -> RecordingBackend:
    return RecordingBackend()


@pytest.fixture
def super_admin() -> ActingUser:
    return ActingUser(id="u-1", role=Role.super_admin, full_name="Root Admin")


@pytest.fixture
def management_user() -> ActingUser:
    return ActingUser(id="u-2", role=Role.management, full_name="Mary Management")


@pytest.fixture
def employee() -> ActingUser:
    return ActingUser(id="u-3", role=Role.employee, full_name="Eve Employee")
