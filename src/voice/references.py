"""Reference resolution: human-readable labels -> backend entity identifiers.

A value is first tried as an existing entity identifier, then as an exact match on the normalized
label (see `normalize_label`); no partial or fuzzy matching is attempted. A resolver returns `None`
when nothing matches and raises only on infrastructure failure.

`suggest` is a separate, optional capability: it lists candidate labels for a not-found error so a
caller can offer choices. It never resolves anything.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from src.voice.dictionaries import REFERENCE_FIELD_KINDS
from src.voice.normalize import normalize_label
from src.voice.schema import IntentConfig, ReferenceKind, ResolvedReference

MAX_SUGGESTIONS = 10

_KIND_LABELS: dict[ReferenceKind, str] = {
    ReferenceKind.client: "Client",
    ReferenceKind.manager: "Manager",
    ReferenceKind.user: "User",
    ReferenceKind.project: "Project",
    ReferenceKind.task: "Task",
}


class ReferenceResolver(Protocol):
    """Lookup-by-id-or-label capability consumed by the validation stage."""

    async def resolve(self, kind: ReferenceKind, label: str) -> ResolvedReference | None:
        """Return the entity whose id or label matches, or `None` if there is none."""
        ...


@runtime_checkable
class ReferenceSuggester(Protocol):
    """Optional companion to `ReferenceResolver` used to enrich not-found errors."""

    async def suggest(
            self, kind: ReferenceKind, label: str, limit: int = MAX_SUGGESTIONS
    ) -> list[str]:
        ...


def reference_kind_for(config: IntentConfig, field: str) -> ReferenceKind | None:
    """Kind declared by the intent, falling back to the well-known field-name table."""

    return config.reference_types.get(field) or REFERENCE_FIELD_KINDS.get(field)


def kind_label(kind: ReferenceKind) -> str:
    return _KIND_LABELS[kind]


@dataclass(frozen=True)
class DirectoryEntry:
    """One resolvable entity held by `StaticReferenceResolver`."""

    kind: ReferenceKind
    id: str
    labels: tuple[str, ...]


class StaticReferenceResolver:
    """In-memory resolver over a fixed directory of entities.

    Each entry may be reachable under several labels (e.g. a user's full name and email) and always
    under its id. An id match wins over a label match.
    """

    def __init__(self, entries: Iterable[DirectoryEntry] = ()) -> None:
        self._by_id: dict[tuple[ReferenceKind, str], ResolvedReference] = {}
        self._index: dict[tuple[ReferenceKind, str], ResolvedReference] = {}
        self._display: dict[ReferenceKind, list[str]] = {}
        for entry in entries:
            self.add(entry)

    def add(self, entry: DirectoryEntry) -> None:
        display = entry.labels[0] if entry.labels else entry.id
        resolved = ResolvedReference(kind=entry.kind, id=entry.id, label=display)

        self._by_id.setdefault((entry.kind, normalize_label(entry.id)), resolved)
        for label in entry.labels:
            self._index.setdefault((entry.kind, normalize_label(label)), resolved)

        names = self._display.setdefault(entry.kind, [])
        if display not in names:
            names.append(display)

    async def resolve(self, kind: ReferenceKind, label: str) -> ResolvedReference | None:
        key = (kind, normalize_label(label))
        return self._by_id.get(key) or self._index.get(key)

    async def suggest(
            self, kind: ReferenceKind, label: str, limit: int = MAX_SUGGESTIONS
    ) -> list[str]:
        """Display labels containing `label`; all labels of the kind when none do."""

        names = sorted(self._display.get(kind, []), key=normalize_label)
        needle = normalize_label(label)
        close = [n for n in names if needle and needle in normalize_label(n)]
        return (close or names)[:limit]
