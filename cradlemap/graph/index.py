"""Workspace index: immutable snapshots and the builder that merges into them."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from cradlemap.config import FileIndex, KeyDefinition, Position, Reference

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Index:
    """Read-only snapshot of every registered key and every usage.

    keys: key -> the KeyDefinition that won (last indexed)
    references: usage sites in build order, never deduplicated
    duplicates: registrations overridden by a later one for the same key
    """
    keys: Mapping[str, KeyDefinition] = field(default_factory=lambda: MappingProxyType({}))
    references: tuple[Reference, ...] = ()
    duplicates: tuple[KeyDefinition, ...] = ()

    def lookup(self, key: str) -> KeyDefinition | None:
        return self.keys.get(key)

    def references_in_file(self, file_path: str) -> list[Reference]:
        return [r for r in self.references if r.file == file_path]

    def reference_at(self, file_path: str, position: Position) -> Reference | None:
        """Return the usage in ``file_path`` whose span contains ``position``."""
        for ref in self.references:
            if ref.file == file_path and ref.range.contains(position):
                return ref
        return None

    def usage_counts(self) -> dict[str, int]:
        """Count usages per reference kind."""
        counts: dict[str, int] = {}
        for ref in self.references:
            counts[ref.kind.value] = counts.get(ref.kind.value, 0) + 1
        return counts


class IndexBuilder:
    """Mutable accumulator for one build; frozen into an Index when done.

    Not thread-safe: callers merge from a single thread.
    """

    def __init__(self) -> None:
        self.keys: dict[str, KeyDefinition] = {}
        self.references: list[Reference] = []
        self.duplicates: list[KeyDefinition] = []

    def merge(self, file_index: FileIndex) -> None:
        # Later registrations of the same key replace earlier ones
        for definition in file_index.registrations:
            previous = self.keys.get(definition.key)
            if previous is not None:
                logger.debug(
                    f'Key "{definition.key}" registered again in '
                    f"{definition.registered_in}; replacing {previous.registered_in}"
                )
                self.duplicates.append(previous)
            self.keys[definition.key] = definition

        self.references.extend(file_index.usages)

    def freeze(self) -> Index:
        return Index(
            keys=MappingProxyType(dict(self.keys)),
            references=tuple(self.references),
            duplicates=tuple(self.duplicates),
        )
