"""Completion lookup gated by the cursor-context classifier."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from cradlemap.config import BindingKind, Lifetime, Position, Range
from cradlemap.graph.index import Index
from cradlemap.providers.context import ContextKind, CursorContext, detect_context, read_line


@dataclass(frozen=True)
class CompletionItem:
    key: str
    kind: BindingKind
    lifetime: Lifetime | None
    origin_file: str

    @property
    def detail(self) -> str:
        lifetime = f" • {self.lifetime.value}" if self.lifetime else ""
        return f"{self.kind.value}{lifetime}"


@dataclass(frozen=True)
class CompletionResult:
    context: CursorContext
    items: list[CompletionItem] = field(default_factory=list)
    replace_range: Range | None = None


def provide_completions(
    index: Index,
    file_path: str,
    position: Position,
    line_text: str | None = None,
) -> CompletionResult | None:
    """Offer every registered key when the cursor is in a completion context.

    ``line_text`` is the current (possibly unsaved) text of the cursor's
    line; when omitted it is read from ``file_path`` on disk.
    """
    if line_text is None:
        line_text = read_line(os.path.abspath(file_path), position.line)
        if line_text is None:
            return None

    context = detect_context(
        line_text[:position.character], line_text[position.character:]
    )
    if context is None:
        return None

    items = [
        CompletionItem(
            key=key,
            kind=definition.kind,
            lifetime=definition.lifetime,
            origin_file=definition.origin_file,
        )
        for key, definition in sorted(index.keys.items())
    ]

    replace_range = None
    if context.kind == ContextKind.RESOLVE_STRING:
        replace_range = Range(
            start=Position(position.line, context.replace_start),
            end=Position(position.line, context.replace_end),
        )

    return CompletionResult(context=context, items=items, replace_range=replace_range)
