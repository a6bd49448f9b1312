"""Hover lookup for keys under the cursor."""

from __future__ import annotations

from dataclasses import dataclass

from cradlemap.config import BindingKind, Lifetime, Position, Range
from cradlemap.graph.index import Index
from cradlemap.providers.definition import key_under_cursor


@dataclass(frozen=True)
class HoverInfo:
    key: str
    kind: BindingKind
    lifetime: Lifetime | None
    origin_file: str
    export_name: str | None
    range: Range

    def to_markdown(self) -> str:
        lifetime = f" • {self.lifetime.value}" if self.lifetime else ""
        parts = [
            f"**{self.key}**",
            f"_{self.kind.value}{lifetime}_",
            f"```text\n{self.origin_file}\n```",
        ]
        if self.export_name:
            parts.append(f"**Export:** `{self.export_name}`")
        return "\n\n".join(parts)


def provide_hover(
    index: Index,
    file_path: str,
    position: Position,
    line_text: str | None = None,
) -> HoverInfo | None:
    found = key_under_cursor(index, file_path, position, line_text)
    if found is None:
        return None

    key, span = found
    definition = index.lookup(key)
    if definition is None:
        return None

    return HoverInfo(
        key=key,
        kind=definition.kind,
        lifetime=definition.lifetime,
        origin_file=definition.origin_file,
        export_name=definition.export_name,
        range=span,
    )
