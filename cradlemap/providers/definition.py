"""Definition lookup: usage under the cursor -> where its key is bound."""

from __future__ import annotations

import os

from cradlemap.config import Location, Position, Range
from cradlemap.graph.index import Index
from cradlemap.phases.origins import locate_declaration
from cradlemap.providers.context import key_at_cursor, read_line


def key_under_cursor(
    index: Index,
    file_path: str,
    position: Position,
    line_text: str | None = None,
) -> tuple[str, Range] | None:
    """Find the key referenced at ``position``.

    Indexed usages are checked first; the line-text heuristics cover
    positions the last build has not seen (unsaved or unparseable edits).
    """
    file_path = os.path.abspath(file_path)
    ref = index.reference_at(file_path, position)
    if ref is not None:
        return ref.key, ref.range

    if line_text is None:
        line_text = read_line(file_path, position.line)
        if line_text is None:
            return None

    found = key_at_cursor(line_text, position.character)
    if found is None:
        return None
    key, start, end = found
    return key, Range(Position(position.line, start), Position(position.line, end))


def find_definition(
    index: Index,
    file_path: str,
    position: Position,
    line_text: str | None = None,
) -> Location | None:
    """Locate the declaration bound to the key under the cursor.

    Cross-file origins are indexed without an in-file range; the origin
    file is parsed here, on demand, to find the exported declaration. If
    that fails the location still names the file but carries no range.
    """
    found = key_under_cursor(index, file_path, position, line_text)
    if found is None:
        return None

    definition = index.lookup(found[0])
    if definition is None:
        return None

    target = definition.range
    if target is None:
        target = locate_declaration(definition.origin_file, definition.export_name)
    return Location(file=definition.origin_file, range=target)
