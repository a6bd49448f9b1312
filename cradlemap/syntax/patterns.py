"""Stateless predicates and extractors over tree-sitter nodes.

Every function here takes plain nodes and returns plain values; nothing keeps
state between calls.
"""

from __future__ import annotations

import tree_sitter

from cradlemap.config import BindingKind, Lifetime, Position, Range

BINDING_KIND_SELECTORS = {
    "asClass": BindingKind.CLASS,
    "asFunction": BindingKind.FUNCTION,
    "asValue": BindingKind.VALUE,
}

LIFETIME_SELECTORS = {
    "singleton": Lifetime.SINGLETON,
    "scoped": Lifetime.SCOPED,
    "transient": Lifetime.TRANSIENT,
}

_IDENTIFIER_TYPES = ("identifier", "shorthand_property_identifier")


def node_text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8")


def is_identifier(node: tree_sitter.Node | None) -> bool:
    return node is not None and node.type in _IDENTIFIER_TYPES


def string_value(node: tree_sitter.Node | None) -> str | None:
    """Return the contents of a plain quoted string literal."""
    if node is None or node.type != "string":
        return None
    return node_text(node)[1:-1]


def call_arguments(call: tree_sitter.Node) -> list[tree_sitter.Node]:
    """Positional argument nodes of a call expression, comments excluded."""
    args = call.child_by_field_name("arguments")
    if args is None:
        return []
    return [c for c in args.named_children if c.type != "comment"]


def member_property_name(node: tree_sitter.Node | None) -> str | None:
    """Property name of a non-computed member access, else None."""
    if node is None or node.type != "member_expression":
        return None
    prop = node.child_by_field_name("property")
    if prop is None or prop.type != "property_identifier":
        return None
    return node_text(prop)


def is_named_member_call(callee: tree_sitter.Node | None, name: str) -> bool:
    """``x.name`` as a callee; computed ``x['name']`` never matches."""
    return member_property_name(callee) == name


def is_binding_kind_call(callee: tree_sitter.Node | None) -> bool:
    return member_property_name(callee) in BINDING_KIND_SELECTORS


def is_cradle_access(node: tree_sitter.Node | None) -> bool:
    """Match the two-level chain ``<anything>.cradle.<property>``."""
    if member_property_name(node) is None:
        return False
    return member_property_name(node.child_by_field_name("object")) == "cradle"


def property_key_name(key: tree_sitter.Node | None) -> str | None:
    """Literal name of an object key; None for computed or numeric keys."""
    if key is None:
        return None
    if key.type in (
        "property_identifier",
        "shorthand_property_identifier",
        "shorthand_property_identifier_pattern",
        "identifier",
    ):
        return node_text(key)
    return string_value(key)


def receiver_name(node: tree_sitter.Node | None) -> str | None:
    """Name of the object a member call is made on.

    ``container`` -> ``container``, ``this.app.container`` -> ``container``,
    ``container.register(...)`` -> ``container`` (looks through chained calls).
    """
    while node is not None:
        if node.type in ("identifier", "this"):
            return node_text(node)
        if node.type == "member_expression":
            return member_property_name(node)
        if node.type == "call_expression":
            node = node.child_by_field_name("function")
            if node is None or node.type != "member_expression":
                return None
            node = node.child_by_field_name("object")
            continue
        if node.type == "parenthesized_expression":
            inner = [c for c in node.named_children if c.type != "comment"]
            node = inner[0] if inner else None
            continue
        return None
    return None


def _char_column(source: bytes, byte_offset: int, byte_column: int) -> int:
    line_start = byte_offset - byte_column
    return len(source[line_start:byte_offset].decode("utf-8", errors="replace"))


def to_range(node: tree_sitter.Node | None, source: bytes | None = None) -> Range | None:
    """Source span of a node as 0-indexed line/character positions.

    tree-sitter rows are already 0-indexed but its columns count UTF-8 bytes.
    Given the file's ``source`` they are converted to character offsets;
    without it the byte columns are returned unchanged (exact for ASCII lines).
    """
    if node is None:
        return None
    start_row, start_col = node.start_point
    end_row, end_col = node.end_point
    if source is not None:
        start_col = _char_column(source, node.start_byte, start_col)
        end_col = _char_column(source, node.end_byte, end_col)
    return Range(
        start=Position(start_row, start_col),
        end=Position(end_row, end_col),
    )
