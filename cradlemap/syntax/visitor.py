"""Tree traversal driver with node-kind dispatch to visitors."""

from __future__ import annotations

from collections.abc import Iterable

import tree_sitter

FUNCTION_TYPES = frozenset({
    "function_declaration",
    "function_expression",
    "function",
    "generator_function_declaration",
    "generator_function",
    "arrow_function",
})


class NodeVisitor:
    """Base visitor; subclasses override the hooks they care about."""

    def visit_call(self, node: tree_sitter.Node) -> None:
        pass

    def visit_member(self, node: tree_sitter.Node) -> None:
        pass

    def visit_import(self, node: tree_sitter.Node) -> None:
        pass

    def visit_variable_declarator(self, node: tree_sitter.Node) -> None:
        pass

    def visit_function(self, node: tree_sitter.Node) -> None:
        pass

    def visit_method(self, node: tree_sitter.Node) -> None:
        pass


def _dispatch(node: tree_sitter.Node, visitor: NodeVisitor) -> None:
    kind = node.type
    if kind == "call_expression":
        visitor.visit_call(node)
    elif kind == "member_expression":
        visitor.visit_member(node)
    elif kind == "import_statement":
        visitor.visit_import(node)
    elif kind == "variable_declarator":
        visitor.visit_variable_declarator(node)
    elif kind in FUNCTION_TYPES:
        visitor.visit_function(node)
    elif kind == "method_definition":
        visitor.visit_method(node)


def walk(root: tree_sitter.Node, visitors: Iterable[NodeVisitor]) -> None:
    """Pre-order walk in source order, feeding every node to every visitor.

    Iterative so deeply nested (e.g. bundled) sources cannot exhaust the
    recursion limit.
    """
    visitors = list(visitors)
    stack = [root]
    while stack:
        node = stack.pop()
        for visitor in visitors:
            _dispatch(node, visitor)
        stack.extend(reversed(node.named_children))
