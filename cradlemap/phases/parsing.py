"""Tree-sitter parsing with per-thread parser caches."""

from __future__ import annotations

import logging
import os
import threading

import tree_sitter

from cradlemap.languages import get_analyser

logger = logging.getLogger(__name__)

# tree_sitter.Parser is not safe to share between threads
_local = threading.local()


class ParseError(Exception):
    """Raised when a source file cannot be turned into a clean syntax tree."""


def _get_parser(ext: str) -> tree_sitter.Parser | None:
    """Get or create this thread's parser for the given extension."""
    analyser = get_analyser(ext)
    if analyser is None:
        return None

    parsers: dict[str, tree_sitter.Parser] = getattr(_local, "parsers", None)
    if parsers is None:
        parsers = _local.parsers = {}

    key = analyser.grammar_key(ext)
    if key not in parsers:
        try:
            parsers[key] = tree_sitter.Parser(analyser.get_language_for_ext(ext))
        except (RuntimeError, ValueError) as e:
            logger.warning(f"Failed to initialise parser for {key}: {e}")
            return None
    return parsers[key]


def parse_source(source: bytes, file_path: str) -> tree_sitter.Tree:
    """Parse ``source`` with the grammar matching ``file_path``'s extension.

    Raises:
        ParseError: no grammar is registered for the extension, or the
            resulting tree contains syntax errors.
    """
    ext = os.path.splitext(file_path)[1].lower()
    parser = _get_parser(ext)
    if parser is None:
        raise ParseError(f"no parser available for '{ext}' files")

    tree = parser.parse(source)
    if tree.root_node.has_error:
        line = _first_error_line(tree.root_node)
        raise ParseError(f"syntax error near line {line}")
    return tree


def _first_error_line(node: tree_sitter.Node) -> int:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.is_error or current.is_missing:
            return current.start_point[0] + 1
        if current.has_error:
            stack.extend(reversed(current.children))
    return node.start_point[0] + 1
