"""Abstract base for language grammars."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

import tree_sitter


@runtime_checkable
class LanguageAnalyser(Protocol):
    """Protocol that all language grammars must implement."""

    extensions: list[str]

    def get_language_for_ext(self, ext: str) -> tree_sitter.Language:
        """Return the tree-sitter Language object for a specific extension."""
        ...

    def grammar_key(self, ext: str) -> str:
        """Return the parser cache key for an extension."""
        ...
