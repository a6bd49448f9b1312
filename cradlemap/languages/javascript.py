"""JavaScript/TypeScript grammar selection."""

from __future__ import annotations

import tree_sitter
import tree_sitter_javascript as ts_javascript
import tree_sitter_typescript as ts_typescript

_JS_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs")


class JavaScriptAnalyser:
    extensions = [".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"]

    def get_language_for_ext(self, ext: str) -> tree_sitter.Language:
        if ext == ".tsx":
            return tree_sitter.Language(ts_typescript.language_tsx())
        if ext == ".ts":
            return tree_sitter.Language(ts_typescript.language_typescript())
        return tree_sitter.Language(ts_javascript.language())

    def grammar_key(self, ext: str) -> str:
        """Cache key for the parser serving ``ext``."""
        if ext in _JS_EXTENSIONS:
            return "js"
        return ext.lstrip(".")
