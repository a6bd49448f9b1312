"""Tests for the language registry and grammar selection."""

from __future__ import annotations

import tree_sitter

from cradlemap.languages import get_analyser, supported_extensions
from cradlemap.languages.javascript import JavaScriptAnalyser


class TestRegistry:
    def test_supported_extensions(self):
        exts = supported_extensions()
        for ext in (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx"):
            assert ext in exts

    def test_unknown_extension(self):
        assert get_analyser(".py") is None

    def test_same_analyser_for_all_extensions(self):
        assert get_analyser(".js") is get_analyser(".ts")

    def test_every_extension_has_a_grammar(self):
        for ext in supported_extensions():
            assert isinstance(get_analyser(ext).get_language_for_ext(ext), tree_sitter.Language)

    def test_only_analyser_lookups_exported(self):
        import cradlemap.languages as languages

        assert not hasattr(languages, "get_language")


class TestJavaScriptAnalyser:
    def test_grammar_keys(self):
        analyser = JavaScriptAnalyser()
        assert analyser.grammar_key(".js") == "js"
        assert analyser.grammar_key(".cjs") == "js"
        assert analyser.grammar_key(".ts") == "ts"
        assert analyser.grammar_key(".tsx") == "tsx"

    def test_typescript_grammar_parses_annotations(self):
        analyser = JavaScriptAnalyser()
        parser = tree_sitter.Parser(analyser.get_language_for_ext(".ts"))
        tree = parser.parse(b"const port: number = 3000;\n")
        assert not tree.root_node.has_error

    def test_javascript_grammar_parses_jsx(self):
        analyser = JavaScriptAnalyser()
        parser = tree_sitter.Parser(analyser.get_language_for_ext(".jsx"))
        tree = parser.parse(b"const el = <div>{name}</div>;\n")
        assert not tree.root_node.has_error

    def test_satisfies_protocol(self):
        from cradlemap.languages.base import LanguageAnalyser

        assert isinstance(JavaScriptAnalyser(), LanguageAnalyser)
