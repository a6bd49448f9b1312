"""Tests for the cursor classifier and the editor-facing lookups."""

from __future__ import annotations

import os

import pytest

from cradlemap.config import (
    AnalysisConfig,
    BindingKind,
    FileIndex,
    KeyDefinition,
    Lifetime,
    Position,
    Range,
    Reference,
    ReferenceKind,
    Severity,
)
from cradlemap.graph.index import IndexBuilder
from cradlemap.pipeline import build_index
from cradlemap.providers import (
    ContextKind,
    detect_context,
    evaluate_diagnostics,
    find_definition,
    key_at_cursor,
    provide_completions,
    provide_hover,
)

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
APP_DIR = os.path.join(FIXTURES_DIR, "awilix_app")


def _app(*parts: str) -> str:
    return os.path.join(APP_DIR, *parts)


def _at_end(line: str):
    return detect_context(line, "")


@pytest.fixture(scope="module")
def index():
    built, _ = build_index(AnalysisConfig(roots=[APP_DIR]))
    return built


# ---------------------------------------------------------------------------
# Cursor context
# ---------------------------------------------------------------------------

class TestDetectContext:
    def test_resolve_string(self):
        ctx = _at_end("container.resolve('use")
        assert ctx.kind == ContextKind.RESOLVE_STRING
        assert (ctx.replace_start, ctx.replace_end) == (19, 22)

    def test_cradle_dot(self):
        assert _at_end("x.cradle.").kind == ContextKind.CRADLE_DOT

    def test_constructor_destructuring(self):
        assert _at_end("constructor({a, b").kind == ContextKind.DESTRUCTURING

    def test_no_context(self):
        assert _at_end("const x = 5") is None

    def test_resolve_string_spans_to_closing_quote(self):
        ctx = detect_context("container.resolve('use", "r')")
        assert ctx.kind == ContextKind.RESOLVE_STRING
        assert (ctx.replace_start, ctx.replace_end) == (19, 23)

    def test_resolve_string_unterminated_spans_to_line_end(self):
        ctx = detect_context("container.resolve('use", "rSer")
        assert (ctx.replace_start, ctx.replace_end) == (19, 26)

    def test_double_quotes(self):
        ctx = _at_end('scope.resolve( "lo')
        assert ctx.kind == ContextKind.RESOLVE_STRING
        assert ctx.replace_start == 16

    def test_empty_partial_key(self):
        ctx = _at_end("container.resolve('")
        assert (ctx.replace_start, ctx.replace_end) == (19, 19)

    def test_closing_quote_at_cursor_is_outside(self):
        assert detect_context("container.resolve('user", "')") is None

    def test_closed_string_before_cursor(self):
        assert _at_end("container.resolve('a') + x") is None

    def test_cradle_dot_must_end_text(self):
        assert _at_end("x.cradle.log") is None

    def test_function_destructuring(self):
        assert _at_end("function make({ db, ").kind == ContextKind.DESTRUCTURING
        assert _at_end("const make = ({ db").kind == ContextKind.DESTRUCTURING
        assert _at_end("module.exports = function ({ ").kind == ContextKind.DESTRUCTURING

    def test_closed_destructuring(self):
        assert _at_end("  constructor({ a }) {") is None


class TestKeyAtCursor:
    def test_inside_resolve_string(self):
        line = "const u = container.resolve('userService');"
        assert key_at_cursor(line, 32) == ("userService", 29, 40)

    def test_cradle_member(self):
        line = "const log = container.cradle.logger;"
        assert key_at_cursor(line, 31) == ("logger", 29, 35)

    def test_constructor_parameter(self):
        line = "  constructor({ logger, config }) {"
        assert key_at_cursor(line, 26) == ("config", 24, 30)

    def test_plain_word(self):
        assert key_at_cursor("const x = 5", 6) is None


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------

class TestCompletion:
    def test_resolve_string_items(self, index):
        result = provide_completions(
            index, _app("app.js"), Position(7, 21), line_text="container.resolve('us"
        )
        assert result.context.kind == ContextKind.RESOLVE_STRING
        assert [item.key for item in result.items] == sorted(index.keys)
        assert result.replace_range == Range(Position(7, 19), Position(7, 21))

    def test_item_detail(self, index):
        result = provide_completions(
            index, _app("app.js"), Position(0, 9), line_text="x.cradle."
        )
        items = {item.key: item for item in result.items}
        assert items["userService"].detail == "class • singleton"
        assert items["config"].detail == "value"
        assert items["userService"].origin_file == _app("services", "user-service.js")

    def test_cradle_dot_has_no_replace_range(self, index):
        result = provide_completions(
            index, _app("app.js"), Position(0, 9), line_text="x.cradle."
        )
        assert result.context.kind == ContextKind.CRADLE_DOT
        assert result.replace_range is None

    def test_no_context(self, index):
        assert provide_completions(
            index, _app("app.js"), Position(0, 11), line_text="const x = 5"
        ) is None

    def test_reads_line_from_disk(self, index):
        # const users = container.resolve('userService');
        result = provide_completions(index, _app("app.js"), Position(2, 33))
        assert result.context.kind == ContextKind.RESOLVE_STRING
        assert result.replace_range == Range(Position(2, 33), Position(2, 44))

    def test_line_past_end_of_file(self, index):
        assert provide_completions(index, _app("app.js"), Position(500, 0)) is None


# ---------------------------------------------------------------------------
# Definition
# ---------------------------------------------------------------------------

class TestDefinition:
    def test_resolve_call_to_imported_class(self, index):
        location = find_definition(index, _app("app.js"), Position(2, 36))
        assert location.file == _app("services", "user-service.js")
        assert location.range.start == Position(0, 6)

    def test_cradle_access_to_local_value(self, index):
        location = find_definition(index, _app("app.js"), Position(4, 31))
        assert location.file == _app("container.js")
        assert location.range.start == Position(20, 25)

    def test_injection_to_destructured_require(self, index):
        location = find_definition(index, _app("services", "user-service.js"), Position(1, 20))
        assert location.file == _app("data", "repository.js")
        assert location.range.start == Position(0, 9)

    def test_injection_to_package_export(self, index):
        location = find_definition(index, _app("data", "repository.js"), Position(0, 28))
        assert location.file == _app("node_modules", "fake-db", "lib", "index.js")
        assert location.range.start == Position(0, 18)

    def test_unregistered_key(self, index):
        # const missing = container.resolve('paymentGateway');
        assert find_definition(index, _app("app.js"), Position(3, 40)) is None

    def test_not_on_a_key(self, index):
        assert find_definition(index, _app("app.js"), Position(0, 0)) is None

    def test_unsaved_line_text(self, index):
        location = find_definition(
            index, _app("app.js"), Position(9, 33),
            line_text="const extra = container.cradle.config;",
        )
        assert location.file == _app("config.js")


# ---------------------------------------------------------------------------
# Hover
# ---------------------------------------------------------------------------

class TestHover:
    def test_hover_imported_class(self, index):
        info = provide_hover(index, _app("app.js"), Position(2, 36))
        assert info.key == "userService"
        assert info.kind == BindingKind.CLASS
        assert info.lifetime == Lifetime.SINGLETON
        assert info.origin_file == _app("services", "user-service.js")
        assert info.export_name is None
        assert info.range == Range(Position(2, 32), Position(2, 45))

    def test_markdown(self, index):
        info = provide_hover(index, _app("data", "repository.js"), Position(0, 28))
        text = info.to_markdown()
        assert "**database**" in text
        assert "_function • transient_" in text
        assert "**Export:** `connect`" in text

    def test_unregistered(self, index):
        assert provide_hover(index, _app("app.js"), Position(5, 32)) is None

    def test_range_on_non_ascii_line(self, tmp_path):
        (tmp_path / "container.js").write_text("container.register({ db: asValue(1) });\n")
        app = tmp_path / "app.js"
        app.write_text("const s = 'héllo€'; container.resolve('db');\n", encoding="utf-8")
        built, _ = build_index(AnalysisConfig(roots=[str(tmp_path)]))

        info = provide_hover(built, str(app), Position(0, 39))
        assert info.key == "db"
        assert info.range == Range(Position(0, 38), Position(0, 42))


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------

def _ref(file: str, key: str, line: int = 0) -> Reference:
    return Reference(
        file=file,
        range=Range(Position(line, 0), Position(line, len(key))),
        key=key,
        kind=ReferenceKind.RESOLVE_CALL,
    )


def _definition(key: str, registered_in: str, line: int = 0) -> KeyDefinition:
    return KeyDefinition(
        key=key,
        origin_file=registered_in,
        kind=BindingKind.VALUE,
        registered_in=registered_in,
        registration_range=Range(Position(line, 0), Position(line, len(key))),
    )


class TestDiagnostics:
    def test_fixture_unregistered_keys(self, index):
        by_file = evaluate_diagnostics(index)
        app = by_file[_app("app.js")]
        assert [d.message for d in app] == [
            'key "paymentGateway" is not registered in the container',
            'key "cache" is not registered in the container',
        ]
        assert all(d.severity == Severity.ERROR for d in app)
        assert all(d.code == "unregistered-key" for d in app)

    def test_files_with_clean_usages_get_empty_lists(self, index):
        by_file = evaluate_diagnostics(index)
        assert by_file[_app("container.js")] == []
        assert by_file[_app("services", "user-service.js")] == []
        assert by_file[_app("data", "repository.js")] == []

    def test_one_diagnostic_per_usage(self):
        builder = IndexBuilder()
        builder.merge(FileIndex(file="/w/a.js", usages=[
            _ref("/w/a.js", "missing", 0),
            _ref("/w/a.js", "missing", 3),
        ]))
        by_file = evaluate_diagnostics(builder.freeze())
        assert [d.range.start.line for d in by_file["/w/a.js"]] == [0, 3]

    def test_registered_usage_is_clean(self):
        builder = IndexBuilder()
        builder.merge(FileIndex(file="/w/c.js", registrations=[_definition("db", "/w/c.js")]))
        builder.merge(FileIndex(file="/w/a.js", usages=[_ref("/w/a.js", "db")]))
        assert evaluate_diagnostics(builder.freeze()) == {"/w/a.js": []}

    def test_duplicates_opt_in(self):
        builder = IndexBuilder()
        builder.merge(FileIndex(file="/w/a.js", registrations=[_definition("db", "/w/a.js", 4)]))
        builder.merge(FileIndex(file="/w/b.js", registrations=[_definition("db", "/w/b.js")]))
        index = builder.freeze()

        assert evaluate_diagnostics(index) == {}

        by_file = evaluate_diagnostics(index, report_duplicates=True)
        [warning] = by_file["/w/a.js"]
        assert warning.severity == Severity.WARNING
        assert warning.code == "duplicate-key"
        assert warning.range.start.line == 4
        assert "/w/b.js" in warning.message

    def test_idempotent(self, index):
        assert evaluate_diagnostics(index) == evaluate_diagnostics(index)
