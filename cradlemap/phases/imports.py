"""Import/require collection and module specifier resolution."""

from __future__ import annotations

import json
import logging
import os

import tree_sitter

from cradlemap.config import ImportBinding
from cradlemap.syntax.patterns import (
    call_arguments,
    member_property_name,
    node_text,
    property_key_name,
    string_value,
    to_range,
)
from cradlemap.syntax.visitor import NodeVisitor, walk

logger = logging.getLogger(__name__)

SOURCE_EXTENSIONS = (".js", ".jsx", ".mjs", ".cjs", ".ts", ".tsx")

NODE_BUILTINS = frozenset({
    "assert", "async_hooks", "buffer", "child_process", "cluster", "console",
    "constants", "crypto", "dgram", "diagnostics_channel", "dns", "domain",
    "events", "fs", "http", "http2", "https", "inspector", "module", "net",
    "os", "path", "perf_hooks", "process", "punycode", "querystring",
    "readline", "repl", "stream", "string_decoder", "sys", "timers", "tls",
    "trace_events", "tty", "url", "util", "v8", "vm", "wasi",
    "worker_threads", "zlib",
})


# ---------------------------------------------------------------------------
# Import map
# ---------------------------------------------------------------------------

class ImportCollector(NodeVisitor):
    """Collect local name -> origin bindings; the last write for a name wins."""

    def __init__(self, source: bytes | None = None) -> None:
        self.source = source
        self.imports: dict[str, ImportBinding] = {}

    def visit_import(self, node: tree_sitter.Node) -> None:
        source = string_value(node.child_by_field_name("source"))
        for child in node.named_children:
            if child.type == "import_clause":
                if source is not None:
                    self._collect_clause(child, source)
            elif child.type == "import_require_clause":
                # TypeScript: import foo = require('./foo')
                self._collect_require_clause(child)

    def _collect_clause(self, clause: tree_sitter.Node, source: str) -> None:
        for part in clause.named_children:
            if part.type == "identifier":
                self._bind(part, source)
            elif part.type == "namespace_import":
                for ident in part.named_children:
                    if ident.type == "identifier":
                        self._bind(ident, source, is_namespace=True)
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type != "import_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    imported = property_key_name(name)
                    local = alias or name
                    if imported and local is not None and local.type == "identifier":
                        self._bind(local, source, exported_name=imported)

    def _collect_require_clause(self, clause: tree_sitter.Node) -> None:
        source = string_value(clause.child_by_field_name("source"))
        if source is None:
            for child in clause.named_children:
                if child.type == "string":
                    source = string_value(child)
        local = next((c for c in clause.named_children if c.type == "identifier"), None)
        if source is not None and local is not None:
            self._bind(local, source)

    def visit_variable_declarator(self, node: tree_sitter.Node) -> None:
        target = node.child_by_field_name("name")
        value = node.child_by_field_name("value")
        if target is None or value is None:
            return

        # const Foo = require('./foo').Foo
        member = None
        if value.type == "member_expression":
            member = member_property_name(value)
            value = value.child_by_field_name("object")

        source = _require_source(value)
        if source is None:
            return

        if target.type == "identifier":
            self._bind(target, source, exported_name=member)
        elif target.type == "object_pattern" and member is None:
            for prop in target.named_children:
                self._collect_pattern_property(prop, source)

    def _collect_pattern_property(self, prop: tree_sitter.Node, source: str) -> None:
        if prop.type == "shorthand_property_identifier_pattern":
            self._bind(prop, source, exported_name=node_text(prop))
        elif prop.type == "object_assignment_pattern":
            left = prop.child_by_field_name("left")
            if left is not None and left.type == "shorthand_property_identifier_pattern":
                self._bind(left, source, exported_name=node_text(left))
        elif prop.type == "pair_pattern":
            imported = property_key_name(prop.child_by_field_name("key"))
            local = prop.child_by_field_name("value")
            if local is not None and local.type == "assignment_pattern":
                local = local.child_by_field_name("left")
            if imported and local is not None and local.type == "identifier":
                self._bind(local, source, exported_name=imported)

    def _bind(
        self,
        ident: tree_sitter.Node,
        source: str,
        exported_name: str | None = None,
        is_namespace: bool = False,
    ) -> None:
        self.imports[node_text(ident)] = ImportBinding(
            module_path=source,
            exported_name=exported_name,
            is_namespace=is_namespace,
            range=to_range(ident, self.source),
        )


def _require_source(node: tree_sitter.Node | None) -> str | None:
    """Module specifier of a ``require('<literal>')`` call, else None."""
    if node is None or node.type != "call_expression":
        return None
    callee = node.child_by_field_name("function")
    if callee is None or callee.type != "identifier" or node_text(callee) != "require":
        return None
    args = call_arguments(node)
    if not args:
        return None
    return string_value(args[0])


def build_import_map(
    tree: tree_sitter.Tree,
    file_path: str,
    source: bytes | None = None,
) -> dict[str, ImportBinding]:
    """Map every import/require-bound local name in a file to its origin."""
    collector = ImportCollector(source)
    walk(tree.root_node, [collector])
    logger.debug(f"{file_path}: {len(collector.imports)} imported names")
    return collector.imports


# ---------------------------------------------------------------------------
# Module path resolution
# ---------------------------------------------------------------------------

def _is_relative(specifier: str) -> bool:
    return specifier.startswith(".") or os.path.isabs(specifier)


def resolve_module_path(specifier: str, from_file: str) -> str | None:
    """Resolve a module specifier to an absolute file on disk.

    - Relative specifiers resolve against the importing file's directory:
      the literal path as a file, then with each source extension, then an
      ``index`` file inside it as a directory.
    - Package specifiers follow Node's ``node_modules`` lookup.
    - Returns None when nothing on disk matches.
    """
    from_dir = os.path.dirname(os.path.abspath(from_file))

    if _is_relative(specifier):
        return _resolve_as_path(os.path.normpath(os.path.join(from_dir, specifier)))

    return _resolve_package(specifier, from_dir)


def _resolve_as_path(resolved: str) -> str | None:
    if os.path.isfile(resolved):
        return resolved

    # Extension probing
    for ext in SOURCE_EXTENSIONS:
        candidate = resolved + ext
        if os.path.isfile(candidate):
            return candidate

    # Index file probing
    if os.path.isdir(resolved):
        for ext in SOURCE_EXTENSIONS:
            candidate = os.path.join(resolved, f"index{ext}")
            if os.path.isfile(candidate):
                return candidate

    return None


def _split_package(specifier: str) -> tuple[str, str]:
    parts = specifier.split("/")
    if specifier.startswith("@") and len(parts) >= 2:
        return "/".join(parts[:2]), "/".join(parts[2:])
    return parts[0], "/".join(parts[1:])


def _resolve_package(specifier: str, from_dir: str) -> str | None:
    if specifier.startswith("node:"):
        return None

    name, subpath = _split_package(specifier)
    if not name or name in NODE_BUILTINS:
        return None

    current = from_dir
    while True:
        if os.path.basename(current) != "node_modules":
            pkg_dir = os.path.join(current, "node_modules", name)
            if os.path.isdir(pkg_dir):
                if subpath:
                    target = _resolve_as_path(os.path.join(pkg_dir, subpath))
                else:
                    target = _resolve_package_main(pkg_dir)
                if target:
                    return target
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def _resolve_package_main(pkg_dir: str) -> str | None:
    manifest = os.path.join(pkg_dir, "package.json")
    main = None
    if os.path.isfile(manifest):
        try:
            with open(manifest, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to read {manifest}: {e}")
        else:
            if isinstance(data, dict) and isinstance(data.get("main"), str):
                main = data["main"]

    if main:
        target = _resolve_as_path(os.path.normpath(os.path.join(pkg_dir, main)))
        if target:
            return target

    return _resolve_as_path(os.path.join(pkg_dir, "index"))
