"""Per-file extraction of registrations and usages."""

from __future__ import annotations

import logging
from collections.abc import Iterable

import tree_sitter

from cradlemap.config import FileIndex, ImportBinding, KeyDefinition, Reference, ReferenceKind
from cradlemap.phases.imports import ImportCollector
from cradlemap.phases.origins import analyze_registration, resolve_symbol_origin
from cradlemap.phases.parsing import ParseError, parse_source
from cradlemap.syntax.patterns import (
    call_arguments,
    is_cradle_access,
    is_named_member_call,
    node_text,
    property_key_name,
    receiver_name,
    string_value,
    to_range,
)
from cradlemap.syntax.visitor import NodeVisitor, walk

logger = logging.getLogger(__name__)

_PARAMETER_WRAPPERS = ("required_parameter", "optional_parameter")


class FileIndexer(NodeVisitor):
    """Collects registration drafts and usage references during one walk.

    Registrations are only finalised after the walk, once the file's full
    import map is known.
    """

    def __init__(
        self,
        file_path: str,
        container_names: Iterable[str] = (),
        source: bytes | None = None,
    ) -> None:
        self.file_path = file_path
        self.source = source
        self.container_names = set(container_names)
        self.usages: list[Reference] = []
        self._drafts: list[tuple[str, tree_sitter.Node, tree_sitter.Node]] = []

    def _is_container(self, receiver: tree_sitter.Node | None) -> bool:
        if not self.container_names:
            return True
        return receiver_name(receiver) in self.container_names

    def _add_usage(self, node: tree_sitter.Node, key: str, kind: ReferenceKind) -> None:
        self.usages.append(Reference(
            file=self.file_path,
            range=to_range(node, self.source),
            key=key,
            kind=kind,
        ))

    # --- register / resolve calls ---

    def visit_call(self, node: tree_sitter.Node) -> None:
        callee = node.child_by_field_name("function")
        is_register = is_named_member_call(callee, "register")
        if not is_register and not is_named_member_call(callee, "resolve"):
            return
        if not self._is_container(callee.child_by_field_name("object")):
            return

        args = call_arguments(node)
        if not args:
            return

        if is_register:
            if args[0].type == "object":
                self._collect_registrations(args[0])
            elif len(args) > 1:
                # container.register('key', asClass(Foo))
                key = string_value(args[0])
                if key:
                    self._drafts.append((key, args[0], args[1]))
            return

        key = string_value(args[0])
        if key is not None:
            self._add_usage(args[0], key, ReferenceKind.RESOLVE_CALL)

    def _collect_registrations(self, obj: tree_sitter.Node) -> None:
        for prop in obj.named_children:
            if prop.type == "pair":
                key_node = prop.child_by_field_name("key")
                value = prop.child_by_field_name("value")
            elif prop.type == "shorthand_property_identifier":
                key_node = value = prop
            else:
                continue

            key = property_key_name(key_node)
            if not key or value is None:
                logger.debug(
                    f"{self.file_path}:{prop.start_point[0] + 1}: "
                    f"skipping registration with non-literal key"
                )
                continue
            self._drafts.append((key, key_node, value))

    # --- cradle access ---

    def visit_member(self, node: tree_sitter.Node) -> None:
        if not is_cradle_access(node):
            return
        cradle = node.child_by_field_name("object")
        if not self._is_container(cradle.child_by_field_name("object")):
            return
        prop = node.child_by_field_name("property")
        self._add_usage(prop, node_text(prop), ReferenceKind.CRADLE_ACCESS)

    # --- destructured injection parameters ---

    def visit_method(self, node: tree_sitter.Node) -> None:
        parent = node.parent
        name = node.child_by_field_name("name")
        if parent is None or parent.type != "class_body":
            return
        if name is None or node_text(name) != "constructor":
            return
        self._collect_injections(node.child_by_field_name("parameters"))

    def visit_function(self, node: tree_sitter.Node) -> None:
        # Arrow functions with a bare identifier parameter use the `parameter` field
        self._collect_injections(node.child_by_field_name("parameters"))

    def _collect_injections(self, params: tree_sitter.Node | None) -> None:
        if params is None:
            return
        items = [c for c in params.named_children if c.type != "comment"]
        if not items:
            return

        first = items[0]
        if first.type in _PARAMETER_WRAPPERS:
            first = first.child_by_field_name("pattern")
        if first is not None and first.type == "assignment_pattern":
            first = first.child_by_field_name("left")
        if first is None or first.type != "object_pattern":
            return

        for prop in first.named_children:
            key_node = None
            if prop.type == "shorthand_property_identifier_pattern":
                key_node = prop
            elif prop.type == "object_assignment_pattern":
                key_node = prop.child_by_field_name("left")
            elif prop.type == "pair_pattern":
                key_node = prop.child_by_field_name("key")

            key = property_key_name(key_node)
            if key:
                self._add_usage(key_node, key, ReferenceKind.CONSTRUCTOR_INJECTION)

    # --- finalisation ---

    def registrations(self, import_map: dict[str, ImportBinding]) -> list[KeyDefinition]:
        results = []
        for key, key_node, value in self._drafts:
            info = analyze_registration(value)
            origin = resolve_symbol_origin(
                info.bound_symbol, import_map, self.file_path, self.source
            )

            key_range = to_range(key_node, self.source)
            def_range = origin.range
            if def_range is None and origin.origin_file == self.file_path:
                def_range = key_range

            results.append(KeyDefinition(
                key=key,
                origin_file=origin.origin_file,
                kind=info.kind,
                export_name=origin.export_name,
                range=def_range,
                lifetime=info.lifetime,
                registered_in=self.file_path,
                registration_range=key_range,
            ))
            lifetime = f", {info.lifetime.value}" if info.lifetime else ""
            logger.debug(f'  Registered key: "{key}" ({info.kind.value}{lifetime})')
        return results


def index_tree(
    tree: tree_sitter.Tree,
    file_path: str,
    container_names: Iterable[str] = (),
    source: bytes | None = None,
) -> FileIndex:
    """Run the import collector and file indexer over a parsed tree.

    Pass the parsed ``source`` so ranges carry character columns.
    """
    imports = ImportCollector(source)
    indexer = FileIndexer(file_path, container_names, source)
    walk(tree.root_node, [imports, indexer])
    return FileIndex(
        file=file_path,
        registrations=indexer.registrations(imports.imports),
        usages=indexer.usages,
    )


def index_file(
    file_path: str,
    source: bytes,
    container_names: Iterable[str] = (),
) -> FileIndex:
    """Index one file's source.

    A file that fails to parse is logged and contributes nothing; the
    returned FileIndex carries the reason in ``error``.
    """
    logger.debug(f"  Parsing: {file_path}")
    try:
        tree = parse_source(source, file_path)
        return index_tree(tree, file_path, container_names, source)
    except (ParseError, UnicodeDecodeError) as e:
        logger.warning(f"Failed to parse {file_path}: {e}")
        return FileIndex(file=file_path, error=str(e))
