"""Registration analysis and bound-symbol origin resolution."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import tree_sitter

from cradlemap.config import BindingKind, ImportBinding, Lifetime, Range
from cradlemap.phases.imports import resolve_module_path
from cradlemap.phases.parsing import ParseError, parse_source
from cradlemap.syntax.patterns import (
    BINDING_KIND_SELECTORS,
    LIFETIME_SELECTORS,
    call_arguments,
    is_identifier,
    member_property_name,
    node_text,
    property_key_name,
    string_value,
    to_range,
)

logger = logging.getLogger(__name__)


@dataclass
class RegistrationInfo:
    kind: BindingKind
    lifetime: Lifetime | None
    bound_symbol: tree_sitter.Node | None


@dataclass(frozen=True)
class Origin:
    origin_file: str
    export_name: str | None = None
    range: Range | None = None


def _unwrap(node: tree_sitter.Node | None) -> tree_sitter.Node | None:
    while node is not None and node.type == "parenthesized_expression":
        inner = [c for c in node.named_children if c.type != "comment"]
        node = inner[0] if inner else None
    return node


def _selector_name(callee: tree_sitter.Node | None) -> str | None:
    if callee is None:
        return None
    if callee.type == "identifier":
        return node_text(callee)
    return member_property_name(callee)


def _lifetime_literal(node: tree_sitter.Node | None) -> Lifetime | None:
    """Read ``Lifetime.SCOPED`` or ``'SCOPED'`` as a lifetime."""
    if node is None:
        return None
    name = member_property_name(node) or string_value(node)
    if not name:
        return None
    return LIFETIME_SELECTORS.get(name.lower())


def _options_lifetime(options: tree_sitter.Node) -> Lifetime | None:
    if options.type != "object":
        return None
    for prop in options.named_children:
        if prop.type == "pair" and property_key_name(prop.child_by_field_name("key")) == "lifetime":
            return _lifetime_literal(prop.child_by_field_name("value"))
    return None


def analyze_registration(value: tree_sitter.Node) -> RegistrationInfo:
    """Work out kind, lifetime and bound symbol of a registration value.

    The call chain is walked from the outermost call inwards. Each lifetime
    modifier met on the way overwrites the one before it, so the innermost
    modifier wins; an options object on the selector only counts when the
    chain carries no modifier. The first binding-kind selector found ends
    the walk and its first argument becomes the bound symbol. A value that
    never reaches a selector is itself the bound symbol, bound as a value.
    """
    lifetime: Lifetime | None = None
    node = _unwrap(value)

    while node is not None and node.type == "call_expression":
        callee = node.child_by_field_name("function")
        name = _selector_name(callee)

        if name in BINDING_KIND_SELECTORS:
            args = call_arguments(node)
            if lifetime is None and len(args) > 1:
                lifetime = _options_lifetime(args[1])
            return RegistrationInfo(
                kind=BINDING_KIND_SELECTORS[name],
                lifetime=lifetime,
                bound_symbol=args[0] if args else None,
            )

        if name in LIFETIME_SELECTORS:
            lifetime = LIFETIME_SELECTORS[name]
        elif name == "setLifetime":
            args = call_arguments(node)
            lifetime = (_lifetime_literal(args[0]) if args else None) or lifetime

        if callee is None or callee.type != "member_expression":
            break
        node = _unwrap(callee.child_by_field_name("object"))

    return RegistrationInfo(kind=BindingKind.VALUE, lifetime=lifetime, bound_symbol=value)


def resolve_symbol_origin(
    bound: tree_sitter.Node | None,
    import_map: dict[str, ImportBinding],
    file_path: str,
    source: bytes | None = None,
) -> Origin:
    """Locate where a bound symbol is declared.

    Imported names resolve to their module file with no in-file range (the
    origin file is not parsed here). Local names report the current file and
    the identifier's own span.
    """
    if bound is None:
        return Origin(origin_file=file_path)

    if is_identifier(bound):
        name = node_text(bound)
        binding = import_map.get(name)
        if binding is not None:
            return _origin_from_import(binding, binding.exported_name, file_path, name)
        return Origin(
            origin_file=file_path, export_name=name, range=to_range(bound, source)
        )

    # ns.Foo where ns is a namespace or default import
    if bound.type == "member_expression":
        obj = bound.child_by_field_name("object")
        prop = member_property_name(bound)
        if prop and is_identifier(obj):
            binding = import_map.get(node_text(obj))
            if binding is not None and (binding.is_namespace or binding.exported_name is None):
                return _origin_from_import(binding, prop, file_path, prop)

    return Origin(origin_file=file_path, range=to_range(bound, source))


def _origin_from_import(
    binding: ImportBinding,
    export_name: str | None,
    file_path: str,
    local_name: str,
) -> Origin:
    resolved = resolve_module_path(binding.module_path, file_path)
    if resolved:
        return Origin(origin_file=resolved, export_name=export_name)
    logger.debug(f"{file_path}: could not resolve module '{binding.module_path}'")
    return Origin(origin_file=file_path, export_name=local_name, range=binding.range)


# ---------------------------------------------------------------------------
# Declaration lookup in origin files
# ---------------------------------------------------------------------------

_DECLARATION_TYPES = (
    "class_declaration",
    "function_declaration",
    "generator_function_declaration",
)


def _declared_names(node: tree_sitter.Node) -> list[tuple[str, tree_sitter.Node]]:
    """(name, name-node) pairs introduced by a top-level statement."""
    if node.type in _DECLARATION_TYPES:
        name = node.child_by_field_name("name")
        return [(node_text(name), name)] if name is not None else []
    if node.type in ("lexical_declaration", "variable_declaration"):
        found = []
        for decl in node.named_children:
            if decl.type == "variable_declarator":
                name = decl.child_by_field_name("name")
                if name is not None and name.type == "identifier":
                    found.append((node_text(name), name))
        return found
    return []


def _export_target(left: tree_sitter.Node) -> str | None:
    """'default' for ``module.exports``, the name for ``(module.)exports.X``."""
    text = node_text(left).replace(" ", "")
    if text == "module.exports":
        return "default"
    obj = left.child_by_field_name("object")
    if obj is not None and node_text(obj).replace(" ", "") in ("module.exports", "exports"):
        return member_property_name(left)
    return None


def locate_declaration(origin_file: str, export_name: str | None) -> Range | None:
    """Find the declaration span of an export in ``origin_file``.

    ``export_name`` None means the default export (ES ``export default`` or
    CommonJS ``module.exports = ...``). Returns None when the file cannot be
    read or parsed, or when no matching declaration exists.
    """
    try:
        with open(origin_file, "rb") as f:
            source = f.read()
        tree = parse_source(source, origin_file)
    except (OSError, ParseError) as e:
        logger.warning(f"Failed to locate declarations in {origin_file}: {e}")
        return None

    wanted = export_name or "default"
    local: dict[str, tree_sitter.Node] = {}
    exported: dict[str, tree_sitter.Node] = {}

    for stmt in tree.root_node.named_children:
        if stmt.type == "export_statement":
            decl = stmt.child_by_field_name("declaration")
            value = stmt.child_by_field_name("value")
            is_default = any(c.type == "default" for c in stmt.children)
            if decl is not None:
                for name, name_node in _declared_names(decl):
                    local[name] = name_node
                    exported[name] = name_node
                if is_default:
                    name_node = decl.child_by_field_name("name")
                    exported["default"] = name_node or decl
            elif is_default and value is not None:
                # export default class Foo {} may parse as a named class expression
                exported["default"] = value.child_by_field_name("name") or value
            for clause in stmt.named_children:
                if clause.type != "export_clause":
                    continue
                for spec in clause.named_children:
                    if spec.type != "export_specifier":
                        continue
                    name = spec.child_by_field_name("name")
                    alias = spec.child_by_field_name("alias")
                    exported[property_key_name(alias or name) or ""] = name
        elif stmt.type == "expression_statement":
            expr = next((c for c in stmt.named_children if c.type != "comment"), None)
            if expr is None or expr.type != "assignment_expression":
                continue
            target = _export_target(expr.child_by_field_name("left"))
            right = _unwrap(expr.child_by_field_name("right"))
            if target is None or right is None:
                continue
            if target == "default" and right.type == "object":
                for prop in right.named_children:
                    if prop.type == "shorthand_property_identifier":
                        exported[node_text(prop)] = prop
                    elif prop.type == "pair":
                        key = property_key_name(prop.child_by_field_name("key"))
                        if key:
                            exported[key] = prop.child_by_field_name("value")
            exported[target] = right
        else:
            for name, name_node in _declared_names(stmt):
                local[name] = name_node

    node = exported.get(wanted)
    if node is not None and is_identifier(node) and node_text(node) in local:
        node = local[node_text(node)]
    if node is None and export_name:
        node = local.get(export_name)
    return to_range(node, source)
