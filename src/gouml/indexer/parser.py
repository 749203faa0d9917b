"""Tree-sitter Go parser: extract struct, interface and method declarations."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

import tree_sitter_go as ts_go
from tree_sitter import Language, Node, Parser, Tree

from gouml.errors import IOFailure, ParseFailure
from gouml.indexer.typeref import normalize_type
from gouml.model.registry import (
    Field,
    InterfaceRecord,
    Method,
    Parameter,
    TypeRecord,
    TypeRegistry,
)

logger = logging.getLogger(__name__)

GO_LANGUAGE = Language(ts_go.language())

# Interface members are method_elem in current grammars, method_spec in older ones
_INTERFACE_METHOD_NODES = ("method_elem", "method_spec")


@dataclass
class ParsedUnit:
    """One parsed source file, kept alive between the two extraction stages."""

    path: Path
    source: bytes
    tree: Tree

    @property
    def root(self) -> Node:
        return self.tree.root_node


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _first_error(node: Node) -> Node | None:
    """Depth-first search for the first ERROR or MISSING node."""
    if node.is_error or node.is_missing:
        return node
    if not node.has_error:
        return None
    for child in node.children:
        found = _first_error(child)
        if found is not None:
            return found
    return node


def _parameters(param_list: Node | None) -> list[Parameter]:
    """Flatten a parameter_list into one Parameter per declared name."""
    params: list[Parameter] = []
    if param_list is None:
        return params
    for decl in param_list.named_children:
        if decl.type not in ("parameter_declaration", "variadic_parameter_declaration"):
            continue
        type_node = decl.child_by_field_name("type")
        type_ref = normalize_type(type_node) if type_node is not None else "unknown"
        if decl.type == "variadic_parameter_declaration":
            type_ref = "..." + type_ref
        names = decl.children_by_field_name("name")
        if names:
            params.extend(Parameter(name=_text(n), type=type_ref) for n in names)
        else:
            params.append(Parameter(name="", type=type_ref))
    return params


def _return_type(result: Node | None) -> str:
    """Comma-join the result types; a named group like (x, y int) counts twice."""
    if result is None:
        return ""
    if result.type == "parameter_list":
        return ", ".join(p.type for p in _parameters(result))
    return normalize_type(result)


def _method(name_node: Node, node: Node) -> Method:
    return Method(
        name=_text(name_node),
        parameters=_parameters(node.child_by_field_name("parameters")),
        return_type=_return_type(node.child_by_field_name("result")),
    )


def _struct_fields(struct_node: Node) -> list[Field]:
    fields: list[Field] = []
    for child in struct_node.named_children:
        if child.type != "field_declaration_list":
            continue
        for decl in child.named_children:
            if decl.type != "field_declaration":
                continue
            type_node = decl.child_by_field_name("type")
            if type_node is None:
                continue
            type_ref = normalize_type(type_node)
            names = decl.children_by_field_name("name")
            if names:
                fields.extend(Field(name=_text(n), type=type_ref) for n in names)
                continue
            # Embedded member: the optional '*' sits outside the type field
            if any(c.type == "*" for c in decl.children):
                type_ref = "*" + type_ref
            fields.append(Field(name=type_ref, type=type_ref))
    return fields


def _interface_methods(iface_node: Node) -> list[Method]:
    methods: list[Method] = []
    for elem in iface_node.named_children:
        if elem.type not in _INTERFACE_METHOD_NODES:
            continue
        name_node = elem.child_by_field_name("name")
        if name_node is None:
            continue
        methods.append(_method(name_node, elem))
    return methods


def _receiver_name(method_node: Node) -> str | None:
    """Resolve the receiver's base type name, e.g. ``*Stack[T]`` -> ``Stack``."""
    receiver = method_node.child_by_field_name("receiver")
    if receiver is None:
        return None
    for decl in receiver.named_children:
        if decl.type != "parameter_declaration":
            continue
        type_node = decl.child_by_field_name("type")
        if type_node is None:
            return None
        if type_node.type == "pointer_type":
            inner = [c for c in type_node.named_children if c.type != "comment"]
            if not inner:
                return None
            type_node = inner[0]
        if type_node.type == "generic_type":
            type_node = type_node.child_by_field_name("type")
            if type_node is None:
                return None
        if type_node.type != "type_identifier":
            return None
        return _text(type_node)
    return None


def _type_specs(root: Node) -> Iterator[Node]:
    for decl in root.named_children:
        if decl.type != "type_declaration":
            continue
        for spec in decl.named_children:
            if spec.type == "type_spec":
                yield spec


class GoParser:
    def __init__(self) -> None:
        self._parser = Parser(GO_LANGUAGE)

    def parse_source(self, source: bytes, path: Path | str = "<memory>") -> ParsedUnit:
        """Parse Go source bytes; raise ParseFailure on any syntax error."""
        path = Path(path)
        tree = self._parser.parse(source)
        error = _first_error(tree.root_node)
        if error is not None:
            line, column = error.start_point[0] + 1, error.start_point[1] + 1
            if error.is_missing:
                message = f"missing {error.type}"
            else:
                snippet = _text(error).split("\n", 1)[0][:60]
                message = f"syntax error near {snippet!r}" if snippet else "syntax error"
            raise ParseFailure(path, message, line=line, column=column)
        return ParsedUnit(path=path, source=source, tree=tree)

    def parse_file(self, path: Path) -> ParsedUnit:
        """Read and parse one .go file."""
        try:
            source = path.read_bytes()
        except OSError as e:
            raise IOFailure(f"cannot read {path}: {e}") from e
        return self.parse_source(source, path)


def collect_types(unit: ParsedUnit, registry: TypeRegistry) -> int:
    """Stage 1: register every top-level struct and interface in the unit.

    Returns the number of types registered.
    """
    count = 0
    for spec in _type_specs(unit.root):
        name_node = spec.child_by_field_name("name")
        type_node = spec.child_by_field_name("type")
        if name_node is None or type_node is None:
            continue
        name = _text(name_node)
        if type_node.type == "struct_type":
            registry.add_struct(TypeRecord(name=name, fields=_struct_fields(type_node)))
            count += 1
        elif type_node.type == "interface_type":
            registry.add_interface(InterfaceRecord(name=name, methods=_interface_methods(type_node)))
            count += 1
    return count


def collect_methods(unit: ParsedUnit, registry: TypeRegistry) -> int:
    """Stage 2: attach method declarations to their receiver structs.

    Returns the number of methods dropped because the receiver is not a
    registered struct.
    """
    dropped = 0
    for decl in unit.root.named_children:
        if decl.type != "method_declaration":
            continue
        name_node = decl.child_by_field_name("name")
        owner = _receiver_name(decl)
        if name_node is None or owner is None:
            dropped += 1
            continue
        if not registry.attach_method(owner, _method(name_node, decl)):
            logger.debug("%s: dropping method %s on unregistered type %s", unit.path, _text(name_node), owner)
            dropped += 1
    return dropped
