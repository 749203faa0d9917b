"""Normalize tree-sitter Go type nodes into type reference strings.

References follow a fixed textual grammar so that two references to the same
type compare equal as strings: ``*T``, ``[]T``, ``[n]T``, ``map[K]V``,
``chan T``, ``chan<- T``, ``<-chan T``, ``...T``, ``G[A, B]``, and the
placeholders ``func``, ``interface{}`` and ``struct`` for anonymous shapes.
"""

from __future__ import annotations

from tree_sitter import Node

UNKNOWN = "unknown"

# Prefixes that mark a collection of the element type
COLLECTION_PREFIXES = ("[]", "[n]")


def _text(node: Node) -> str:
    return node.text.decode("utf-8", errors="replace")


def _first_named(node: Node) -> Node | None:
    for child in node.named_children:
        if child.type != "comment":
            return child
    return None


def _channel(node: Node) -> str:
    value = node.child_by_field_name("value")
    inner = normalize_type(value) if value is not None else UNKNOWN
    tokens = [child.type for child in node.children if not child.is_named]
    if tokens[:2] == ["<-", "chan"]:
        return f"<-chan {inner}"
    if tokens[:2] == ["chan", "<-"]:
        return f"chan<- {inner}"
    return f"chan {inner}"


def _generic(node: Node) -> str:
    base = node.child_by_field_name("type")
    args = node.child_by_field_name("type_arguments")
    name = normalize_type(base) if base is not None else UNKNOWN
    if args is None:
        return name
    rendered = []
    for arg in args.named_children:
        # Newer grammars wrap each argument in a type_elem
        if arg.type == "type_elem":
            inner = _first_named(arg)
            rendered.append(normalize_type(inner) if inner is not None else UNKNOWN)
        elif arg.type != "comment":
            rendered.append(normalize_type(arg))
    return f"{name}[{', '.join(rendered)}]"


def normalize_type(node: Node) -> str:
    """Return the reference string for a type expression node."""
    kind = node.type

    if kind in ("type_identifier", "identifier", "field_identifier", "package_identifier"):
        return _text(node)
    if kind == "qualified_type":
        package = node.child_by_field_name("package")
        name = node.child_by_field_name("name")
        if package is None or name is None:
            return UNKNOWN
        return f"{_text(package)}.{_text(name)}"
    if kind == "pointer_type":
        inner = _first_named(node)
        return "*" + (normalize_type(inner) if inner is not None else UNKNOWN)
    if kind == "slice_type":
        element = node.child_by_field_name("element")
        return "[]" + (normalize_type(element) if element is not None else UNKNOWN)
    if kind == "array_type":
        element = node.child_by_field_name("element")
        return "[n]" + (normalize_type(element) if element is not None else UNKNOWN)
    if kind == "map_type":
        key = node.child_by_field_name("key")
        value = node.child_by_field_name("value")
        if key is None or value is None:
            return UNKNOWN
        return f"map[{normalize_type(key)}]{normalize_type(value)}"
    if kind == "channel_type":
        return _channel(node)
    if kind == "function_type":
        return "func"
    if kind == "interface_type":
        return "interface{}"
    if kind == "struct_type":
        return "struct"
    if kind == "generic_type":
        return _generic(node)
    if kind in ("parenthesized_type", "type_elem"):
        inner = _first_named(node)
        return normalize_type(inner) if inner is not None else UNKNOWN
    return UNKNOWN


def strip_pointer(reference: str) -> str:
    """Remove exactly one leading indirection marker."""
    return reference[1:] if reference.startswith("*") else reference


def collection_element(reference: str) -> str | None:
    """Return the element reference of a slice or array reference, else None."""
    for prefix in COLLECTION_PREFIXES:
        if reference.startswith(prefix):
            return reference[len(prefix):]
    return None


def is_exported(name: str) -> bool:
    """Go exports identifiers that start with an upper-case letter."""
    return bool(name) and name[0].isupper()
