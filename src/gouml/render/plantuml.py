"""Serialize a type registry and its relations as PlantUML class-diagram text."""

from __future__ import annotations

from typing import Iterable

from gouml.indexer.typeref import is_exported
from gouml.model.registry import Method, Relation, RelationKind, TypeRegistry

_INDENT = "    "


def _visibility(name: str) -> str:
    return "+" if is_exported(name) else "-"


def format_method(method: Method) -> str:
    params = ", ".join(
        f"{p.name}: {p.type}" if p.name else p.type for p in method.parameters
    )
    line = f"{_visibility(method.name)}{method.name}({params})"
    if method.return_type:
        line += f": {method.return_type}"
    return line


def format_relation(relation: Relation) -> str | None:
    """Return the PlantUML arrow for a relation, or None for an unknown kind."""
    src, dst = relation.source, relation.target
    if relation.kind is RelationKind.EXTENDS:
        return f"{dst} <|-- {src}"
    if relation.kind is RelationKind.IMPLEMENTS:
        return f"{dst} <|.. {src}"
    if relation.kind is RelationKind.AGGREGATION:
        if relation.cardinality == "*":
            return f'{src} o-- "*" {dst}'
        return f"{src} o-- {dst}"
    if relation.kind is RelationKind.COMPOSITION:
        return f"{src} *-- {dst}"
    return None


def render_plantuml(
    registry: TypeRegistry,
    relations: Iterable[Relation],
    title: str | None = None,
) -> str:
    """Render the model as PlantUML text.

    Types and relations are sorted before emission so identical models always
    produce identical text. Members keep their declaration order.
    """
    lines: list[str] = ["@startuml", ""]
    if title:
        lines.extend([f"title {title}", ""])

    for record in sorted(registry.structs(), key=lambda r: r.name):
        lines.append(f"class {record.name} {{")
        for f in record.fields:
            if f.is_embedded:
                continue
            lines.append(f"{_INDENT}{_visibility(f.name)}{f.name}: {f.type}")
        for method in record.methods:
            lines.append(_INDENT + format_method(method))
        lines.extend(["}", ""])

    for iface in sorted(registry.interfaces(), key=lambda r: r.name):
        lines.append(f"interface {iface.name} {{")
        for method in iface.methods:
            lines.append(_INDENT + format_method(method))
        lines.extend(["}", ""])

    for relation in sorted(relations, key=Relation.sort_key):
        arrow = format_relation(relation)
        if arrow is not None:
            lines.append(arrow)

    lines.extend(["", "@enduml"])
    return "\n".join(lines) + "\n"
