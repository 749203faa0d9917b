"""Infer relationships between registered structs and interfaces."""

from __future__ import annotations

from enum import Enum

from gouml.indexer.typeref import collection_element, strip_pointer
from gouml.model.registry import (
    Field,
    InterfaceRecord,
    Relation,
    RelationKind,
    TypeRecord,
    TypeRegistry,
)


class EmbeddingPolicy(str, Enum):
    """How an embedded struct member is classified.

    EXTENDS: every embedded struct is an ``extends`` relation.
    POINTER_COMPOSITION: an embedded pointer (``*Base``) is ``composition``;
    a value embed stays ``extends``.
    """

    EXTENDS = "extends"
    POINTER_COMPOSITION = "pointer-composition"


class SatisfactionMode(str, Enum):
    """How a struct is matched against an interface's method set.

    NAME_ONLY compares method names and ignores signatures, since resolving
    type equivalence needs semantic analysis the extractor does not do.
    SIGNATURE also requires equal parameter types and return type.
    """

    NAME_ONLY = "name-only"
    SIGNATURE = "signature"


def _member_kind(f: Field, policy: EmbeddingPolicy) -> RelationKind:
    pointer = f.type.startswith("*")
    if f.is_embedded:
        if pointer and policy is EmbeddingPolicy.POINTER_COMPOSITION:
            return RelationKind.COMPOSITION
        return RelationKind.EXTENDS
    if pointer:
        return RelationKind.COMPOSITION
    return RelationKind.AGGREGATION


def _member_relations(
    record: TypeRecord, registry: TypeRegistry, policy: EmbeddingPolicy,
) -> list[Relation]:
    relations: list[Relation] = []
    for f in record.fields:
        base = strip_pointer(f.type)
        if registry.is_struct(base):
            relations.append(Relation(record.name, base, _member_kind(f, policy), "1"))

        element = collection_element(f.type)
        if element is not None:
            element = strip_pointer(element)
            if registry.is_struct(element):
                relations.append(Relation(record.name, element, RelationKind.AGGREGATION, "*"))

        if registry.is_interface(f.type):
            relations.append(Relation(record.name, f.type, RelationKind.IMPLEMENTS, ""))
    return relations


def satisfies(record: TypeRecord, iface: InterfaceRecord, mode: SatisfactionMode) -> bool:
    """Return True if the struct's methods cover every method of the interface.

    An interface without methods is never satisfied, so empty contracts do
    not link to every struct.
    """
    if not iface.methods:
        return False
    for required in iface.methods:
        candidates = [m for m in record.methods if m.name == required.name]
        if not candidates:
            return False
        if mode is SatisfactionMode.SIGNATURE and not any(
            m.parameter_types() == required.parameter_types()
            and m.return_type == required.return_type
            for m in candidates
        ):
            return False
    return True


def infer_relations(
    registry: TypeRegistry,
    embedding_policy: EmbeddingPolicy = EmbeddingPolicy.EXTENDS,
    satisfaction: SatisfactionMode = SatisfactionMode.NAME_ONLY,
) -> list[Relation]:
    """Derive relations in two ordered stages: members, then interface satisfaction.

    Duplicate relations are kept. References to types outside the registry
    produce nothing.
    """
    relations: list[Relation] = []
    for record in registry.structs():
        relations.extend(_member_relations(record, registry, embedding_policy))

    interfaces = list(registry.interfaces())
    for record in registry.structs():
        for iface in interfaces:
            if satisfies(record, iface, satisfaction):
                relations.append(Relation(record.name, iface.name, RelationKind.IMPLEMENTS, ""))
    return relations
