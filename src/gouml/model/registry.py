"""In-memory registry of Go struct and interface declarations."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator

from gouml.errors import DuplicateTypeError


@dataclass
class Parameter:
    name: str
    type: str


@dataclass
class Method:
    name: str
    parameters: list[Parameter] = field(default_factory=list)
    return_type: str = ""

    def parameter_types(self) -> list[str]:
        return [p.type for p in self.parameters]


@dataclass
class Field:
    name: str
    type: str

    @property
    def is_embedded(self) -> bool:
        """Embedded members are recorded with the type reference as their name."""
        return self.name == self.type


@dataclass
class TypeRecord:
    name: str
    fields: list[Field] = field(default_factory=list)
    methods: list[Method] = field(default_factory=list)


@dataclass
class InterfaceRecord:
    name: str
    methods: list[Method] = field(default_factory=list)


class RelationKind(str, Enum):
    EXTENDS = "extends"
    IMPLEMENTS = "implements"
    AGGREGATION = "aggregation"
    COMPOSITION = "composition"


@dataclass(frozen=True)
class Relation:
    source: str
    target: str
    kind: RelationKind
    cardinality: str = ""

    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.source, self.target, self.kind.value, self.cardinality)


class TypeRegistry:
    """Maps type names to their declared shape.

    Structs and interfaces share one namespace: a name can be registered
    once, as either kind. Iteration follows registration order, which the
    build pipeline keeps stable by walking source files in sorted order.
    """

    def __init__(self) -> None:
        self._structs: dict[str, TypeRecord] = {}
        self._interfaces: dict[str, InterfaceRecord] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._structs or name in self._interfaces

    def __len__(self) -> int:
        return len(self._structs) + len(self._interfaces)

    def _check_free(self, name: str) -> None:
        if name in self._structs:
            raise DuplicateTypeError(name, f"type {name!r} is already registered as a struct")
        if name in self._interfaces:
            raise DuplicateTypeError(name, f"type {name!r} is already registered as an interface")

    def add_struct(self, record: TypeRecord) -> None:
        self._check_free(record.name)
        self._structs[record.name] = record

    def add_interface(self, record: InterfaceRecord) -> None:
        self._check_free(record.name)
        self._interfaces[record.name] = record

    def attach_method(self, owner: str, method: Method) -> bool:
        """Append a method to its owner struct.

        Returns False, without registering anything, when the owner is not a
        registered struct (external types, named non-struct types).
        """
        record = self._structs.get(owner)
        if record is None:
            return False
        record.methods.append(method)
        return True

    def get_struct(self, name: str) -> TypeRecord | None:
        return self._structs.get(name)

    def get_interface(self, name: str) -> InterfaceRecord | None:
        return self._interfaces.get(name)

    def is_struct(self, name: str) -> bool:
        return name in self._structs

    def is_interface(self, name: str) -> bool:
        return name in self._interfaces

    def structs(self) -> Iterator[TypeRecord]:
        return iter(list(self._structs.values()))

    def interfaces(self) -> Iterator[InterfaceRecord]:
        return iter(list(self._interfaces.values()))

    def names(self) -> list[str]:
        return list(self._structs) + list(self._interfaces)

    def merge(self, other: TypeRegistry) -> None:
        """Fold another registry into this one; duplicate names fail loudly."""
        for name in other.names():
            self._check_free(name)
        for record in other.structs():
            self._structs[record.name] = record
        for iface in other.interfaces():
            self._interfaces[iface.name] = iface
