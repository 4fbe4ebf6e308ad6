"""Parsed TL schema structures shared by the parser, registry and history engine."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Mapping


class DefinitionType(str, Enum):
    FUNCTION = "Function"
    OBJECT = "Object"

    def __str__(self) -> str:
        return self.value


class FetchMode(str, Enum):
    COMPACT = "compact"
    FULL = "full"


@dataclass(slots=True, frozen=True)
class Parameter:
    """One field of a constructor or function."""

    name: str
    type: str
    inner_type: str | None = None
    flag_name: str | None = None
    flag_offset: str | None = None
    is_generic: bool = False
    is_optional: bool = False
    is_flag_placeholder: bool = False


@dataclass(slots=True, frozen=True)
class Constructor:
    """A concrete object definition."""

    id: str
    name: str
    namespace: str | None
    parameters: tuple[Parameter, ...] = ()


@dataclass(slots=True, frozen=True)
class TypeGroup:
    """Constructors sharing one result-type category."""

    name: str
    constructors: tuple[Constructor, ...] = ()


@dataclass(slots=True, frozen=True)
class FunctionDefinition:
    id: str
    name: str
    parameters: tuple[Parameter, ...]
    return_type: str
    inner_return_type: str | None = None


@dataclass(slots=True, frozen=True)
class ParsedSchema:
    """One layer's catalogue; ``functions`` maps bucket key to functions."""

    layer_id: int
    release_date: date
    objects: tuple[TypeGroup, ...]
    functions: Mapping[str, tuple[FunctionDefinition, ...]]


@dataclass(slots=True, frozen=True)
class CompactDefinition:
    """Flattened per-layer projection of a constructor or function."""

    id: str
    layer_id: int
    definition_id: str
    name: str
    namespace: str
    return_type: str | None
    definition_type: DefinitionType

    def to_document(self) -> dict[str, object]:
        return {
            "id": self.id,
            "layer_id": self.layer_id,
            "definition_id": self.definition_id,
            "name": self.name,
            "namespace": self.namespace,
            "return_type": self.return_type,
            "definition_type": self.definition_type.value,
        }


@dataclass(slots=True, frozen=True)
class CompactConstructor:
    id: str
    name: str


@dataclass(slots=True, frozen=True)
class CompactTypeMatch:
    layer_id: int
    objects: tuple[CompactConstructor, ...]


@dataclass(slots=True, frozen=True)
class FullTypeMatch:
    layer_id: int
    objects: tuple[Constructor, ...]


class UsageKind(str, Enum):
    PARAM = "Param"
    RETURN_TYPE = "ReturnType"
    VIA_NAMESPACE = "ViaNamespace"


@dataclass(slots=True, frozen=True)
class ObjectUsage:
    """A function in the object's layer that takes or returns the object."""

    kind: UsageKind
    function: FunctionDefinition
    is_inner: bool


@dataclass(slots=True, frozen=True)
class FunctionOccurrence:
    layer_id: int
    function: FunctionDefinition


@dataclass(slots=True, frozen=True)
class ObjectOccurrence:
    layer_id: int
    category: str
    object: Constructor
    usages: tuple[ObjectUsage, ...] = ()


@dataclass(slots=True, frozen=True)
class LayerTypes:
    layer_id: int
    types: tuple[str, ...]


@dataclass(slots=True, frozen=True)
class LayerNamespaces:
    layer_id: int
    function_ns: tuple[str, ...]
    object_ns: tuple[str, ...]


__all__ = [
    "DefinitionType",
    "FetchMode",
    "CompactConstructor",
    "CompactTypeMatch",
    "FullTypeMatch",
    "UsageKind",
    "ObjectUsage",
    "FunctionOccurrence",
    "ObjectOccurrence",
    "LayerTypes",
    "LayerNamespaces",
    "Parameter",
    "Constructor",
    "TypeGroup",
    "FunctionDefinition",
    "ParsedSchema",
    "CompactDefinition",
]
