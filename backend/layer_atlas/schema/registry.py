"""Point-in-time queries over every parsed layer."""

from __future__ import annotations

import logging
import uuid
from typing import Iterable, Sequence

from layer_atlas.models.entities import LayerReleaseDate, RawLayer
from layer_atlas.schema.parser import parse_schema
from layer_atlas.schema.types import (
    CompactConstructor,
    CompactDefinition,
    CompactTypeMatch,
    Constructor,
    DefinitionType,
    FetchMode,
    FunctionDefinition,
    FunctionOccurrence,
    FullTypeMatch,
    LayerNamespaces,
    LayerTypes,
    ObjectOccurrence,
    ParsedSchema,
)

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 30
MAX_LIMIT = 300


class SchemaRegistry:
    """Immutable catalogue of all layers, sorted ascending by layer id.

    Built once at startup and shared read-only between requests. Lookups for
    unknown layers, names or namespaces return ``None`` or an empty result.
    """

    def __init__(
        self,
        schemas: Iterable[ParsedSchema],
        default_limit: int = DEFAULT_LIMIT,
        max_limit: int = MAX_LIMIT,
    ) -> None:
        ordered = sorted(schemas, key=lambda schema: schema.layer_id)
        by_id: dict[int, ParsedSchema] = {}
        for schema in ordered:
            if schema.layer_id in by_id:
                raise ValueError(f"Duplicate layer id {schema.layer_id}")
            by_id[schema.layer_id] = schema
        self._schemas: tuple[ParsedSchema, ...] = tuple(ordered)
        self._by_id = by_id
        self.default_limit = default_limit
        self.max_limit = max_limit
        self._compact = build_compact_definitions(self._schemas)
        compact_by_layer: dict[int, list[CompactDefinition]] = {}
        for definition in self._compact:
            compact_by_layer.setdefault(definition.layer_id, []).append(definition)
        self._compact_by_layer = {key: tuple(value) for key, value in compact_by_layer.items()}
        logger.info(
            "Schema registry built with %s layers and %s compact definitions",
            len(self._schemas),
            len(self._compact),
        )

    @classmethod
    def from_layers(cls, layers: Iterable[RawLayer], **kwargs: int) -> "SchemaRegistry":
        return cls((parse_schema(layer) for layer in layers), **kwargs)

    @property
    def schemas(self) -> tuple[ParsedSchema, ...]:
        return self._schemas

    @property
    def compact_definitions(self) -> tuple[CompactDefinition, ...]:
        return self._compact

    @property
    def latest_layer_id(self) -> int | None:
        return self._schemas[-1].layer_id if self._schemas else None

    def layer_ids(self) -> list[int]:
        return [schema.layer_id for schema in self._schemas]

    def clamp_limit(self, limit: int | None) -> int:
        value = self.default_limit if limit is None else limit
        return max(1, min(value, self.max_limit))

    # Layers -----------------------------------------------------------

    def get_layer(self, layer_id: int) -> ParsedSchema | None:
        return self._by_id.get(layer_id)

    def get_compact_layer(self, layer_id: int) -> tuple[CompactDefinition, ...]:
        return self._compact_by_layer.get(layer_id, ())

    def release_dates(self) -> list[LayerReleaseDate]:
        return [
            LayerReleaseDate(layer_id=schema.layer_id, release_date=schema.release_date)
            for schema in self._schemas
        ]

    # Types and namespaces ---------------------------------------------

    def get_types(
        self,
        name: str,
        layer_id: int | None = None,
        mode: FetchMode = FetchMode.COMPACT,
        limit: int | None = None,
    ) -> list[CompactTypeMatch] | list[FullTypeMatch]:
        """Constructors of the type group ``name`` per layer.

        Compact mode caps the constructors listed per layer; full mode lists
        whole groups and caps the number of layers instead.
        """
        limit = self.clamp_limit(limit)
        if mode is FetchMode.COMPACT:
            compact: list[CompactTypeMatch] = []
            for schema in self._select(layer_id):
                group = next((item for item in schema.objects if item.name == name), None)
                if group is None:
                    continue
                objects = tuple(CompactConstructor(id=ctor.id, name=ctor.name) for ctor in group.constructors[:limit])
                compact.append(CompactTypeMatch(layer_id=schema.layer_id, objects=objects))
            return compact

        full: list[FullTypeMatch] = []
        for schema in self._select(layer_id):
            if len(full) >= limit:
                break
            group = next((item for item in schema.objects if item.name == name), None)
            if group is None:
                continue
            full.append(FullTypeMatch(layer_id=schema.layer_id, objects=group.constructors))
        return full

    def get_type_names(self, layer_id: int | None = None) -> list[LayerTypes]:
        return [
            LayerTypes(layer_id=schema.layer_id, types=tuple(group.name for group in schema.objects))
            for schema in self._select(layer_id)
        ]

    def get_namespaces(self, layer_id: int | None = None) -> list[LayerNamespaces]:
        result: list[LayerNamespaces] = []
        for schema in self._select(layer_id):
            object_ns = dict.fromkeys(
                ctor.namespace
                for group in schema.objects
                for ctor in group.constructors
                if ctor.namespace is not None
            )
            result.append(
                LayerNamespaces(
                    layer_id=schema.layer_id,
                    function_ns=tuple(schema.functions),
                    object_ns=tuple(object_ns),
                )
            )
        return result

    def get_namespace_functions(self, layer_id: int, namespace: str) -> tuple[FunctionDefinition, ...] | None:
        schema = self._by_id.get(layer_id)
        if schema is None:
            return None
        return schema.functions.get(namespace)

    def get_namespace_objects(self, layer_id: int, namespace: str) -> tuple[Constructor, ...] | None:
        schema = self._by_id.get(layer_id)
        if schema is None:
            return None
        objects = tuple(
            ctor
            for group in schema.objects
            for ctor in group.constructors
            if ctor.namespace == namespace
        )
        return objects or None

    # Occurrences ------------------------------------------------------

    def find_functions(
        self,
        name: str,
        layer_id: int | None = None,
        limit: int | None = None,
    ) -> list[FunctionOccurrence]:
        """Every occurrence of the function ``name``; ``limit=None`` means uncapped."""
        occurrences: list[FunctionOccurrence] = []
        for schema in self._select(layer_id):
            for functions in schema.functions.values():
                for function in functions:
                    if function.name == name:
                        occurrences.append(FunctionOccurrence(layer_id=schema.layer_id, function=function))
        return _cap(occurrences, None if limit is None else self.clamp_limit(limit))

    def find_objects(
        self,
        name: str,
        layer_id: int | None = None,
        limit: int | None = None,
    ) -> list[ObjectOccurrence]:
        occurrences: list[ObjectOccurrence] = []
        for schema in self._select(layer_id):
            for group in schema.objects:
                for ctor in group.constructors:
                    if ctor.name == name:
                        occurrences.append(
                            ObjectOccurrence(layer_id=schema.layer_id, category=group.name, object=ctor)
                        )
        return _cap(occurrences, None if limit is None else self.clamp_limit(limit))

    def _select(self, layer_id: int | None) -> Sequence[ParsedSchema]:
        if layer_id is None:
            return self._schemas
        schema = self._by_id.get(layer_id)
        return (schema,) if schema is not None else ()


def build_compact_definitions(schemas: Iterable[ParsedSchema]) -> tuple[CompactDefinition, ...]:
    """Project every function and constructor occurrence into a ``CompactDefinition``.

    Identifiers are fresh per build and not stable across restarts.
    """
    definitions: list[CompactDefinition] = []
    for schema in schemas:
        for bucket, functions in schema.functions.items():
            for function in functions:
                definitions.append(
                    CompactDefinition(
                        id=uuid.uuid4().hex,
                        layer_id=schema.layer_id,
                        definition_id=function.id,
                        name=function.name,
                        namespace=bucket,
                        return_type=function.return_type,
                        definition_type=DefinitionType.FUNCTION,
                    )
                )
        for group in schema.objects:
            for ctor in group.constructors:
                definitions.append(
                    CompactDefinition(
                        id=uuid.uuid4().hex,
                        layer_id=schema.layer_id,
                        definition_id=ctor.id,
                        name=ctor.name,
                        namespace=group.name,
                        return_type=None,
                        definition_type=DefinitionType.OBJECT,
                    )
                )
    return tuple(definitions)


def _cap(items: list, limit: int | None) -> list:
    return items if limit is None else items[:limit]


__all__ = ["SchemaRegistry", "build_compact_definitions", "DEFAULT_LIMIT", "MAX_LIMIT"]
