"""Change history reconstruction and object usage analysis.

Layers are full snapshots, not changelogs. A definition's history is
inferred by sorting its occurrences newest first and diffing each adjacent
pair; layers in which the definition does not occur are skipped.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence, Union

from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.schema.types import (
    Constructor,
    DefinitionType,
    FunctionDefinition,
    FunctionOccurrence,
    ObjectOccurrence,
    ObjectUsage,
    Parameter,
    UsageKind,
)

# (diff label, Parameter attribute)
DIFF_FIELDS: tuple[tuple[str, str], ...] = (
    ("name", "name"),
    ("_type", "type"),
    ("inner_type", "inner_type"),
    ("flag_name", "flag_name"),
    ("flag_offset", "flag_offset"),
    ("is_generic", "is_generic"),
    ("is_optional", "is_optional"),
    ("is_flag_placeholder", "is_flag_placeholder"),
)


@dataclass(slots=True, frozen=True)
class ParamDiff:
    field_name: str
    before: str
    after: str

    def to_dict(self) -> dict[str, str]:
        return {"field_name": self.field_name, "from": self.before, "to": self.after}


class _Event:
    __slots__ = ()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": type(self).__name__}
        for item in dataclasses.fields(self):
            value = getattr(self, item.name)
            if isinstance(value, tuple):
                value = [entry.to_dict() for entry in value]
            payload[item.name] = value
        return payload


@dataclass(slots=True, frozen=True)
class AddedIn(_Event):
    layer_id: int


@dataclass(slots=True, frozen=True)
class DeletedIn(_Event):
    layer_id: int


@dataclass(slots=True, frozen=True)
class ParamAdded(_Event):
    layer_id: int
    name: str
    param_type: str


@dataclass(slots=True, frozen=True)
class ParamDeleted(_Event):
    layer_id: int
    name: str


@dataclass(slots=True, frozen=True)
class ParamChanged(_Event):
    layer_id: int
    name: str
    diffs: tuple[ParamDiff, ...]


@dataclass(slots=True, frozen=True)
class ReturnTypeChanged(_Event):
    layer_id: int
    before: str
    after: str


HistoryEvent = Union[AddedIn, DeletedIn, ParamAdded, ParamDeleted, ParamChanged, ReturnTypeChanged]


@dataclass(slots=True, frozen=True)
class FunctionHistory:
    history: tuple[HistoryEvent, ...]
    last_definition: FunctionOccurrence

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": DefinitionType.FUNCTION.value,
            "history": [event.to_dict() for event in self.history],
            "last_definition": dataclasses.asdict(self.last_definition),
        }


@dataclass(slots=True, frozen=True)
class ObjectHistory:
    history: tuple[HistoryEvent, ...]
    last_definition: ObjectOccurrence

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": DefinitionType.OBJECT.value,
            "history": [event.to_dict() for event in self.history],
            "last_definition": dataclasses.asdict(self.last_definition),
        }


@dataclass(slots=True, frozen=True)
class EmptyHistory:
    def to_dict(self) -> dict[str, Any]:
        return {"kind": "Empty", "history": [], "last_definition": None}


HistoryResponse = Union[FunctionHistory, ObjectHistory, EmptyHistory]


class HistoryEngine:
    """Computes histories and usages on demand from an immutable registry."""

    def __init__(self, registry: SchemaRegistry) -> None:
        self.registry = registry

    def history(self, name: str, kind: DefinitionType) -> HistoryResponse:
        if kind is DefinitionType.FUNCTION:
            result: HistoryResponse | None = self.function_history(name)
        else:
            result = self.object_history(name)
        return result if result is not None else EmptyHistory()

    def function_history(self, name: str) -> FunctionHistory | None:
        occurrences = sorted(self.registry.find_functions(name), key=_layer_key, reverse=True)
        if not occurrences:
            return None
        events = self._reconstruct(
            occurrences,
            parameters=lambda item: item.function.parameters,
            return_type=lambda item: item.function.return_type,
        )
        return FunctionHistory(history=tuple(events), last_definition=occurrences[0])

    def object_history(self, name: str) -> ObjectHistory | None:
        occurrences = sorted(self.find_objects(name), key=_layer_key, reverse=True)
        if not occurrences:
            return None
        events = self._reconstruct(occurrences, parameters=lambda item: item.object.parameters)
        return ObjectHistory(history=tuple(events), last_definition=occurrences[0])

    def find_objects(
        self,
        name: str,
        layer_id: int | None = None,
        limit: int | None = None,
    ) -> list[ObjectOccurrence]:
        """Object occurrences annotated with the functions of their layer that use them."""
        annotated: list[ObjectOccurrence] = []
        for occurrence in self.registry.find_objects(name, layer_id=layer_id, limit=limit):
            schema = self.registry.get_layer(occurrence.layer_id)
            buckets = schema.functions.values() if schema is not None else ()
            functions = (function for bucket in buckets for function in bucket)
            usages = object_usages(occurrence.object, occurrence.category, functions)
            annotated.append(dataclasses.replace(occurrence, usages=usages))
        return annotated

    def _reconstruct(
        self,
        occurrences: Sequence[Any],
        parameters: Callable[[Any], Sequence[Parameter]],
        return_type: Callable[[Any], str] | None = None,
    ) -> list[HistoryEvent]:
        events: list[HistoryEvent] = [AddedIn(layer_id=occurrences[-1].layer_id)]
        for newer, older in zip(occurrences, occurrences[1:]):
            events.extend(diff_parameter_lists(newer.layer_id, parameters(older), parameters(newer)))
            if return_type is not None:
                before, after = return_type(older), return_type(newer)
                if before != after:
                    events.append(ReturnTypeChanged(layer_id=newer.layer_id, before=before, after=after))
        newest = occurrences[0].layer_id
        if newest != self.registry.latest_layer_id:
            events.append(DeletedIn(layer_id=newest))
        return events


def diff_parameter_lists(
    layer_id: int,
    older: Sequence[Parameter],
    newer: Sequence[Parameter],
) -> list[HistoryEvent]:
    """Events turning ``older`` into ``newer``, attributed to ``layer_id``.

    Parameters are matched by name; with duplicate names the first wins.
    """
    events: list[HistoryEvent] = []
    newer_names = {param.name for param in newer}
    for param in older:
        if param.name not in newer_names:
            events.append(ParamDeleted(layer_id=layer_id, name=param.name))
    for param in newer:
        previous = next((item for item in older if item.name == param.name), None)
        if previous is None:
            events.append(ParamAdded(layer_id=layer_id, name=param.name, param_type=param.type))
            continue
        diffs = diff_parameter(previous, param)
        if diffs:
            events.append(ParamChanged(layer_id=layer_id, name=param.name, diffs=diffs))
    return events


def diff_parameter(before: Parameter, after: Parameter) -> tuple[ParamDiff, ...]:
    diffs: list[ParamDiff] = []
    for label, attribute in DIFF_FIELDS:
        old_value = getattr(before, attribute)
        new_value = getattr(after, attribute)
        if old_value != new_value:
            diffs.append(ParamDiff(field_name=label, before=_render(old_value), after=_render(new_value)))
    return tuple(diffs)


def object_usages(
    ctor: Constructor,
    category: str,
    functions: Iterable[FunctionDefinition],
) -> tuple[ObjectUsage, ...]:
    """Functions that return or take ``ctor``, directly or through its category."""
    usages: list[ObjectUsage] = []

    def check(function: FunctionDefinition, value: str | None, direct: UsageKind, is_inner: bool) -> None:
        if value is None:
            return
        if value == category:
            usages.append(ObjectUsage(kind=UsageKind.VIA_NAMESPACE, function=function, is_inner=is_inner))
        elif value == ctor.name:
            usages.append(ObjectUsage(kind=direct, function=function, is_inner=is_inner))

    for function in functions:
        check(function, function.inner_return_type, UsageKind.RETURN_TYPE, True)
        check(function, function.return_type, UsageKind.RETURN_TYPE, False)
        for param in function.parameters:
            check(function, param.inner_type, UsageKind.PARAM, True)
            check(function, param.type, UsageKind.PARAM, False)
    return tuple(usages)


def _render(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _layer_key(occurrence: FunctionOccurrence | ObjectOccurrence) -> int:
    return occurrence.layer_id


__all__ = [
    "HistoryEngine",
    "HistoryEvent",
    "HistoryResponse",
    "FunctionHistory",
    "ObjectHistory",
    "EmptyHistory",
    "AddedIn",
    "DeletedIn",
    "ParamAdded",
    "ParamDeleted",
    "ParamChanged",
    "ReturnTypeChanged",
    "ParamDiff",
    "diff_parameter",
    "diff_parameter_lists",
    "object_usages",
]
