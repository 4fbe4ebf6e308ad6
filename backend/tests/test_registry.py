"""Tests for the schema registry."""

from __future__ import annotations

from datetime import date

import pytest

from layer_atlas.models.entities import RawLayer
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.schema.types import DefinitionType, FetchMode, FullTypeMatch


def test_layers_sorted_and_latest(registry: SchemaRegistry) -> None:
    assert registry.layer_ids() == [1, 2]
    assert registry.latest_layer_id == 2
    assert [item.release_date for item in registry.release_dates()] == [date(2015, 3, 1), date(2016, 7, 1)]


def test_empty_registry() -> None:
    registry = SchemaRegistry([])
    assert registry.latest_layer_id is None
    assert registry.find_functions("users.getUsers") == []


def test_duplicate_layer_rejected(raw_layers) -> None:
    with pytest.raises(ValueError):
        SchemaRegistry.from_layers([raw_layers[0], raw_layers[0]])


def test_unknown_layer_is_absent(registry: SchemaRegistry) -> None:
    assert registry.get_layer(99) is None
    assert registry.get_compact_layer(99) == ()
    assert registry.get_namespace_functions(99, "users") is None
    assert registry.get_namespace_objects(99, "help") is None


def test_compact_projection(registry: SchemaRegistry) -> None:
    layer_one = registry.get_compact_layer(1)
    assert len(layer_one) == 9
    assert len(registry.compact_definitions) == 17
    assert len({item.id for item in registry.compact_definitions}) == 17
    kinds = [item.definition_type for item in layer_one]
    assert kinds == [DefinitionType.FUNCTION] * 4 + [DefinitionType.OBJECT] * 5

    get_config = next(item for item in layer_one if item.name == "help.getConfig")
    assert get_config.namespace == "Others"
    assert get_config.return_type == "help.Config"
    user = next(item for item in layer_one if item.name == "user")
    assert user.namespace == "User"
    assert user.return_type is None
    assert user.to_document()["definition_type"] == "Object"


def test_clamp_limit(registry: SchemaRegistry) -> None:
    assert registry.clamp_limit(None) == 30
    assert registry.clamp_limit(1000) == 300
    assert registry.clamp_limit(0) == 1


def test_get_types_compact_caps_constructors(registry: SchemaRegistry) -> None:
    matches = registry.get_types("InputPeer")
    assert [match.layer_id for match in matches] == [1, 2]
    assert [ctor.name for ctor in matches[1].objects] == ["inputPeerEmpty", "inputPeerUser"]

    capped = registry.get_types("InputPeer", limit=1)
    assert [len(match.objects) for match in capped] == [1, 1]


def test_get_types_full_caps_layers(registry: SchemaRegistry) -> None:
    matches = registry.get_types("InputPeer", mode=FetchMode.FULL, limit=1)
    assert len(matches) == 1
    assert isinstance(matches[0], FullTypeMatch)
    assert matches[0].objects[1].parameters[0].name == "user_id"

    assert registry.get_types("Missing", mode=FetchMode.FULL) == []


def test_type_names_and_namespaces(registry: SchemaRegistry) -> None:
    (types,) = registry.get_type_names(1)
    assert types.types == ("InputPeer", "User", "help.Config")

    (namespaces,) = registry.get_namespaces(1)
    assert namespaces.function_ns == ("users", "Others")
    assert namespaces.object_ns == ("help",)
    assert len(registry.get_namespaces()) == 2


def test_namespace_members(registry: SchemaRegistry) -> None:
    functions = registry.get_namespace_functions(1, "users")
    assert [fn.name for fn in functions] == ["users.getUsers", "users.getFullUser"]
    assert registry.get_namespace_functions(1, "missing") is None

    objects = registry.get_namespace_objects(2, "help")
    assert [ctor.name for ctor in objects] == ["help.config"]
    assert registry.get_namespace_objects(2, "users") is None


def test_find_occurrences(registry: SchemaRegistry) -> None:
    assert [item.layer_id for item in registry.find_functions("users.getUsers")] == [1, 2]
    assert [item.layer_id for item in registry.find_functions("users.getUsers", layer_id=2)] == [2]
    assert len(registry.find_functions("users.getUsers", limit=1)) == 1

    (occurrence,) = registry.find_objects("userEmpty")
    assert occurrence.layer_id == 1
    assert occurrence.category == "User"
    assert occurrence.usages == ()


def test_limits_come_from_constructor() -> None:
    text = "\n".join(f"c{i}#{i} = T;" for i in range(5))
    registry = SchemaRegistry.from_layers(
        [RawLayer(layer_id=1, release_date=date(2020, 1, 1), text=text)],
        default_limit=2,
        max_limit=3,
    )
    (match,) = registry.get_types("T")
    assert len(match.objects) == 2
    (match,) = registry.get_types("T", limit=10)
    assert len(match.objects) == 3
