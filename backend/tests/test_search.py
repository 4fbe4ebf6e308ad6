"""Tests for the in-process definition index and search service."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from layer_atlas.core.config import Settings
from layer_atlas.models.dto import SearchLayerRequest
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.schema.types import CompactDefinition, DefinitionType
from layer_atlas.search.index import DefinitionIndex
from layer_atlas.search.service import SearchService


@pytest.fixture
def index(registry: SchemaRegistry) -> DefinitionIndex:
    index = DefinitionIndex()
    index.replace(registry.compact_definitions)
    return index


def test_index_starts_empty() -> None:
    index = DefinitionIndex()
    assert not index.is_ready
    assert index.size == 0
    assert index.search("users").hits == []


def test_replace_marks_ready(index: DefinitionIndex) -> None:
    assert index.is_ready
    assert index.size == 17


def test_filter_by_name_type_and_layer(index: DefinitionIndex) -> None:
    documents = index.filter(name="users.getUsers", definition_type=DefinitionType.FUNCTION)
    assert [document["layer_id"] for document in documents] == [1, 2]

    documents = index.filter(name="users.getUsers", definition_type=DefinitionType.FUNCTION, layer_id=2)
    assert len(documents) == 1
    assert index.filter(limit=3) == list(index.filter())[:3]
    assert index.filter(name="user", definition_type=DefinitionType.FUNCTION) == []


def test_filter_rejects_unknown_attribute(index: DefinitionIndex) -> None:
    with pytest.raises(ValueError):
        index.filter(text="x")


def test_exact_name_ranks_first(index: DefinitionIndex) -> None:
    results = index.search("users.getFullUser")
    assert results.hits[0].document["name"] == "users.getFullUser"
    assert results.hits[0].score == pytest.approx(max(hit.score for hit in results.hits))
    assert results.total_hits >= len(results.hits)


def test_layer_filter_restricts_hits(index: DefinitionIndex) -> None:
    results = index.search("getUsers", layer_id=2)
    assert results.hits
    assert {hit.document["layer_id"] for hit in results.hits} == {2}


def test_highlight_wraps_matches(index: DefinitionIndex) -> None:
    results = index.search("config", attributes=["name"], highlight_pre="<em>", highlight_post="</em>")
    formatted = [hit.formatted["name"] for hit in results.hits]
    assert "help.<em>config</em>" in formatted


def test_search_rejects_unknown_attribute(index: DefinitionIndex) -> None:
    with pytest.raises(ValueError):
        index.search("user", attributes=["layer_id"])


def test_service_shapes_hits(index: DefinitionIndex) -> None:
    service = SearchService(index, Settings())
    response = service.search(SearchLayerRequest(query="  getConfig ", limit=2))
    assert response.query == "getConfig"
    assert 0 < len(response.results) <= 2
    assert response.results[0].formatted_result is None
    assert response.summary().startswith("processed getConfig")
    assert service.ready()
    assert "definition_type" in service.filters()

    highlighted = service.search(
        SearchLayerRequest(query="getConfig", highlight=True, highlight_prefix="[", highlight_postfix="]")
    )
    assert highlighted.results[0].formatted_result is not None


def test_request_normalizes_filter() -> None:
    request = SearchLayerRequest(query="user", filter=[" Name ", "NAMESPACE"])
    assert request.filter == ["name", "namespace"]
    with pytest.raises(ValidationError):
        SearchLayerRequest(query="user", filter=["layer_id"])
    with pytest.raises(ValidationError):
        SearchLayerRequest(query="  u ")


def _thing_corpus(layers: int = 5, per_layer: int = 40) -> list[CompactDefinition]:
    return [
        CompactDefinition(
            id=f"{layer}-{i}",
            layer_id=layer,
            definition_id=f"{layer:02x}{i:06x}",
            name=f"things.getThing{i}",
            namespace="things",
            return_type="things.Thing",
            definition_type=DefinitionType.FUNCTION,
        )
        for layer in range(1, layers + 1)
        for i in range(per_layer)
    ]


def test_common_words_do_not_match_whole_corpus() -> None:
    index = DefinitionIndex()
    index.replace(_thing_corpus())

    results = index.search("getThing7")
    assert results.hits[0].document["name"] == "things.getThing7"
    assert 0 < results.total_hits < index.size // 2

    scoped = index.search("getThing7", layer_id=3)
    assert {hit.document["layer_id"] for hit in scoped.hits} == {3}
    assert scoped.total_hits == results.total_hits // 5


def test_search_reuses_model_built_on_replace(
    index: DefinitionIndex, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _rebuilt(*args, **kwargs):
        raise AssertionError("BM25 model rebuilt during search")

    monkeypatch.setattr("layer_atlas.search.index.BM25Okapi", _rebuilt)
    assert index.search("users.getUsers").hits[0].document["name"] == "users.getUsers"
    assert index.search("getConfig", layer_id=1).hits


def test_unknown_layer_has_no_hits(index: DefinitionIndex) -> None:
    results = index.search("getUsers", layer_id=99)
    assert results.hits == []
    assert results.total_hits == 0
