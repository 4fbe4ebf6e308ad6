"""Tests for catalogue assembly."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from layer_atlas.catalogue import build_catalogue
from layer_atlas.core.config import Settings
from layer_atlas.db.sqlite import LayerStore, SQLiteDatabase
from layer_atlas.search.index import DefinitionIndex


@pytest.fixture
def store(tmp_path: Path, raw_layers):
    with SQLiteDatabase(tmp_path / "catalogue.db") as db:
        layer_store = LayerStore(db)
        layer_store.ensure_schema()
        for layer in raw_layers:
            layer_store.add(layer)
        yield layer_store


def test_build_fills_index(store: LayerStore) -> None:
    index = DefinitionIndex()
    catalogue = build_catalogue(store, index, Settings())
    assert catalogue.index is index
    assert index.is_ready
    assert index.size == len(catalogue.registry.compact_definitions)
    assert catalogue.registry.latest_layer_id == 2


def test_build_replaces_stale_index(store: LayerStore) -> None:
    index = DefinitionIndex()
    index.replace([])
    assert index.is_ready and index.size == 0

    build_catalogue(store, index, Settings())
    assert index.size == 17
    assert index.filter(name="help.getConfig", layer_id=2)


def test_legacy_index_section_is_ignored(tmp_path: Path, store: LayerStore) -> None:
    config = tmp_path / "config.yaml"
    config.write_text(yaml.safe_dump({"index": {"replace": False, "search_limit": 4}}))
    settings = Settings.from_yaml(config)
    assert settings.search_limit == 4
    assert not hasattr(settings, "replace_index")

    index = DefinitionIndex()
    build_catalogue(store, index, settings)
    assert index.size == 17
