"""Startup assembly of the read-only catalogue."""

from __future__ import annotations

import time
from dataclasses import dataclass

from layer_atlas.core.config import Settings
from layer_atlas.core.logging import get_logger, layer_context
from layer_atlas.core.metrics import CATALOGUE_DEFINITIONS, CATALOGUE_LAYERS
from layer_atlas.db.sqlite import LayerStore
from layer_atlas.schema.history import HistoryEngine
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.search.index import DefinitionIndex

logger = get_logger(__name__)


@dataclass(slots=True, frozen=True)
class Catalogue:
    registry: SchemaRegistry
    history: HistoryEngine
    index: DefinitionIndex


def build_catalogue(store: LayerStore, index: DefinitionIndex, settings: Settings) -> Catalogue:
    """Parse every stored layer and populate the index.

    Any failure propagates; the caller publishes the result only on success.
    """
    start_time = time.perf_counter()
    layers = store.get_all()
    registry = SchemaRegistry.from_layers(
        layers,
        default_limit=settings.default_limit,
        max_limit=settings.max_limit,
    )
    index.replace(registry.compact_definitions)

    CATALOGUE_LAYERS.set(len(registry.schemas))
    CATALOGUE_DEFINITIONS.set(len(registry.compact_definitions))
    logger.info(
        "Catalogue built from %s layers in %.2fs",
        len(layers),
        time.perf_counter() - start_time,
        extra=layer_context(latest=registry.latest_layer_id, layers=len(layers)),
    )
    return Catalogue(registry=registry, history=HistoryEngine(registry), index=index)


__all__ = ["Catalogue", "build_catalogue"]
