"""Exception types raised outside the pure schema core."""

from __future__ import annotations


class LayerAtlasError(Exception):
    """Base class for Layer Atlas failures."""


class IngestError(LayerAtlasError):
    """Fetching layers from the source repository failed."""


class CatalogueNotReady(LayerAtlasError):
    """A query arrived before the catalogue finished building."""


__all__ = ["LayerAtlasError", "IngestError", "CatalogueNotReady"]
