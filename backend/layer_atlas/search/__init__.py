"""Search index over compact definitions."""

from .index import FILTERABLE_ATTRIBUTES, SEARCHABLE_ATTRIBUTES, DefinitionIndex, SearchHit, SearchResults

__all__ = [
    "DefinitionIndex",
    "SearchHit",
    "SearchResults",
    "FILTERABLE_ATTRIBUTES",
    "SEARCHABLE_ATTRIBUTES",
]
