"""Search orchestration over the definition index."""

from __future__ import annotations

import time

from layer_atlas.core.config import Settings
from layer_atlas.models.dto import DefinitionHit, SearchLayerRequest, SearchResponse
from layer_atlas.search.index import DefinitionIndex, SearchHit


class SearchService:
    """Forwards search requests to the index and reshapes its hits."""

    def __init__(self, index: DefinitionIndex, settings: Settings) -> None:
        self.index = index
        self.settings = settings

    def search(self, request: SearchLayerRequest) -> SearchResponse:
        start_time = time.perf_counter()
        results = self.index.search(
            request.query,
            layer_id=request.layer_id,
            attributes=request.filter or None,
            limit=request.limit or self.settings.search_limit,
            highlight_pre=request.highlight_prefix or "",
            highlight_post=request.highlight_postfix or "",
        )
        elapsed_ms = int((time.perf_counter() - start_time) * 1000)
        return SearchResponse(
            results=[_to_hit(hit, request.highlight) for hit in results.hits],
            process_time_ms=elapsed_ms,
            total_hits=results.total_hits,
            query=results.query,
        )

    def filters(self) -> list[str]:
        return self.index.filterable_attributes

    def ready(self) -> bool:
        return self.index.is_ready


def _to_hit(hit: SearchHit, highlight: bool) -> DefinitionHit:
    document = hit.document
    return DefinitionHit(
        ranking_score=hit.score,
        layer_id=document["layer_id"],
        definition_id=document["definition_id"],
        name=document["name"],
        namespace=document["namespace"],
        return_type=document["return_type"],
        definition_type=document["definition_type"],
        formatted_result=hit.formatted if highlight else None,
    )


__all__ = ["SearchService"]
