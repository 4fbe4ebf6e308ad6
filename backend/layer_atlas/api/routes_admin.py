"""Administrative routes for Layer Atlas."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from layer_atlas.api.dependencies import get_layer_fetcher, get_poller
from layer_atlas.api.responses import ok
from layer_atlas.core.metrics import metrics_response
from layer_atlas.ingest.github import LayerFetcher
from layer_atlas.ingest.poller import LayerPoller
from layer_atlas.models.dto import ApiResponse

router = APIRouter()


@router.post("/admin/ingest", response_model=ApiResponse, summary="Fetch new layers from the source repository")
def ingest_layers(fetcher: LayerFetcher = Depends(get_layer_fetcher)) -> ApiResponse:
    stored = fetcher.run()
    return ok({"layers": stored}, f"stored {len(stored)} new layers; restart to reload the catalogue")


@router.get("/admin/ingest/status", response_model=ApiResponse, summary="Background poller state")
async def ingest_status(poller: LayerPoller = Depends(get_poller)) -> ApiResponse:
    return ok({"running": poller.running, "interval_seconds": poller.interval})


@router.get("/metrics", summary="Prometheus metrics")
async def get_metrics():
    return metrics_response()


__all__ = ["router"]
