"""Layer-level API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from layer_atlas.api.dependencies import get_layer_store, get_registry, get_search_service
from layer_atlas.api.responses import not_found, ok
from layer_atlas.db.sqlite import LayerStore
from layer_atlas.models.dto import ApiResponse, SearchLayerRequest
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.search.service import SearchService

router = APIRouter()


@router.get("/ids", response_model=ApiResponse, summary="Stored layer ids")
async def layer_ids(store: LayerStore = Depends(get_layer_store)) -> ApiResponse:
    ids = sorted(store.get_ids())
    return ok({"layers": ids}, f"there are a total {len(ids)} layers")


@router.get("/dates", response_model=ApiResponse, summary="Release dates, newest first")
async def layer_release_dates(registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    dates = sorted(registry.release_dates(), key=lambda item: item.release_date, reverse=True)
    return ok({"release_dates": dates})


@router.get("/namespaces", response_model=ApiResponse, summary="Namespaces of every layer")
async def get_namespaces(registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    return ok(registry.get_namespaces())


@router.get("/types", response_model=ApiResponse, summary="Type names of every layer")
async def get_types(registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    return ok(registry.get_type_names())


@router.post("/search", response_model=ApiResponse, summary="Search definitions")
async def search_in_layer(
    request: SearchLayerRequest,
    service: SearchService = Depends(get_search_service),
) -> ApiResponse:
    response = service.search(request)
    return ok({"search_results": response.results}, response.summary())


@router.get("/search/filters", response_model=ApiResponse, summary="Filterable attributes")
async def get_search_filters(service: SearchService = Depends(get_search_service)) -> ApiResponse:
    filters = service.filters()
    return ok({"filters": filters}, f"found {len(filters)} filters.")


@router.get("/search/ready", response_model=ApiResponse, summary="Search index readiness")
async def engine_ready(service: SearchService = Depends(get_search_service)) -> ApiResponse:
    return ok({"is_ready": service.ready()})


@router.get("/{layer_id}", response_model=ApiResponse, summary="Full layer snapshot")
async def get_layer(layer_id: int, registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    layer = registry.get_layer(layer_id)
    if layer is None:
        raise not_found(f"layer {layer_id} doesn't exist or it's not loaded yet")
    return ok({"layer": layer})


@router.get("/{layer_id}/compact", response_model=ApiResponse, summary="Compact layer projection")
async def get_compact_layer(layer_id: int, registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    layer = registry.get_compact_layer(layer_id)
    if not layer:
        raise not_found(f"layer {layer_id} doesn't exist or it's not loaded yet")
    return ok({"compact_layer": [definition.to_document() for definition in layer]})


@router.get("/{layer_id}/namespace", response_model=ApiResponse, summary="Namespaces in one layer")
async def get_namespace_in_layer(layer_id: int, registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    return ok(registry.get_namespaces(layer_id))


@router.get("/{layer_id}/type", response_model=ApiResponse, summary="Type names in one layer")
async def types_in_layer(layer_id: int, registry: SchemaRegistry = Depends(get_registry)) -> ApiResponse:
    return ok(registry.get_type_names(layer_id))


__all__ = ["router"]
