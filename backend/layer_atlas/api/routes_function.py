"""Function lookup and history routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from layer_atlas.api.dependencies import get_history_engine, get_registry, get_search_service
from layer_atlas.api.responses import not_found, ok
from layer_atlas.core.metrics import HISTORY_LATENCY
from layer_atlas.models.dto import ApiResponse, GetByNameRequest, GetNamespaceRequest, HistoryRequest
from layer_atlas.schema.history import HistoryEngine
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.schema.types import DefinitionType, FetchMode
from layer_atlas.search.service import SearchService

router = APIRouter()


@router.post("", response_model=ApiResponse, summary="Find a function by name")
async def get_function(
    request: GetByNameRequest,
    registry: SchemaRegistry = Depends(get_registry),
    search: SearchService = Depends(get_search_service),
) -> ApiResponse:
    limit = registry.clamp_limit(request.limit)
    if request.mode is FetchMode.COMPACT:
        result = search.index.filter(
            limit=limit,
            name=request.name,
            definition_type=DefinitionType.FUNCTION,
            layer_id=request.layer_id,
        )
    else:
        result = registry.find_functions(request.name, layer_id=request.layer_id, limit=limit)
    return ok({"result": result}, f"total functions {len(result)}")


@router.post("/namespace", response_model=ApiResponse, summary="Functions in a namespace")
async def get_functions_in_namespace(
    request: GetNamespaceRequest,
    registry: SchemaRegistry = Depends(get_registry),
) -> ApiResponse:
    functions = registry.get_namespace_functions(request.layer_id, request.namespace)
    if functions is None:
        raise not_found("could not find the layer id or namespace")
    return ok({"functions": functions}, f"total functions {len(functions)}")


@router.post("/history", response_model=ApiResponse, summary="Change history of a function")
async def get_function_history(
    request: HistoryRequest,
    engine: HistoryEngine = Depends(get_history_engine),
) -> ApiResponse:
    with HISTORY_LATENCY.labels(definition_type=DefinitionType.FUNCTION.value).time():
        history = engine.history(request.name, DefinitionType.FUNCTION)
    return ok(history.to_dict())


__all__ = ["router"]
