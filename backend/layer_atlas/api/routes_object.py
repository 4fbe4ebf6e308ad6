"""Object (constructor) lookup and history routes."""

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


@router.post("", response_model=ApiResponse, summary="Find an object by name")
async def get_object(
    request: GetByNameRequest,
    registry: SchemaRegistry = Depends(get_registry),
    engine: HistoryEngine = Depends(get_history_engine),
    search: SearchService = Depends(get_search_service),
) -> ApiResponse:
    limit = registry.clamp_limit(request.limit)
    if request.mode is FetchMode.COMPACT:
        documents = search.index.filter(
            limit=limit,
            name=request.name,
            definition_type=DefinitionType.OBJECT,
            layer_id=request.layer_id,
        )
        result = [
            {"id": document["definition_id"], "name": document["name"], "layer_id": document["layer_id"]}
            for document in documents
        ]
    else:
        result = engine.find_objects(request.name, layer_id=request.layer_id, limit=limit)
    return ok({"result": result}, f"total objects {len(result)}")


@router.post("/namespace", response_model=ApiResponse, summary="Objects in a namespace")
async def get_objects_in_namespace(
    request: GetNamespaceRequest,
    registry: SchemaRegistry = Depends(get_registry),
) -> ApiResponse:
    objects = registry.get_namespace_objects(request.layer_id, request.namespace)
    if objects is None:
        raise not_found("could not find the layer id or namespace")
    return ok({"objects": objects}, f"total objects {len(objects)}")


@router.post("/history", response_model=ApiResponse, summary="Change history of an object")
async def get_object_history(
    request: HistoryRequest,
    engine: HistoryEngine = Depends(get_history_engine),
) -> ApiResponse:
    with HISTORY_LATENCY.labels(definition_type=DefinitionType.OBJECT.value).time():
        history = engine.history(request.name, DefinitionType.OBJECT)
    return ok(history.to_dict())


__all__ = ["router"]
