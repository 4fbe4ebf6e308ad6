"""Type group lookup route."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from layer_atlas.api.dependencies import get_registry
from layer_atlas.api.responses import ok
from layer_atlas.models.dto import ApiResponse, GetByNameRequest
from layer_atlas.schema.registry import SchemaRegistry

router = APIRouter()


@router.post("", response_model=ApiResponse, summary="Constructors of a type group per layer")
async def get_type(
    request: GetByNameRequest,
    registry: SchemaRegistry = Depends(get_registry),
) -> ApiResponse:
    matches = registry.get_types(request.name, layer_id=request.layer_id, mode=request.mode, limit=request.limit)
    return ok({"result": matches}, f"found the type in {len(matches)} layers")


__all__ = ["router"]
