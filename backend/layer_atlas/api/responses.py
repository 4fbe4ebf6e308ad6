"""``{"message", "data"}`` response envelope helpers."""

from __future__ import annotations

from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from layer_atlas.core.errors import CatalogueNotReady
from layer_atlas.core.logging import get_logger
from layer_atlas.models.dto import ApiResponse

logger = get_logger(__name__)


def ok(data: Any = None, message: str = "") -> ApiResponse:
    return ApiResponse(message=message, data=jsonable_encoder(data))


def not_found(message: str) -> HTTPException:
    return HTTPException(status_code=404, detail=message)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": str(exc.detail), "data": None},
        headers=getattr(exc, "headers", None),
    )


async def not_ready_handler(request: Request, exc: CatalogueNotReady) -> JSONResponse:
    logger.error("Catalogue unavailable for %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"message": str(exc), "data": None})


async def internal_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": str(exc), "data": None})


__all__ = ["ok", "not_found", "http_exception_handler", "not_ready_handler", "internal_error_handler"]
