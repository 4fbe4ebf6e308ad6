"""FastAPI application setup for Layer Atlas."""

from __future__ import annotations

import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from layer_atlas.api.dependencies import (
    get_app_settings,
    get_catalogue,
    get_layer_fetcher,
    get_poller,
    get_search_service,
    reset_state,
)
from layer_atlas.api.responses import http_exception_handler, internal_error_handler, not_ready_handler
from layer_atlas.api.routes_admin import router as admin_router
from layer_atlas.api.routes_function import router as function_router
from layer_atlas.api.routes_layer import router as layer_router
from layer_atlas.api.routes_object import router as object_router
from layer_atlas.api.routes_type import router as type_router
from layer_atlas.core.errors import CatalogueNotReady
from layer_atlas.core.logging import configure_logging, get_logger
from layer_atlas.core.metrics import REQUEST_COUNT, REQUEST_LATENCY

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="Layer Atlas",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["GET", "POST"],
    allow_headers=["*"],
)

app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(CatalogueNotReady, not_ready_handler)
app.add_exception_handler(Exception, internal_error_handler)

app.include_router(layer_router, prefix="/api/layer", tags=["layer"])
app.include_router(function_router, prefix="/api/function", tags=["function"])
app.include_router(object_router, prefix="/api/object", tags=["object"])
app.include_router(type_router, prefix="/api/type", tags=["type"])
app.include_router(admin_router, prefix="", tags=["admin"])


@app.middleware("http")
async def record_metrics(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    # Label by route template, never the raw path.
    route = request.scope.get("route")
    endpoint = getattr(route, "path", "unmatched")
    REQUEST_LATENCY.labels(endpoint=endpoint).observe(time.perf_counter() - start_time)
    REQUEST_COUNT.labels(endpoint=endpoint, status=str(response.status_code)).inc()
    return response


@app.on_event("startup")
async def startup() -> None:
    """Fetch pending layers if configured, then build the catalogue."""
    settings = get_app_settings()
    if settings.fetch_on_startup:
        stored = get_layer_fetcher().run()
        logger.info("Fetched %s new layers on startup", len(stored))
    get_catalogue()
    get_search_service()
    if settings.poll_enabled:
        get_poller().start()


@app.on_event("shutdown")
async def shutdown() -> None:
    reset_state()


@app.get("/health", tags=["admin"])
def health() -> dict[str, bool]:
    """Simple liveness check."""
    return {"ok": True}
