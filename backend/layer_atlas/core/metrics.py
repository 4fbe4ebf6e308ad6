"""Prometheus metrics instrumentation."""

from __future__ import annotations

from fastapi import Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

REGISTRY = CollectorRegistry()

REQUEST_COUNT = Counter(
    "latl_requests_total",
    "Total API requests",
    labelnames=("endpoint", "status"),
    registry=REGISTRY,
)

REQUEST_LATENCY = Histogram(
    "latl_request_latency_seconds",
    "Latency of API requests",
    labelnames=("endpoint",),
    registry=REGISTRY,
)

HISTORY_LATENCY = Histogram(
    "latl_history_seconds",
    "Time spent reconstructing a definition history",
    labelnames=("definition_type",),
    registry=REGISTRY,
)

CATALOGUE_LAYERS = Gauge(
    "latl_catalogue_layers",
    "Number of parsed layers in the catalogue",
    registry=REGISTRY,
)

CATALOGUE_DEFINITIONS = Gauge(
    "latl_catalogue_definitions",
    "Number of compact definitions in the catalogue",
    registry=REGISTRY,
)

LAYERS_INGESTED = Counter(
    "latl_layers_ingested_total",
    "Layers fetched from the source repository and stored",
    registry=REGISTRY,
)


def metrics_response() -> Response:
    """Return Prometheus metrics as an HTTP response."""
    payload = generate_latest(REGISTRY)
    return Response(content=payload, media_type=CONTENT_TYPE_LATEST)


__all__ = [
    "REGISTRY",
    "REQUEST_COUNT",
    "REQUEST_LATENCY",
    "HISTORY_LATENCY",
    "CATALOGUE_LAYERS",
    "CATALOGUE_DEFINITIONS",
    "LAYERS_INGESTED",
    "metrics_response",
]
