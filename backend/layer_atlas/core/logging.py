"""Logging utilities for Layer Atlas.

Records about a specific schema layer carry it through ``extra``, built with
:func:`layer_context`::

    logger.warning("Skipping parameter", extra=layer_context(158, token="x"))

The JSON formatter lifts the layer keys to top-level ``layer_id`` and
``latest_layer_id`` fields so every line can be filtered by layer the same
way. Any other ``ctx_*`` extra lands, unprefixed, in a ``ctx`` object.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

import orjson

_DEFAULT_LEVEL = os.environ.get("LATL_LOG_LEVEL", "INFO").upper()
_DEFAULT_FORMAT = os.environ.get("LATL_LOG_FORMAT", "json").lower()

# Chatty third-party loggers kept at WARNING.
_QUIET_LOGGERS = ("urllib3", "requests", "httpx", "watchfiles")

CTX_PREFIX = "ctx_"
# extra key -> top-level field
LAYER_FIELDS = {"ctx_layer_id": "layer_id", "ctx_latest_layer": "latest_layer_id"}


def layer_context(layer_id: int | None = None, *, latest: int | None = None, **fields: Any) -> dict[str, Any]:
    """Build an ``extra`` mapping for a record about one layer."""
    extra = {f"{CTX_PREFIX}{key}": value for key, value in fields.items()}
    if layer_id is not None:
        extra["ctx_layer_id"] = layer_id
    if latest is not None:
        extra["ctx_latest_layer"] = latest
    return extra


class JsonFormatter(logging.Formatter):
    """One JSON object per line: ``ts``, ``level``, ``logger``, ``msg``, layer fields, ``ctx``."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        ctx: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in LAYER_FIELDS:
                payload[LAYER_FIELDS[key]] = value
            elif key.startswith(CTX_PREFIX):
                ctx[key[len(CTX_PREFIX) :]] = value
        if ctx:
            payload["ctx"] = ctx
        if record.exc_info and record.exc_info[0] is not None:
            payload["error"] = {
                "type": record.exc_info[0].__name__,
                "detail": str(record.exc_info[1]),
                "trace": self.formatException(record.exc_info),
            }
        return orjson.dumps(payload, default=str).decode("utf-8")


class TextFormatter(logging.Formatter):
    """Console format; appends ``[layer N]`` when the record names a layer."""

    def __init__(self) -> None:
        super().__init__("[%(asctime)s - %(levelname)s (%(name)s)] %(message)s", "%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        layer_id = getattr(record, "ctx_layer_id", None)
        if layer_id is None:
            return line
        first, newline, rest = line.partition("\n")
        return f"{first} [layer {layer_id}]{newline}{rest}"


def configure_logging(level: str | int = _DEFAULT_LEVEL, use_json: bool | None = None) -> None:
    """Configure the root logger; JSON unless ``LATL_LOG_FORMAT=text``."""
    if use_json is None:
        use_json = _DEFAULT_FORMAT != "text"
    logging.captureWarnings(True)
    root = logging.getLogger()
    root.setLevel(level)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if use_json else TextFormatter())
    root.handlers = [handler]
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str = "layer_atlas") -> logging.Logger:
    """Return configured logger, configuring root on first call."""
    if not logging.getLogger().handlers:
        configure_logging()
    return logging.getLogger(name)


__all__ = ["JsonFormatter", "TextFormatter", "configure_logging", "get_logger", "layer_context"]
