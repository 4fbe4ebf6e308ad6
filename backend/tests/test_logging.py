"""Tests for the project log formatters."""

from __future__ import annotations

import logging
import sys
from datetime import date

import orjson
import pytest

from layer_atlas.core.logging import JsonFormatter, TextFormatter, layer_context
from layer_atlas.models.entities import RawLayer
from layer_atlas.schema.parser import parse_schema


def _record(msg: str = "Fetching layer %s", args: tuple = (158,), **extra) -> logging.LogRecord:
    record = logging.LogRecord("layer_atlas.test", logging.INFO, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


def test_layer_context_prefixes_fields() -> None:
    assert layer_context(158, file="158.tl") == {"ctx_layer_id": 158, "ctx_file": "158.tl"}
    assert layer_context(latest=160) == {"ctx_latest_layer": 160}
    assert layer_context() == {}


def test_json_lifts_layer_fields() -> None:
    line = JsonFormatter().format(_record(**layer_context(158, latest=160, file="158.tl")))
    payload = orjson.loads(line)
    assert payload["msg"] == "Fetching layer 158"
    assert payload["level"] == "info"
    assert payload["logger"] == "layer_atlas.test"
    assert payload["layer_id"] == 158
    assert payload["latest_layer_id"] == 160
    assert payload["ctx"] == {"file": "158.tl"}
    assert "ctx_layer_id" not in payload


def test_json_without_context_has_no_ctx() -> None:
    payload = orjson.loads(JsonFormatter().format(_record()))
    assert "ctx" not in payload
    assert "layer_id" not in payload
    assert payload["ts"].endswith("+00:00")


def test_json_error_field() -> None:
    try:
        raise ValueError("bad tree")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    payload = orjson.loads(JsonFormatter().format(record))
    assert payload["error"]["type"] == "ValueError"
    assert payload["error"]["detail"] == "bad tree"
    assert "Traceback" in payload["error"]["trace"]


def test_text_appends_layer() -> None:
    line = TextFormatter().format(_record(**layer_context(158)))
    assert line.endswith("Fetching layer 158 [layer 158]")
    assert "[layer" not in TextFormatter().format(_record())


def test_parser_warnings_carry_layer_id(caplog: pytest.LogCaptureFixture) -> None:
    raw = RawLayer(layer_id=42, release_date=date(2020, 1, 1), text="noResult#2 a:int\n")
    with caplog.at_level("WARNING"):
        parse_schema(raw)
    (record,) = [record for record in caplog.records if record.levelno == logging.WARNING]
    assert record.ctx_layer_id == 42
