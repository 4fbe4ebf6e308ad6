"""API integration tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from layer_atlas.app import app
from layer_atlas.db.sqlite import LayerStore, SQLiteDatabase


@pytest.fixture
def client(raw_layers) -> TestClient:
    with SQLiteDatabase(Path(os.environ["LATL_DB_PATH"])) as db:
        store = LayerStore(db)
        store.ensure_schema()
        for layer in raw_layers:
            store.add(layer)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["ok"] is True


def test_layer_listing(client: TestClient) -> None:
    resp = client.get("/api/layer/ids")
    assert resp.status_code == 200
    assert resp.json() == {"message": "there are a total 2 layers", "data": {"layers": [1, 2]}}

    dates = client.get("/api/layer/dates").json()["data"]["release_dates"]
    assert dates[0] == {"layer_id": 2, "release_date": "2016-07-01"}

    namespaces = client.get("/api/layer/1/namespace").json()["data"]
    assert namespaces == [{"layer_id": 1, "function_ns": ["users", "Others"], "object_ns": ["help"]}]
    assert len(client.get("/api/layer/types").json()["data"]) == 2


def test_layer_snapshot_and_absence(client: TestClient) -> None:
    layer = client.get("/api/layer/1").json()["data"]["layer"]
    assert layer["layer_id"] == 1
    assert list(layer["functions"]) == ["users", "Others"]

    compact = client.get("/api/layer/2/compact").json()["data"]["compact_layer"]
    assert len(compact) == 8

    missing = client.get("/api/layer/99")
    assert missing.status_code == 404
    assert missing.json()["data"] is None
    assert client.get("/api/layer/99/compact").status_code == 404


def test_search_routes(client: TestClient) -> None:
    resp = client.post("/api/layer/search", json={"query": "getFullUser", "layer_id": 2})
    assert resp.status_code == 200
    results = resp.json()["data"]["search_results"]
    assert results[0]["name"] == "users.getFullUser"
    assert {item["layer_id"] for item in results} == {2}

    assert client.get("/api/layer/search/ready").json()["data"] == {"is_ready": True}
    assert "name" in client.get("/api/layer/search/filters").json()["data"]["filters"]
    assert client.post("/api/layer/search", json={"query": "user", "filter": ["text"]}).status_code == 422


def test_function_lookup(client: TestClient) -> None:
    compact = client.post("/api/function", json={"name": " users.getUsers "}).json()
    assert compact["message"] == "total functions 2"
    assert {item["definition_type"] for item in compact["data"]["result"]} == {"Function"}

    full = client.post("/api/function", json={"name": "users.getUsers", "mode": "full", "layer_id": 2}).json()
    (occurrence,) = full["data"]["result"]
    assert occurrence["function"]["inner_return_type"] == "User"

    assert client.post("/api/function", json={"name": "ab"}).status_code == 422


def test_function_namespace(client: TestClient) -> None:
    resp = client.post("/api/function/namespace", json={"layer_id": 1, "namespace": "users"})
    assert len(resp.json()["data"]["functions"]) == 2

    missing = client.post("/api/function/namespace", json={"layer_id": 1, "namespace": "nothing"})
    assert missing.status_code == 404
    assert missing.json()["message"] == "could not find the layer id or namespace"


def test_function_history(client: TestClient) -> None:
    payload = client.post("/api/function/history", json={"name": "users.getFullUser"}).json()["data"]
    assert payload["kind"] == "Function"
    assert payload["history"] == [
        {"type": "AddedIn", "layer_id": 1},
        {"type": "ReturnTypeChanged", "layer_id": 2, "before": "UserFull", "after": "users.UserFull"},
    ]
    assert payload["last_definition"]["layer_id"] == 2

    empty = client.post("/api/function/history", json={"name": "nothing"}).json()["data"]
    assert empty["kind"] == "Empty"


def test_object_lookup_and_history(client: TestClient) -> None:
    compact = client.post("/api/object", json={"name": "user"}).json()["data"]["result"]
    assert compact == [
        {"id": "2e13f4c3", "name": "user", "layer_id": 1},
        {"id": "3ff6ecb0", "name": "user", "layer_id": 2},
    ]

    full = client.post("/api/object", json={"name": "user", "mode": "full", "layer_id": 1}).json()
    (occurrence,) = full["data"]["result"]
    assert occurrence["category"] == "User"
    assert {"ViaNamespace"} == {usage["kind"] for usage in occurrence["usages"]}

    objects = client.post("/api/object/namespace", json={"layer_id": 2, "namespace": "help"}).json()
    assert objects["data"]["objects"][0]["name"] == "help.config"

    history = client.post("/api/object/history", json={"name": "userEmpty"}).json()["data"]["history"]
    assert history[-1] == {"type": "DeletedIn", "layer_id": 1}


def test_type_lookup(client: TestClient) -> None:
    compact = client.post("/api/type", json={"name": "InputPeer", "limit": 1}).json()["data"]["result"]
    assert [len(item["objects"]) for item in compact] == [1, 1]

    full = client.post("/api/type", json={"name": "InputPeer", "mode": "full"}).json()["data"]["result"]
    assert full[1]["objects"][1]["parameters"][0]["type"] == "long"


def test_admin_routes(client: TestClient) -> None:
    client.get("/health")
    metrics = client.get("/metrics")
    assert metrics.status_code == 200
    assert "latl_requests_total" in metrics.text
    assert "latl_catalogue_layers 2.0" in metrics.text

    status = client.get("/admin/ingest/status").json()["data"]
    assert status["running"] is False
