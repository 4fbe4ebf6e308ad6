"""CLI entrypoint for Layer Atlas."""

from __future__ import annotations

import json
import os
from typing import Optional

import requests
import typer

from layer_atlas.core.config import get_settings
from layer_atlas.core.errors import IngestError
from layer_atlas.core.logging import configure_logging
from layer_atlas.db.sqlite import LayerStore, SQLiteDatabase
from layer_atlas.ingest.github import LayerFetcher

app = typer.Typer(name="latl", help="Layer Atlas command-line interface")

DEFAULT_HOST = "http://127.0.0.1:8000"


def _resolve_host(override: Optional[str]) -> str:
    if override:
        return override.rstrip('/')
    env_host = os.environ.get("LATL_HOST")
    if env_host:
        return env_host.rstrip('/')
    return DEFAULT_HOST


def _request(method: str, path: str, host: Optional[str] = None, **kwargs) -> requests.Response:
    base = _resolve_host(host)
    url = f"{base}{path}"
    resp = requests.request(method, url, timeout=60, **kwargs)
    if not resp.ok:
        try:
            detail = resp.json().get("message")
        except ValueError:
            detail = resp.text
        typer.echo(f"Request failed ({resp.status_code}): {detail}", err=True)
        raise typer.Exit(code=1)
    return resp


def _echo(resp: requests.Response) -> None:
    typer.echo(json.dumps(resp.json(), indent=2))


def _by_name(name: str, layer: Optional[int], mode: str, limit: Optional[int]) -> dict[str, object]:
    body: dict[str, object] = {"name": name, "mode": mode}
    if layer is not None:
        body["layer_id"] = layer
    if limit is not None:
        body["limit"] = limit
    return body


@app.command()
def layers(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List stored layer ids."""
    _echo(_request("GET", "/api/layer/ids", host=host))


@app.command()
def dates(
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List layer release dates, newest first."""
    _echo(_request("GET", "/api/layer/dates", host=host))


@app.command()
def function(
    name: str = typer.Argument(..., help="Function name, e.g. users.getUsers"),
    layer: Optional[int] = typer.Option(None, "--layer", help="Restrict to one layer"),
    mode: str = typer.Option("compact", "--mode", help="compact or full"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of results"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Look up a function by name."""
    _echo(_request("POST", "/api/function", host=host, json=_by_name(name, layer, mode, limit)))


@app.command("object")
def object_(
    name: str = typer.Argument(..., help="Constructor name, e.g. inputPeerUser"),
    layer: Optional[int] = typer.Option(None, "--layer", help="Restrict to one layer"),
    mode: str = typer.Option("compact", "--mode", help="compact or full"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of results"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Look up an object constructor by name."""
    _echo(_request("POST", "/api/object", host=host, json=_by_name(name, layer, mode, limit)))


@app.command("type")
def type_(
    name: str = typer.Argument(..., help="Type name, e.g. InputPeer"),
    layer: Optional[int] = typer.Option(None, "--layer", help="Restrict to one layer"),
    mode: str = typer.Option("compact", "--mode", help="compact or full"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of results"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """List the constructors of a type per layer."""
    _echo(_request("POST", "/api/type", host=host, json=_by_name(name, layer, mode, limit)))


@app.command()
def history(
    name: str = typer.Argument(..., help="Function or constructor name"),
    as_object: bool = typer.Option(False, "--object", help="Treat NAME as an object constructor"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Show how a definition changed across layers."""
    path = "/api/object/history" if as_object else "/api/function/history"
    _echo(_request("POST", path, host=host, json={"name": name}))


@app.command()
def search(
    query: str = typer.Argument(..., help="Search text"),
    layer: Optional[int] = typer.Option(None, "--layer", help="Restrict to one layer"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of hits"),
    host: Optional[str] = typer.Option(None, "--host", help="Override backend host"),
) -> None:
    """Search definitions by name, namespace or return type."""
    body: dict[str, object] = {"query": query}
    if layer is not None:
        body["layer_id"] = layer
    if limit is not None:
        body["limit"] = limit
    _echo(_request("POST", "/api/layer/search", host=host, json=body))


@app.command()
def fetch() -> None:
    """Fetch new layers into the configured database without a running server."""
    configure_logging()
    settings = get_settings()
    with SQLiteDatabase(settings.db_path) as db:
        store = LayerStore(db)
        store.ensure_schema()
        fetcher = LayerFetcher(store, settings)
        try:
            stored = fetcher.run()
        except IngestError as exc:
            typer.echo(f"Fetch failed: {exc}", err=True)
            raise typer.Exit(code=1) from exc
        finally:
            fetcher.close()
    typer.echo(json.dumps({"stored": stored}))


if __name__ == "__main__":
    app()
