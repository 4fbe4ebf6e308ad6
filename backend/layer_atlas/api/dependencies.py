"""Shared FastAPI dependencies."""

from __future__ import annotations

from functools import lru_cache

from layer_atlas.catalogue import Catalogue, build_catalogue
from layer_atlas.core.config import Settings, get_settings
from layer_atlas.core.errors import CatalogueNotReady
from layer_atlas.db.sqlite import LayerStore, SQLiteDatabase
from layer_atlas.ingest.github import LayerFetcher
from layer_atlas.ingest.poller import LayerPoller
from layer_atlas.schema.history import HistoryEngine
from layer_atlas.schema.registry import SchemaRegistry
from layer_atlas.search.index import DefinitionIndex
from layer_atlas.search.service import SearchService

_DB: SQLiteDatabase | None = None
_STORE: LayerStore | None = None
_CATALOGUE: Catalogue | None = None
_SEARCH_SERVICE: SearchService | None = None
_POLLER: LayerPoller | None = None
_FETCHER: LayerFetcher | None = None
_FETCHER_DB: SQLiteDatabase | None = None


@lru_cache(maxsize=1)
def get_app_settings() -> Settings:
    return get_settings()


def get_database() -> SQLiteDatabase:
    global _DB
    if _DB is None:
        _DB = SQLiteDatabase(get_app_settings().db_path)
    return _DB


def get_layer_store() -> LayerStore:
    global _STORE
    if _STORE is None:
        store = LayerStore(get_database())
        store.ensure_schema()
        _STORE = store
    return _STORE


def get_catalogue() -> Catalogue:
    """Build the catalogue on first use; nothing is published if the build fails."""
    global _CATALOGUE
    if _CATALOGUE is None:
        try:
            _CATALOGUE = build_catalogue(get_layer_store(), DefinitionIndex(), get_app_settings())
        except Exception as exc:
            raise CatalogueNotReady(f"catalogue build failed: {exc}") from exc
    return _CATALOGUE


def get_registry() -> SchemaRegistry:
    return get_catalogue().registry


def get_history_engine() -> HistoryEngine:
    return get_catalogue().history


def get_search_service() -> SearchService:
    global _SEARCH_SERVICE
    if _SEARCH_SERVICE is None:
        _SEARCH_SERVICE = SearchService(get_catalogue().index, get_app_settings())
    return _SEARCH_SERVICE


def get_layer_fetcher() -> LayerFetcher:
    """Shared fetcher for the admin route, startup fetch and poller."""
    global _FETCHER, _FETCHER_DB
    if _FETCHER is None:
        settings = get_app_settings()
        # Own connection: the fetcher may run on the poller thread.
        database = SQLiteDatabase(settings.db_path)
        store = LayerStore(database)
        store.ensure_schema()
        _FETCHER_DB = database
        _FETCHER = LayerFetcher(store, settings)
    return _FETCHER


def get_poller() -> LayerPoller:
    global _POLLER
    if _POLLER is None:
        _POLLER = LayerPoller(get_layer_fetcher(), get_app_settings().poll_interval_seconds)
    return _POLLER


def reset_state() -> None:
    """Drop every cached singleton; used on shutdown and by tests."""
    global _DB, _STORE, _CATALOGUE, _SEARCH_SERVICE, _POLLER, _FETCHER, _FETCHER_DB
    if _POLLER is not None:
        _POLLER.stop()
    if _FETCHER is not None:
        _FETCHER.close()
    if _FETCHER_DB is not None:
        _FETCHER_DB.close()
    if _DB is not None:
        _DB.close()
    get_app_settings.cache_clear()
    get_settings.cache_clear()
    _DB = None
    _STORE = None
    _CATALOGUE = None
    _SEARCH_SERVICE = None
    _POLLER = None
    _FETCHER = None
    _FETCHER_DB = None


__all__ = [
    "get_app_settings",
    "get_database",
    "get_layer_store",
    "get_catalogue",
    "get_registry",
    "get_history_engine",
    "get_search_service",
    "get_layer_fetcher",
    "get_poller",
    "reset_state",
]
