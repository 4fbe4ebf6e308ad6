"""Fetch new layer files from the GitHub repository that publishes them."""

from __future__ import annotations

import threading
from datetime import datetime
from typing import Any

import requests

from layer_atlas.core.config import Settings
from layer_atlas.core.errors import IngestError
from layer_atlas.core.logging import get_logger, layer_context
from layer_atlas.core.metrics import LAYERS_INGESTED
from layer_atlas.db.sqlite import LayerStore
from layer_atlas.models.entities import RawLayer

logger = get_logger(__name__)

USER_AGENT = "layer-atlas/0.1 (+https://github.com)"
LAYER_SUFFIX = ".tl"


def parse_layer_filename(path: str) -> int | None:
    """``158.tl`` -> 158; anything else (``api.tl``, ``unknown.tl``) -> None."""
    if not path.endswith(LAYER_SUFFIX) or "unknown" in path:
        return None
    stem = path.split(".")[0].strip()
    return int(stem) if stem.isdigit() else None


class LayerFetcher:
    """Stores every ``<layer>.tl`` file of the configured repository not yet in the store.

    The release month of a layer is the month of the latest commit touching
    its file. Network and payload errors raise :class:`IngestError`. Runs are
    serialised, so the poller thread and the admin route can share one
    fetcher.
    """

    def __init__(
        self,
        store: LayerStore,
        settings: Settings,
        session: requests.Session | None = None,
    ) -> None:
        self.store = store
        self.settings = settings
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": USER_AGENT, "Accept": "application/vnd.github+json"})
        if settings.github_token:
            self.session.headers["Authorization"] = f"Bearer {settings.github_token}"
        self._run_lock = threading.Lock()

    @property
    def _repo_api(self) -> str:
        return f"{self.settings.github_api}/repos/{self.settings.source_owner}/{self.settings.source_repo}"

    def run(self) -> list[int]:
        with self._run_lock:
            return self._run()

    def close(self) -> None:
        self.session.close()

    def _run(self) -> list[int]:
        existing = set(self.store.get_ids())
        commit = self._latest_commit()
        try:
            commit_sha = commit["sha"]
            root_tree_sha = commit["commit"]["tree"]["sha"]
        except (KeyError, TypeError) as exc:
            raise IngestError("failed to parse the latest commit") from exc

        root = self._get_tree(root_tree_sha)
        schemes = next((entry for entry in root if entry.get("path") == self.settings.schemes_path), None)
        if schemes is None:
            raise IngestError(f"failed to find {self.settings.schemes_path} tree")

        stored: list[int] = []
        for entry in self._get_tree(schemes["sha"]):
            path = entry.get("path", "")
            layer_id = parse_layer_filename(path)
            if layer_id is None or layer_id in existing:
                continue
            logger.info("Fetching layer %s", layer_id, extra=layer_context(layer_id, file=path))
            year, month = self._release_month(path)
            text = self._get(
                f"{self.settings.github_raw}/{self.settings.source_owner}/{self.settings.source_repo}"
                f"/{commit_sha}/{self.settings.schemes_path}/{path}"
            ).text
            self.store.add(RawLayer.from_month(layer_id, year, month, text))
            LAYERS_INGESTED.inc()
            stored.append(layer_id)
        logger.info(
            "Ingestion finished, %s new layers",
            len(stored),
            extra=layer_context(latest=max(stored, default=None), stored=stored),
        )
        return stored

    def _latest_commit(self) -> dict[str, Any]:
        commits = self._get_json(
            f"{self._repo_api}/commits",
            params={"sha": self.settings.source_branch, "per_page": 1},
        )
        if not isinstance(commits, list) or not commits:
            raise IngestError(f"no commits found on {self.settings.source_branch}")
        return commits[0]

    def _get_tree(self, sha: str) -> list[dict[str, Any]]:
        payload = self._get_json(f"{self._repo_api}/git/trees/{sha}")
        tree = payload.get("tree") if isinstance(payload, dict) else None
        if not isinstance(tree, list):
            raise IngestError(f"failed to parse tree {sha}")
        return tree

    def _release_month(self, filename: str) -> tuple[int, int]:
        details = self._get_json(
            f"{self._repo_api}/commits",
            params={"path": f"{self.settings.schemes_path}/{filename}"},
        )
        try:
            raw_date = details[0]["commit"]["committer"]["date"]
            committed = datetime.fromisoformat(raw_date.replace("Z", "+00:00"))
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            logger.error("Failed to parse the commit detail for %s", filename, extra=layer_context(file=filename))
            raise IngestError(f"failed to parse commit detail for {filename}") from exc
        return committed.year, committed.month

    def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        response = self._get(url, params=params)
        try:
            return response.json()
        except ValueError as exc:
            raise IngestError(f"invalid JSON from {url}") from exc

    def _get(self, url: str, params: dict[str, Any] | None = None) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.settings.http_timeout)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise IngestError(f"request to {url} failed: {exc}") from exc
        return response


__all__ = ["LayerFetcher", "parse_layer_filename"]
