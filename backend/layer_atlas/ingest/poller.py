"""Background thread running the layer fetcher on a timer."""

from __future__ import annotations

import threading

from layer_atlas.core.logging import get_logger
from layer_atlas.ingest.github import LayerFetcher

logger = get_logger(__name__)


class LayerPoller:
    """Runs ``fetcher.run()`` every ``interval`` seconds until stopped.

    Failures are logged and the next cycle still runs. Layers stored here are
    picked up by the catalogue on the next restart.
    """

    def __init__(self, fetcher: LayerFetcher, interval: float) -> None:
        self.fetcher = fetcher
        self.interval = interval
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self) -> list[int]:
        try:
            return self.fetcher.run()
        except Exception:
            logger.exception("Layer ingestion cycle failed")
            return []

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name="layer-poller", daemon=True)
            self._thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        with self._lock:
            self._stop.set()
            if self._thread is not None:
                self._thread.join(timeout=timeout)
                self._thread = None

    def _loop(self) -> None:
        while not self._stop.wait(self.interval):
            self.run_once()


__all__ = ["LayerPoller"]
