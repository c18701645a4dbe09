from __future__ import annotations

import logging
from threading import Event, Thread

from position_apr.infrastructure.cache.result_cache import ResultCache


DEFAULT_SWEEP_INTERVAL_SECONDS = 300
logger = logging.getLogger(__name__)


class CacheSweeper:
    """Runs `ResultCache.cleanup()` once at start and then on a daemon timer."""

    def __init__(self, cache: ResultCache, *, interval_seconds: float = DEFAULT_SWEEP_INTERVAL_SECONDS):
        self._cache = cache
        self._interval_seconds = interval_seconds
        self._stop = Event()
        self._thread: Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self.sweep()
        self._stop.clear()
        self._thread = Thread(target=self._run, name="cache-sweeper", daemon=True)
        self._thread.start()
        logger.info("cache_sweeper: started interval=%ss", self._interval_seconds)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("cache_sweeper: stopped")

    def sweep(self) -> int:
        try:
            return self._cache.cleanup()
        except Exception as exc:  # noqa: BLE001
            logger.warning("cache_sweeper: cleanup failed error=%s", exc)
            return 0

    def _run(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            self.sweep()
