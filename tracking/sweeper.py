"""
Purpose: Owned background task that evicts stale cache entries.
What it does:
Every sweep_interval_seconds, calls sweep() on the location store and the
route cache. Started once at app init and stopped at shutdown; tests skip the
thread and call run_once() (or the stores' sweep()) with their own clock.
"""

import logging
import threading
from typing import Optional

from .location_store import LocationStore
from .policy import TrackingPolicy, default_tracking_policy
from .route_cache import RouteCache

logger = logging.getLogger(__name__)


class CacheSweeper:
    def __init__(
        self,
        locations: LocationStore,
        routes: RouteCache,
        policy: Optional[TrackingPolicy] = None,
    ):
        self.locations = locations
        self.routes = routes
        self.policy = policy or default_tracking_policy()
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def run_once(self):
        """One eviction pass. Returns (locations_removed, routes_removed)."""
        return self.locations.sweep(), self.routes.sweep()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="tracking-cache-sweeper", daemon=True)
        self._thread.start()
        logger.info("Cache sweeper started (every %ss)", self.policy.sweep_interval_seconds)

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("Cache sweeper stopped")

    def _loop(self) -> None:
        # wait() returns True once stop() is called
        while not self._stop.wait(self.policy.sweep_interval_seconds):
            try:
                self.run_once()
            except Exception:
                logger.exception("Cache sweep failed")
