"""
Purpose: Last computed driving route per active trip.
What it does:
- put() stores a route with the rider origin and stop count it was built for
- get_if_valid() hands it back only while it is still a faithful answer:
    age < route_max_age_seconds
    haversine(origin, current origin) < route_max_displacement_km
    stop count unchanged
- invalidate() drops it when the stop set changes (a delivery was confirmed)
- sweep() garbage-collects entries older than route_cache_ttl_seconds

Saves a paid directions call on every customer poll while the rider has
barely moved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from routing.geo import haversine_km
from routing.route_service import RouteResult
from trips.models import utcnow

from .policy import TrackingPolicy, default_tracking_policy

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteCacheEntry:
    result: RouteResult
    origin_lat: float
    origin_lng: float
    stop_count: int
    cached_at: datetime


class RouteCache:
    def __init__(self, policy: Optional[TrackingPolicy] = None, clock: Callable[[], datetime] = utcnow):
        self.policy = policy or default_tracking_policy()
        self.clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, RouteCacheEntry] = {}

    def is_valid(self, entry: RouteCacheEntry, origin: LatLon, stop_count: int, now: Optional[datetime] = None) -> bool:
        age_s = ((now or self.clock()) - entry.cached_at).total_seconds()
        if age_s >= self.policy.route_max_age_seconds:
            return False
        if entry.stop_count != stop_count:
            return False
        moved_km = haversine_km((entry.origin_lat, entry.origin_lng), origin)
        return moved_km < self.policy.route_max_displacement_km

    def get_if_valid(self, trip_id: str, origin: LatLon, stop_count: int) -> Optional[RouteResult]:
        with self._lock:
            entry = self._entries.get(trip_id)
        if entry is None or not self.is_valid(entry, origin, stop_count):
            return None
        return entry.result

    def put(self, trip_id: str, result: RouteResult, origin: LatLon, stop_count: int) -> RouteCacheEntry:
        entry = RouteCacheEntry(
            result=result,
            origin_lat=origin[0],
            origin_lng=origin[1],
            stop_count=stop_count,
            cached_at=self.clock(),
        )
        with self._lock:
            self._entries[trip_id] = entry
        return entry

    def peek(self, trip_id: str) -> Optional[RouteCacheEntry]:
        """Raw entry, valid or not."""
        with self._lock:
            return self._entries.get(trip_id)

    def invalidate(self, trip_id: str) -> None:
        with self._lock:
            self._entries.pop(trip_id, None)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Remove entries older than the cache TTL. Returns how many were removed."""
        cutoff = (now or self.clock()) - timedelta(seconds=self.policy.route_cache_ttl_seconds)
        with self._lock:
            stale = [trip_id for trip_id, entry in self._entries.items() if entry.cached_at < cutoff]
            for trip_id in stale:
                del self._entries[trip_id]
        if stale:
            logger.debug("Evicted %d cached route(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
