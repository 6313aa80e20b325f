"""
Purpose: Last known rider position per active trip.
What it does:
- record / get / clear one RiderLocation per trip (last write wins, no merging)
- sweep() drops positions nobody refreshed for location_ttl_seconds

Process-local. A multi-instance deployment needs a shared store behind the
same get/record/clear/sweep surface.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from trips.models import utcnow

from .policy import TrackingPolicy, default_tracking_policy

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RiderLocation:
    trip_id: str
    rider_id: str
    lat: float
    lng: float
    heading: Optional[float] = None
    speed: Optional[float] = None
    updated_at: Optional[datetime] = None

    @property
    def coordinates(self):
        return (self.lat, self.lng)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "tripId": self.trip_id,
            "riderId": self.rider_id,
            "lat": self.lat,
            "lng": self.lng,
            "heading": self.heading,
            "speed": self.speed,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }


class LocationStore:
    def __init__(self, policy: Optional[TrackingPolicy] = None, clock: Callable[[], datetime] = utcnow):
        self.policy = policy or default_tracking_policy()
        self.clock = clock
        self._lock = threading.Lock()
        self._locations: Dict[str, RiderLocation] = {}

    def record(
        self,
        trip_id: str,
        rider_id: str,
        lat: float,
        lng: float,
        heading: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> RiderLocation:
        """
        Overwrite the trip's position. Coordinates are stored as given:
        the caller has already checked the rider owns an in-progress trip.
        """
        location = RiderLocation(
            trip_id=trip_id,
            rider_id=rider_id,
            lat=lat,
            lng=lng,
            heading=heading,
            speed=speed,
            updated_at=self.clock(),
        )
        with self._lock:
            self._locations[trip_id] = location
        return location

    def get(self, trip_id: str) -> Optional[RiderLocation]:
        with self._lock:
            return self._locations.get(trip_id)

    def clear(self, trip_id: str) -> None:
        with self._lock:
            self._locations.pop(trip_id, None)

    def sweep(self, now: Optional[datetime] = None) -> int:
        """Remove positions older than the TTL. Returns how many were removed."""
        cutoff = (now or self.clock()) - timedelta(seconds=self.policy.location_ttl_seconds)
        with self._lock:
            stale = [trip_id for trip_id, loc in self._locations.items() if loc.updated_at < cutoff]
            for trip_id in stale:
                del self._locations[trip_id]
        if stale:
            logger.debug("Dropped %d stale rider location(s)", len(stale))
        return len(stale)

    def __len__(self) -> int:
        with self._lock:
            return len(self._locations)
