#Purpose: Route computation for downstream use.
#Returns the “best route” information needed by:
#map display / polyline geometry
#distance breakdowns (legs)
#Uses OSRM /route (not /table).
#A missing route is a normal state here: any provider failure becomes None.

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import requests

from .osrm_client import OSRMClient, OSRMError

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RouteLeg:
    distance_m: float
    duration_s: float


@dataclass(frozen=True)
class RouteResult:
    """
    A driving route from the rider through the remaining stops.
    Treated as an opaque payload by the caches.
    """
    polyline: List[LatLon]
    legs: List[RouteLeg] = field(default_factory=list)
    total_distance_m: float = 0.0
    total_duration_s: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "polyline": [{"lat": lat, "lng": lng} for lat, lng in self.polyline],
            "legs": [
                {"distanceMeters": leg.distance_m, "durationSeconds": leg.duration_s}
                for leg in self.legs
            ],
            "totalDistanceMeters": self.total_distance_m,
            "totalDurationSeconds": self.total_duration_s,
        }


class DirectionsService:
    """
    Directions provider backed by OSRM.

    get_route(origin, destination, waypoints) -> RouteResult | None
    """

    def __init__(self, osrm: OSRMClient):
        self.osrm = osrm

    def get_route(
        self,
        origin: LatLon,
        destination: LatLon,
        waypoints: Optional[Sequence[LatLon]] = None,
    ) -> Optional[RouteResult]:
        coordinates = [origin] + list(waypoints or []) + [destination]

        try:
            raw = self.osrm.compute_route_geometry(coordinates)
        except (OSRMError, requests.RequestException, KeyError, TypeError, ValueError) as exc:
            logger.warning("Directions lookup failed for %d points: %s", len(coordinates), exc)
            return None

        if raw is None:
            logger.info("No route found for %d points", len(coordinates))
            return None

        return RouteResult(
            polyline=list(raw["coordinates"]),
            legs=[RouteLeg(distance_m=leg["distance"], duration_s=leg["duration"]) for leg in raw["legs"]],
            total_distance_m=raw["distance"],
            total_duration_s=raw["duration"],
        )
