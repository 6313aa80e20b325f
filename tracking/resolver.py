"""
Purpose: "Show me the route to my delivery."
What it does:
Given a trip, builds origin / waypoints / destination from the rider's last
position and the stops still out for delivery, reuses the cached route while
it is valid, otherwise asks the directions provider once and caches the answer.

No route is a normal answer (None): rider offline, nothing left to deliver,
provider down or timing out. Nothing here retries; the next poll will.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from routing.route_service import RouteResult
from trips.models import OrderStatus, TripOrder
from trips.store import TripStore, by_delivery_sequence

from .location_store import LocationStore
from .route_cache import RouteCache

LatLon = Tuple[float, float]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoutePlan:
    origin: LatLon
    destination: LatLon
    waypoints: List[LatLon]

    @property
    def stop_count(self) -> int:
        return len(self.waypoints) + 1


def remaining_stops(orders: Sequence[TripOrder]) -> List[TripOrder]:
    """Orders still out for delivery that have coordinates, in delivery sequence."""
    stops = [
        order for order in orders
        if order.status == OrderStatus.OUT_FOR_DELIVERY and order.delivery_coordinates is not None
    ]
    stops.sort(key=by_delivery_sequence)
    return stops


def build_route_plan(origin: LatLon, stops: Sequence[TripOrder]) -> Optional[RoutePlan]:
    """
    Last stop is the destination, every stop before it is a waypoint in order.
    """
    if not stops:
        return None
    return RoutePlan(
        origin=origin,
        destination=stops[-1].delivery_coordinates,
        waypoints=[stop.delivery_coordinates for stop in stops[:-1]],
    )


class RouteResolver:
    def __init__(self, store: TripStore, locations: LocationStore, routes: RouteCache, directions):
        self.store = store
        self.locations = locations
        self.routes = routes
        self.directions = directions #anything with get_route(origin, destination, waypoints)

    def resolve(self, trip_id: str) -> Optional[RouteResult]:
        rider_location = self.locations.get(trip_id)
        if rider_location is None:
            return None

        stops = remaining_stops(self.store.list_trip_orders(trip_id, OrderStatus.OUT_FOR_DELIVERY))
        plan = build_route_plan(rider_location.coordinates, stops)
        if plan is None:
            return None

        cached = self.routes.get_if_valid(trip_id, plan.origin, plan.stop_count)
        if cached is not None:
            return cached

        result = self.directions.get_route(plan.origin, plan.destination, plan.waypoints or None)
        if result is None:
            return None

        self.routes.put(trip_id, result, plan.origin, plan.stop_count)
        logger.debug("Cached fresh route for trip %s (%d stops)", trip_id, plan.stop_count)
        return result
