"""
Purpose: Orchestrator for live trip tracking (the "glue").
What it does:
One method per tracking endpoint. Each checks access, talks to the trip store,
the location store, the route cache / resolver and the realtime hub, and
returns JSON-shaped data for the HTTP layer.

Delivery confirmation is the only path that changes trip / order state
(trips/state_machine.py); what happens after its commit (clearing the rider
position, publishing, invalidating the cached route) is best-effort. A failure
there is logged and never undoes the delivery: a missed cache invalidation
heals itself at the next staleness check.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from routing.route_service import RouteResult
from trips import state_machine
from trips.errors import Forbidden, InvalidRequest, InvalidState, NotFound
from trips.models import DeliveryOutcome, OrderStatus, RiderProfile, Trip, TripOrder, TripStatus, utcnow
from trips.store import TripStore

from .access import RIDER_ROLES, Caller, Role, require_role
from .location_store import LocationStore, RiderLocation
from .policy import TrackingPolicy, default_tracking_policy
from .realtime import (
    LOCATION_UPDATED,
    ORDER_UPDATED,
    ORDERS_CHANGED,
    TRIP_STOP_COMPLETED,
    RealtimeEvent,
    RealtimeHub,
    order_topic,
    trip_topic,
    user_topic,
)
from .resolver import RouteResolver, remaining_stops
from .route_cache import RouteCache
from .sweeper import CacheSweeper

logger = logging.getLogger(__name__)


class TrackingService:
    def __init__(
        self,
        store: TripStore,
        directions,
        policy: Optional[TrackingPolicy] = None,
        publisher: Optional[RealtimeHub] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.policy = policy or default_tracking_policy()
        self.clock = clock
        self.publisher = publisher or RealtimeHub()
        self.locations = LocationStore(self.policy, clock)
        self.routes = RouteCache(self.policy, clock)
        self.resolver = RouteResolver(store, self.locations, self.routes, directions)
        self.sweeper = CacheSweeper(self.locations, self.routes, self.policy)

    # --- Lifecycle ---

    def start(self) -> None:
        self.sweeper.start()

    def shutdown(self) -> None:
        self.sweeper.stop()

    # --- Rider side ---

    def record_location(
        self,
        caller: Caller,
        trip_id: str,
        lat: Optional[float],
        lng: Optional[float],
        heading: Optional[float] = None,
        speed: Optional[float] = None,
    ) -> Dict[str, bool]:
        """
        Rider pushes a GPS fix for their in-progress trip.
        The cached route is left alone: the resolver notices displacement lazily.
        """
        require_role(caller, RIDER_ROLES)
        if not trip_id or lat is None or lng is None:
            raise InvalidRequest("tripId, lat, and lng are required")

        trip = self._rider_trip(caller, trip_id)
        if trip.status != TripStatus.IN_PROGRESS:
            raise InvalidState("Trip is not in progress")

        location = self.locations.record(trip_id, caller.user_id, lat, lng, heading, speed)
        # a final delivery may have completed the trip (and cleared its position) meanwhile
        current = self.store.get_trip(trip_id)
        if current is None or current.status != TripStatus.IN_PROGRESS:
            self.locations.clear(trip_id)
            raise InvalidState("Trip is not in progress")

        self.publisher.publish(
            trip_topic(trip_id),
            RealtimeEvent(
                LOCATION_UPDATED,
                {
                    "tripId": trip_id,
                    "data": {
                        "lat": location.lat,
                        "lng": location.lng,
                        "heading": location.heading,
                        "speed": location.speed,
                        "updatedAt": location.updated_at.isoformat(),
                    },
                },
            ),
        )
        return {"received": True}

    def deliver(
        self,
        caller: Caller,
        trip_id: str,
        order_id: str,
        collected_amount=None,
        cod_note: Optional[str] = None,
    ) -> DeliveryOutcome:
        """
        Rider marks one order of their trip DELIVERED; the last one completes the trip.
        """
        require_role(caller, RIDER_ROLES)
        outcome = state_machine.mark_delivered(
            self.store,
            trip_id,
            order_id,
            caller.user_id,
            collected_amount=collected_amount,
            note=cod_note,
            clock=self.clock,
        )
        self._after_delivery(trip_id, outcome)
        return outcome

    def start_trip(self, caller: Caller, trip_id: str) -> List[str]:
        require_role(caller, RIDER_ROLES)
        self._managed_trip(caller, trip_id)

        dispatched = state_machine.start_trip(self.store, trip_id, clock=self.clock)
        for order_id in dispatched:
            order = self.store.get_order(order_id)
            if order is not None:
                self._best_effort("publish order update", self._publish_order_update, order)
        return dispatched

    def cancel_trip(self, caller: Caller, trip_id: str) -> None:
        require_role(caller, RIDER_ROLES)
        self._managed_trip(caller, trip_id)
        state_machine.cancel_trip(self.store, trip_id)

    def my_trips(self, caller: Caller, period: str = "today") -> List[Trip]:
        """Rider's trips created today (default) or before today ("history"), newest first."""
        require_role(caller, RIDER_ROLES)
        start_of_day = self.clock().replace(hour=0, minute=0, second=0, microsecond=0)
        if period == "history":
            return self.store.list_rider_trips(caller.user_id, created_before=start_of_day)
        return self.store.list_rider_trips(caller.user_id, created_after=start_of_day)

    # --- Customer side ---

    def get_location(self, caller: Caller, trip_id: str) -> Optional[RiderLocation]:
        if caller.is_customer and not self.store.customer_has_order_in_trip(trip_id, caller.user_id):
            raise Forbidden("Access denied")
        return self.locations.get(trip_id)

    def tracking_by_order(self, caller: Caller, order_id: str) -> Optional[Dict[str, Any]]:
        """
        Everything the "track my order" screen needs: trip status, rider, store, last
        position, and the remaining stops with only the caller's own stop marked.
        """
        order = self._visible_order(caller, order_id)
        trip = self.store.get_trip(order.delivery_trip_id) if order.delivery_trip_id else None
        if trip is None:
            return None

        rider = self.store.get_rider(trip.rider_id)
        store = self.store.get_store(trip.store_id)
        location = self.locations.get(trip.id)
        stops = [
            {
                "sequence": stop.delivery_sequence or 0,
                "lat": stop.delivery_lat,
                "lng": stop.delivery_lng,
                "isYourStop": stop.id == order.id,
            }
            for stop in remaining_stops(self.store.list_trip_orders(trip.id, OrderStatus.OUT_FOR_DELIVERY))
        ]
        customer_stop_number = next(
            (index + 1 for index, stop in enumerate(stops) if stop["isYourStop"]),
            None,
        )

        return {
            "tripId": trip.id,
            "tripStatus": TripStatus(trip.status).value,
            "rider": _rider_view(rider),
            "store": {"name": store.name, "latitude": store.lat, "longitude": store.lng} if store else None,
            "location": _location_view(location),
            "deliveryAddress": order.delivery_address,
            "deliveryLat": order.delivery_lat,
            "deliveryLng": order.delivery_lng,
            "remainingStops": stops,
            "customerStopNumber": customer_stop_number,
            "totalStops": len(stops),
        }

    def route_by_order(self, caller: Caller, order_id: str) -> Optional[RouteResult]:
        order = self._visible_order(caller, order_id)
        if not order.delivery_trip_id:
            return None
        return self.resolver.resolve(order.delivery_trip_id)

    # --- Internal ---

    def _rider_trip(self, caller: Caller, trip_id: str) -> Trip:
        trip = self.store.get_trip(trip_id)
        if trip is None:
            raise NotFound("Trip not found")
        if trip.rider_id != caller.user_id:
            raise Forbidden("Not your trip")
        return trip

    def _managed_trip(self, caller: Caller, trip_id: str) -> Trip:
        # managers may act on any trip, riders only on their own
        if caller.role == Role.RIDER:
            return self._rider_trip(caller, trip_id)
        trip = self.store.get_trip(trip_id)
        if trip is None:
            raise NotFound("Trip not found")
        return trip

    def _visible_order(self, caller: Caller, order_id: str) -> TripOrder:
        order = self.store.get_order(order_id)
        if order is None:
            raise NotFound("Order not found")
        if caller.is_customer and order.customer_id != caller.user_id:
            raise Forbidden("Access denied")
        return order

    def _after_delivery(self, trip_id: str, outcome: DeliveryOutcome) -> None:
        if outcome.all_delivered:
            self._best_effort("clear rider location", self.locations.clear, trip_id)

        self._best_effort("publish order update", self._publish_order_update, outcome.order)
        self._best_effort(
            "publish stop completed",
            self.publisher.publish,
            trip_topic(trip_id),
            RealtimeEvent(
                TRIP_STOP_COMPLETED,
                {"tripId": trip_id, "orderId": outcome.order.id, "allDelivered": outcome.all_delivered},
            ),
        )
        # the stop set changed, so any cached route is stale whatever its age
        self._best_effort("invalidate route cache", self.routes.invalidate, trip_id)

    def _publish_order_update(self, order: TripOrder) -> None:
        status = OrderStatus(order.status).value
        self.publisher.publish(
            order_topic(order.id),
            RealtimeEvent(ORDER_UPDATED, {"orderId": order.id, "data": {"id": order.id, "status": status}}),
        )
        self.publisher.publish(
            user_topic(order.customer_id),
            RealtimeEvent(ORDERS_CHANGED, {"orderId": order.id, "status": status}),
        )

    def _best_effort(self, what: str, func: Callable, *args) -> None:
        try:
            func(*args)
        except Exception:
            logger.exception("Side effect failed after commit: %s", what)


def _location_view(location: Optional[RiderLocation]) -> Optional[Dict[str, Any]]:
    if location is None:
        return None
    return {
        "lat": location.lat,
        "lng": location.lng,
        "heading": location.heading,
        "speed": location.speed,
        "updatedAt": location.updated_at.isoformat(),
    }


def _rider_view(rider: Optional[RiderProfile]) -> Optional[Dict[str, Any]]:
    if rider is None:
        return None
    return {"id": rider.id, "name": rider.name, "phone": rider.phone, "vehicleType": rider.vehicle_type}
