"""
Replays a two-stop delivery trip end to end against the in-memory store:
rider pushes GPS, customers poll the route, rider confirms both stops.

    python scripts/run_trip_simulation.py            # straight-line fake directions
    python scripts/run_trip_simulation.py --osrm     # real OSRM at $BASE_URL
"""

import argparse
import logging
from decimal import Decimal

from routing.geo import haversine_km
from routing.osrm_client import OSRMClient
from routing.route_service import DirectionsService, RouteLeg, RouteResult
from trips.models import OrderStatus, PaymentMethod, RiderProfile, StoreInfo, Trip, TripOrder, TripStatus
from trips.store import InMemoryTripStore
from tracking.access import Caller, Role
from tracking.realtime import trip_topic
from tracking.service import TrackingService

# Bengaluru, roughly MG Road and around
RIDER_START = (12.9716, 77.5946)
STOPS = [
    ("order-1", "customer-1", (12.9750, 77.6050), Decimal("250.00")),
    ("order-2", "customer-2", (12.9790, 77.6200), Decimal("480.50")),
]


class MockDirections:
    """Straight lines at 25 km/h. Counts calls so the cache is visible in the output."""

    def __init__(self):
        self.calls = 0

    def get_route(self, origin, destination, waypoints=None):
        self.calls += 1
        points = [origin] + list(waypoints or []) + [destination]
        legs = []
        for start, end in zip(points, points[1:]):
            km = haversine_km(start, end)
            legs.append(RouteLeg(distance_m=km * 1000, duration_s=km / 25 * 3600))
        return RouteResult(
            polyline=points,
            legs=legs,
            total_distance_m=sum(leg.distance_m for leg in legs),
            total_duration_s=sum(leg.duration_s for leg in legs),
        )


def seed(store: InMemoryTripStore) -> None:
    store.add_rider(RiderProfile(id="rider-1", name="Ravi", phone="+919800000001", vehicle_type="Bike"))
    store.add_store(StoreInfo(id="store-1", name="MG Road", lat=RIDER_START[0], lng=RIDER_START[1]))
    store.add_trip(Trip(id="trip-1", rider_id="rider-1", store_id="store-1", status=TripStatus.CREATED))
    for sequence, (order_id, customer_id, (lat, lng), amount) in enumerate(STOPS, start=1):
        store.add_order(
            TripOrder(
                id=order_id,
                customer_id=customer_id,
                status=OrderStatus.READY,
                delivery_trip_id="trip-1",
                delivery_sequence=sequence,
                delivery_lat=lat,
                delivery_lng=lng,
                total_amount=amount,
                payment_method=PaymentMethod.COD,
            )
        )


def describe(route):
    if route is None:
        return "no route"
    return f"{len(route.legs)} leg(s), {route.total_distance_m / 1000:.2f} km, {route.total_duration_s / 60:.1f} min"


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--osrm", action="store_true", help="use the OSRM server at $BASE_URL")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")

    directions = DirectionsService(OSRMClient(timeout=5)) if args.osrm else MockDirections()
    store = InMemoryTripStore()
    seed(store)
    service = TrackingService(store, directions)

    service.publisher.subscribe(
        trip_topic("trip-1"),
        lambda topic, event: print(f"  [{topic}] {event.type}"),
    )

    rider = Caller("rider-1", Role.RIDER)
    customers = {order_id: Caller(customer_id, Role.CUSTOMER) for order_id, customer_id, _, _ in STOPS}

    print("Starting trip...")
    print(f"  out for delivery: {service.start_trip(rider, 'trip-1')}")

    print("Rider pushes location...")
    service.record_location(rider, "trip-1", *RIDER_START)

    for order_id, caller in customers.items():
        route = service.route_by_order(caller, order_id)
        print(f"Route for {order_id}: {describe(route)}")

    for order_id, _, (lat, lng), amount in STOPS:
        print(f"Rider arrives at {order_id}...")
        service.record_location(rider, "trip-1", lat, lng)
        outcome = service.deliver(rider, "trip-1", order_id, collected_amount=amount)
        print(f"  delivered, all delivered: {outcome.all_delivered}")
        for remaining_id, caller in customers.items():
            if store.get_order(remaining_id).status == OrderStatus.OUT_FOR_DELIVERY:
                print(f"  route for {remaining_id}: {describe(service.route_by_order(caller, remaining_id))}")

    trip = store.get_trip("trip-1")
    print(f"Trip status: {trip.status.value}, completed at {trip.completed_at}")
    if isinstance(directions, MockDirections):
        print(f"Directions calls: {directions.calls}")


if __name__ == "__main__":
    main()
