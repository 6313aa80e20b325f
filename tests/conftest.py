import os
from datetime import datetime, timedelta, timezone
from decimal import Decimal

import django
import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "tracking_backend.settings")
os.environ["TRACKING_SWEEPER_ENABLED"] = "false"
django.setup()

from routing.geo import haversine_km  # noqa: E402
from routing.route_service import RouteLeg, RouteResult  # noqa: E402
from trips.models import OrderStatus, PaymentMethod, RiderProfile, StoreInfo, Trip, TripOrder, TripStatus  # noqa: E402
from trips.store import InMemoryTripStore  # noqa: E402
from tracking.service import TrackingService  # noqa: E402


class FakeClock:
    """Callable clock the tests move by hand."""

    def __init__(self, start=None):
        self.now = start or datetime(2026, 3, 2, 9, 30, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


class FakeDirections:
    """
    Stand-in for the directions provider. Records every call and returns a
    straight-line route, or None when told to.
    """

    def __init__(self):
        self.calls = []
        self.no_route = False

    def get_route(self, origin, destination, waypoints=None):
        self.calls.append({"origin": origin, "destination": destination, "waypoints": waypoints})
        if self.no_route:
            return None
        points = [origin] + list(waypoints or []) + [destination]
        legs = [RouteLeg(distance_m=haversine_km(a, b) * 1000, duration_s=60.0) for a, b in zip(points, points[1:])]
        return RouteResult(
            polyline=points,
            legs=legs,
            total_distance_m=sum(leg.distance_m for leg in legs),
            total_duration_s=sum(leg.duration_s for leg in legs),
        )


O1_COORDS = (12.9750, 77.6050)
O2_COORDS = (12.9790, 77.6200)


def seed_two_stop_trip(store, status=TripStatus.IN_PROGRESS, order_status=OrderStatus.OUT_FOR_DELIVERY):
    """Trip T with O1 (seq 1) and O2 (seq 2), rider R."""
    store.add_rider(RiderProfile(id="R", name="Ravi", phone="+919800000001", vehicle_type="Bike"))
    store.add_store(StoreInfo(id="S", name="Indiranagar", lat=12.9784, lng=77.6408, address="100 Feet Road"))
    store.add_trip(Trip(id="T", rider_id="R", store_id="S", status=status))
    store.add_order(TripOrder(
        id="O1", customer_id="C1", status=order_status, delivery_trip_id="T",
        delivery_sequence=1, delivery_lat=O1_COORDS[0], delivery_lng=O1_COORDS[1],
        delivery_address="12 MG Road", total_amount=Decimal("250.00"), payment_method=PaymentMethod.COD,
        customer_name="Asha", customer_phone="+919800000002",
    ))
    store.add_order(TripOrder(
        id="O2", customer_id="C2", status=order_status, delivery_trip_id="T",
        delivery_sequence=2, delivery_lat=O2_COORDS[0], delivery_lng=O2_COORDS[1],
        delivery_address="7 Church Street", total_amount=Decimal("480.50"), payment_method=PaymentMethod.ONLINE,
        customer_name="Dev",
    ))
    return store


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def directions():
    return FakeDirections()


@pytest.fixture
def store():
    return seed_two_stop_trip(InMemoryTripStore())


@pytest.fixture
def service(store, directions, clock):
    return TrackingService(store, directions, clock=clock)
