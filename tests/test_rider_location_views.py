from types import SimpleNamespace

import pytest
from rest_framework.test import APIRequestFactory, force_authenticate

from logistics.views import RiderLocationViewSet
from trips.models import OrderStatus, TripStatus

factory = APIRequestFactory()


def user(pk, role):
    return SimpleNamespace(pk=pk, role=role, is_authenticated=True)


RIDER = user("R", "RIDER")
C1 = user("C1", "CUSTOMER")
C2 = user("C2", "CUSTOMER")


@pytest.fixture
def call(service):
    def _call(actions, method, path, who=None, data=None, **kwargs):
        view = RiderLocationViewSet.as_view(actions, tracking_service=service)
        request = getattr(factory, method)(path, data, format="json")
        if who is not None:
            force_authenticate(request, user=who)
        return view(request, **kwargs)

    return _call


def push(call, who=RIDER, **body):
    return call({"post": "create"}, "post", "/api/v1/rider-location/", who, body)


def test_push_location(call, service):
    response = push(call, tripId="T", lat=12.97, lng=77.60, heading=45)

    assert response.status_code == 200
    assert response.data == {"success": True, "data": {"received": True}}
    assert service.locations.get("T").heading == 45


def test_push_without_coordinates(call):
    response = push(call, tripId="T", lat=12.97)

    assert response.status_code == 400
    assert response.data["success"] is False
    assert response.data["error"] == "tripId, lat, and lng are required"
    assert "lng" in response.data["details"]


def test_push_to_someone_elses_trip(call):
    response = push(call, who=user("R2", "RIDER"), tripId="T", lat=12.97, lng=77.60)

    assert response.status_code == 403
    assert response.data == {"success": False, "error": "Not your trip"}


def test_anonymous_requests_are_rejected(call):
    response = push(call, who=None, tripId="T", lat=12.97, lng=77.60)

    assert response.status_code == 401


def test_get_location(call):
    push(call, tripId="T", lat=12.97, lng=77.60)

    response = call({"get": "retrieve"}, "get", "/api/v1/rider-location/T/", C1, pk="T")

    assert response.status_code == 200
    assert response.data["data"]["lat"] == 12.97
    assert response.data["data"]["tripId"] == "T"


def test_get_location_before_any_push_is_null(call):
    response = call({"get": "retrieve"}, "get", "/api/v1/rider-location/T/", C1, pk="T")

    assert response.data == {"success": True, "data": None}


def test_get_location_of_a_stranger_trip(call):
    response = call({"get": "retrieve"}, "get", "/api/v1/rider-location/T/", user("C9", "CUSTOMER"), pk="T")

    assert response.status_code == 403


def test_tracking_by_order(call):
    response = call({"get": "by_order"}, "get", "/api/v1/rider-location/by-order/O2/", C2, order_id="O2")

    assert response.status_code == 200
    assert response.data["data"]["customerStopNumber"] == 2
    assert response.data["data"]["location"] is None


def test_tracking_for_unknown_order(call):
    response = call({"get": "by_order"}, "get", "/api/v1/rider-location/by-order/nope/", C1, order_id="nope")

    assert response.status_code == 404
    assert response.data == {"success": False, "error": "Order not found"}


def test_route_by_order(call, directions):
    push(call, tripId="T", lat=12.97, lng=77.60)

    response = call({"get": "route_by_order"}, "get", "/api/v1/rider-location/route/by-order/O1/", C1, order_id="O1")

    data = response.data["data"]
    assert response.status_code == 200
    assert len(data["legs"]) == 2
    assert data["polyline"][0] == {"lat": 12.97, "lng": 77.60}
    assert set(data) == {"polyline", "legs", "totalDistanceMeters", "totalDurationSeconds"}
    assert len(directions.calls) == 1


def test_route_by_order_without_position(call):
    response = call({"get": "route_by_order"}, "get", "/api/v1/rider-location/route/by-order/O1/", C1, order_id="O1")

    assert response.data == {"success": True, "data": None}


def test_deliver_both_stops(call, store):
    deliver = {"patch": "deliver"}

    first = call(deliver, "patch", "/api/v1/rider-location/trips/T/deliver/O1/", RIDER,
                 {"collectedAmount": "250.00", "codNote": "exact change"}, trip_id="T", order_id="O1")
    second = call(deliver, "patch", "/api/v1/rider-location/trips/T/deliver/O2/", RIDER,
                  {}, trip_id="T", order_id="O2")

    assert first.data == {"success": True, "data": {"allDelivered": False}}
    assert second.data == {"success": True, "data": {"allDelivered": True}}
    assert store.get_trip("T").status == TripStatus.COMPLETED
    assert store.status_logs("O1")[-1].note == "Delivered by rider. COD collected: ₹250.00. Note: exact change"


def test_deliver_twice_is_a_bad_request(call):
    deliver = {"patch": "deliver"}
    call(deliver, "patch", "/api/v1/rider-location/trips/T/deliver/O1/", RIDER, {}, trip_id="T", order_id="O1")

    again = call(deliver, "patch", "/api/v1/rider-location/trips/T/deliver/O1/", RIDER, {}, trip_id="T", order_id="O1")

    assert again.status_code == 400
    assert again.data["error"] == "Order is DELIVERED, expected OUT_FOR_DELIVERY"


def test_customer_cannot_deliver(call, store):
    response = call({"patch": "deliver"}, "patch", "/api/v1/rider-location/trips/T/deliver/O1/", C1,
                    {}, trip_id="T", order_id="O1")

    assert response.status_code == 403
    assert store.get_order("O1").status == OrderStatus.OUT_FOR_DELIVERY


def test_my_trips(call):
    response = call({"get": "my_trips"}, "get", "/api/v1/rider-location/my-trips/", RIDER)

    assert response.status_code == 200
    trips = response.data["data"]
    assert [trip["id"] for trip in trips] == ["T"]
    assert trips[0]["status"] == "IN_PROGRESS"
    assert [order["id"] for order in trips[0]["orders"]] == ["O1", "O2"]
    assert trips[0]["orders"][0]["status"] == "OUT_FOR_DELIVERY"


def test_cancel_started_trip_is_rejected(call):
    response = call({"patch": "cancel_trip"}, "patch", "/api/v1/rider-location/trips/T/cancel/", RIDER,
                    {}, trip_id="T")

    assert response.status_code == 400
    assert response.data["error"] == "Cannot cancel trip in IN_PROGRESS status"


def test_process_service_is_built_from_settings():
    from logistics.repository import DjangoTripStore
    from logistics.services import build_tracking_service

    service = build_tracking_service()

    assert isinstance(service.store, DjangoTripStore)
    assert service.resolver.directions.osrm.base_url
    assert not service.sweeper.running


def test_deliver_with_bad_amount_uses_the_error_envelope(call, store):
    response = call({"patch": "deliver"}, "patch", "/api/v1/rider-location/trips/T/deliver/O1/", RIDER,
                    {"collectedAmount": "two hundred"}, trip_id="T", order_id="O1")

    assert response.status_code == 400
    assert response.data["success"] is False
    assert response.data["error"] == "Invalid delivery details"
    assert "collectedAmount" in response.data["details"]
    assert store.get_order("O1").status == OrderStatus.OUT_FOR_DELIVERY


def test_my_trips_carries_store_payment_and_customer_contact(call):
    response = call({"get": "my_trips"}, "get", "/api/v1/rider-location/my-trips/", RIDER)

    trip = response.data["data"][0]
    assert trip["store"] == {
        "id": "S", "name": "Indiranagar", "latitude": 12.9784, "longitude": 77.6408, "address": "100 Feet Road",
    }
    first, second = trip["orders"]
    assert first["totalAmount"] == "250.00"
    assert first["paymentMethod"] == "COD"
    assert first["customer"] == {"name": "Asha", "phone": "+919800000002"}
    assert second["paymentMethod"] == "ONLINE"
    assert second["customer"] == {"name": "Dev", "phone": None}


def test_tracking_by_order_shows_store_and_vehicle(call):
    response = call({"get": "by_order"}, "get", "/api/v1/rider-location/by-order/O1/", C1, order_id="O1")

    data = response.data["data"]
    assert data["store"] == {"name": "Indiranagar", "latitude": 12.9784, "longitude": 77.6408}
    assert data["rider"]["vehicleType"] == "Bike"
