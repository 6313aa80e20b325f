from rest_framework import viewsets, permissions, status
from rest_framework.decorators import action
from rest_framework.response import Response

from trips.errors import (
    Forbidden,
    InvalidRequest,
    InvalidState,
    NotFound,
    TransactionConflict,
    TripStateException,
)
from tracking.access import Caller

from .serializers import DeliverOrderSerializer, LocationUpdateSerializer, TripSerializer
from .services import get_tracking_service

ERROR_STATUS = {
    NotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    InvalidState: status.HTTP_400_BAD_REQUEST,
    InvalidRequest: status.HTTP_400_BAD_REQUEST,
    TransactionConflict: status.HTTP_409_CONFLICT,
}


def ok(data):
    return Response({"success": True, "data": data})


def invalid(message, serializer):
    return Response(
        {"success": False, "error": message, "details": serializer.errors},
        status=status.HTTP_400_BAD_REQUEST,
    )


class RiderLocationViewSet(viewsets.ViewSet):
    """
    Live delivery tracking.
    - Rider: push GPS, list own trips, start trip, confirm deliveries
    - Customer: read rider position / remaining stops / route for their own order
    """
    permission_classes = [permissions.IsAuthenticated]

    # Injected in tests; production uses the process-wide service
    tracking_service = None

    def get_service(self):
        return self.tracking_service or get_tracking_service()

    def get_caller(self) -> Caller:
        user = self.request.user
        return Caller.new(user.pk, user.role)

    def handle_exception(self, exc):
        if isinstance(exc, TripStateException):
            code = ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
            return Response({"success": False, "error": str(exc)}, status=code)
        return super().handle_exception(exc)

    def create(self, request):
        """
        POST /rider-location/
        Rider pushes a GPS update for their active trip; subscribers of the trip get it live.
        """
        serializer = LocationUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid("tripId, lat, and lng are required", serializer)
        body = serializer.validated_data

        result = self.get_service().record_location(
            self.get_caller(),
            body['tripId'],
            body['lat'],
            body['lng'],
            heading=body.get('heading'),
            speed=body.get('speed'),
        )
        return ok(result)

    def retrieve(self, request, pk=None):
        """
        GET /rider-location/<tripId>/
        Latest known rider position for a trip, or null.
        """
        location = self.get_service().get_location(self.get_caller(), pk)
        return ok(location.to_dict() if location else None)

    @action(detail=False, methods=['get'], url_path=r'by-order/(?P<order_id>[^/.]+)')
    def by_order(self, request, order_id=None):
        """
        Trip status, rider, position and anonymized remaining stops for the caller's order.
        """
        return ok(self.get_service().tracking_by_order(self.get_caller(), order_id))

    @action(detail=False, methods=['get'], url_path=r'route/by-order/(?P<order_id>[^/.]+)')
    def route_by_order(self, request, order_id=None):
        """
        Driving route from the rider through the remaining stops, or null when there is none yet.
        """
        route = self.get_service().route_by_order(self.get_caller(), order_id)
        return ok(route.to_dict() if route else None)

    @action(detail=False, methods=['get'], url_path='my-trips')
    def my_trips(self, request):
        period = request.query_params.get('period', 'today')
        trips = self.get_service().my_trips(self.get_caller(), period=period)
        return ok(TripSerializer(trips, many=True).data)

    @action(detail=False, methods=['patch'], url_path=r'trips/(?P<trip_id>[^/.]+)/start')
    def start_trip(self, request, trip_id=None):
        dispatched = self.get_service().start_trip(self.get_caller(), trip_id)
        return ok({"tripId": trip_id, "dispatchedOrderIds": dispatched})

    @action(detail=False, methods=['patch'], url_path=r'trips/(?P<trip_id>[^/.]+)/cancel')
    def cancel_trip(self, request, trip_id=None):
        self.get_service().cancel_trip(self.get_caller(), trip_id)
        return ok({"tripId": trip_id, "cancelled": True})

    @action(detail=False, methods=['patch'], url_path=r'trips/(?P<trip_id>[^/.]+)/deliver/(?P<order_id>[^/.]+)')
    def deliver(self, request, trip_id=None, order_id=None):
        """
        Rider marks one order of their trip DELIVERED. The last one completes the trip.
        """
        serializer = DeliverOrderSerializer(data=request.data or {})
        if not serializer.is_valid():
            return invalid("Invalid delivery details", serializer)
        body = serializer.validated_data

        outcome = self.get_service().deliver(
            self.get_caller(),
            trip_id,
            order_id,
            collected_amount=body.get('collectedAmount'),
            cod_note=body.get('codNote'),
        )
        return ok({"allDelivered": outcome.all_delivered})
