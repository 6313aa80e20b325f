"""
Django ORM implementation of trips.store.TripStore.

Transactions run in transaction.atomic(); lock_trip() takes the trip row with
SELECT ... FOR UPDATE so concurrent deliveries on one trip are serialized.
Lock timeouts / deadlocks surface as TransactionConflict.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import OperationalError, transaction
from django.db.models import F, Prefetch
from django.utils import timezone

from trips.errors import TransactionConflict
from trips.models import OrderStatus, PaymentMethod, RiderProfile, StoreInfo, Trip, TripOrder, TripStatus
from trips.store import TripStore, TripTransaction, by_delivery_sequence

from .models import DeliveryTrip, Order, OrderStatusLog, Store

logger = logging.getLogger(__name__)

DELIVERY_ORDERING = (F('delivery_sequence').asc(nulls_last=True), 'created_at')


def phone_text(user) -> Optional[str]:
    return str(user.phone_number) if user.phone_number else None


def to_store_info(row: Store) -> StoreInfo:
    return StoreInfo(id=str(row.id), name=row.name, lat=row.lat, lng=row.lng, address=row.address)


def to_trip(row: DeliveryTrip, orders=None, store: Optional[StoreInfo] = None) -> Trip:
    return Trip(
        id=str(row.id),
        rider_id=str(row.rider_id),
        store_id=str(row.store_id),
        status=TripStatus(row.status),
        created_at=row.created_at,
        started_at=row.started_at,
        completed_at=row.completed_at,
        orders=list(orders) if orders is not None else [],
        store=store,
    )


def to_trip_order(row: Order) -> TripOrder:
    # callers select_related('customer')
    return TripOrder(
        id=str(row.id),
        customer_id=str(row.customer_id),
        status=OrderStatus(row.status),
        delivery_trip_id=str(row.delivery_trip_id) if row.delivery_trip_id else None,
        delivery_sequence=row.delivery_sequence,
        delivery_lat=row.delivery_lat,
        delivery_lng=row.delivery_lng,
        delivery_address=row.delivery_address,
        total_amount=row.total_amount,
        payment_method=PaymentMethod(row.payment_method),
        customer_name=row.customer.display_name,
        customer_phone=phone_text(row.customer),
    )


def first_or_none(queryset, **lookup):
    # ids come straight from the URL, a malformed UUID is just "not found"
    try:
        return queryset.filter(**lookup).first()
    except (ValidationError, ValueError):
        return None


def orders_with_customer():
    return Order.objects.select_related('customer')


class DjangoTripStore(TripStore):

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        row = first_or_none(DeliveryTrip.objects.all(), pk=trip_id)
        return to_trip(row) if row else None

    def get_order(self, order_id: str) -> Optional[TripOrder]:
        row = first_or_none(orders_with_customer(), pk=order_id)
        return to_trip_order(row) if row else None

    def list_trip_orders(self, trip_id: str, status: Optional[OrderStatus] = None) -> List[TripOrder]:
        try:
            queryset = orders_with_customer().filter(delivery_trip_id=trip_id)
            if status is not None:
                queryset = queryset.filter(status=status.value)
            return [to_trip_order(row) for row in queryset.order_by(*DELIVERY_ORDERING)]
        except (ValidationError, ValueError):
            return []

    def customer_has_order_in_trip(self, trip_id: str, customer_id: str) -> bool:
        try:
            return Order.objects.filter(delivery_trip_id=trip_id, customer_id=customer_id).exists()
        except (ValidationError, ValueError):
            return False

    def get_rider(self, rider_id: str) -> Optional[RiderProfile]:
        user = first_or_none(get_user_model().objects.all(), pk=rider_id)
        if user is None:
            return None
        return RiderProfile(
            id=str(user.pk),
            name=user.display_name,
            phone=phone_text(user),
            vehicle_type=user.vehicle_type or None,
        )

    def get_store(self, store_id: str) -> Optional[StoreInfo]:
        row = first_or_none(Store.objects.all(), pk=store_id)
        return to_store_info(row) if row else None

    def list_rider_trips(
        self,
        rider_id: str,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List[Trip]:
        queryset = DeliveryTrip.objects.filter(rider_id=rider_id)
        if created_after is not None:
            queryset = queryset.filter(created_at__gte=created_after)
        if created_before is not None:
            queryset = queryset.filter(created_at__lt=created_before)

        queryset = (
            queryset.order_by('-created_at')
            .select_related('store')
            .prefetch_related(Prefetch('orders', queryset=orders_with_customer()))
        )
        trips = []
        for row in queryset:
            orders = sorted((to_trip_order(order) for order in row.orders.all()), key=by_delivery_sequence)
            trips.append(to_trip(row, orders, store=to_store_info(row.store)))
        return trips

    @contextmanager
    def transaction(self) -> Iterator[TripTransaction]:
        try:
            with transaction.atomic():
                yield _DjangoTransaction()
        except OperationalError as exc:
            logger.warning("Trip transaction aborted: %s", exc)
            raise TransactionConflict("Trip was updated concurrently, please retry") from exc


class _DjangoTransaction(TripTransaction):

    def lock_trip(self, trip_id: str) -> Optional[Trip]:
        row = first_or_none(DeliveryTrip.objects.select_for_update(), pk=trip_id)
        return to_trip(row) if row else None

    def list_trip_orders(self, trip_id: str) -> List[TripOrder]:
        queryset = orders_with_customer().filter(delivery_trip_id=trip_id).order_by(*DELIVERY_ORDERING)
        return [to_trip_order(row) for row in queryset]

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        Order.objects.filter(pk=order_id).update(status=status.value, updated_at=timezone.now())

    def append_status_log(self, order_id: str, status: OrderStatus, note: str) -> None:
        OrderStatusLog.objects.create(order_id=order_id, status=status.value, note=note)

    def update_trip(
        self,
        trip_id: str,
        *,
        status: TripStatus,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        fields = {'status': status.value}
        if started_at is not None:
            fields['started_at'] = started_at
        if completed_at is not None:
            fields['completed_at'] = completed_at
        DeliveryTrip.objects.filter(pk=trip_id).update(**fields)

    def unlink_orders(self, trip_id: str) -> None:
        Order.objects.filter(delivery_trip_id=trip_id).update(delivery_trip=None, delivery_sequence=None)
