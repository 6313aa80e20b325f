"""
Purpose: The only writer of trip / order delivery state.
What it does:
- start_trip:     CREATED -> IN_PROGRESS, READY orders -> OUT_FOR_DELIVERY
- cancel_trip:    CREATED -> CANCELLED, orders unlinked
- mark_delivered: OUT_FOR_DELIVERY -> DELIVERED, and IN_PROGRESS -> COMPLETED
                  for the trip when that was the last remaining stop

Every check runs inside the store transaction against committed state with the
trip row locked, so two riders' requests for the same trip are serialized and
"remaining stops" is never computed from a stale snapshot.

Rule: no caches, no publishing here. Side effects after commit belong to
tracking/service.py.
"""

import logging
from decimal import Decimal
from typing import Callable, Optional, Union

from .errors import Forbidden, InvalidState, NotFound
from .models import DeliveryOutcome, OrderStatus, TripStatus, utcnow
from .store import TripStore

logger = logging.getLogger(__name__)

Amount = Union[int, float, Decimal]


def build_delivery_note(collected_amount: Optional[Amount] = None, note: Optional[str] = None) -> str:
    """
    Status-log note for a delivered order, e.g.
    "Delivered by rider. COD collected: ₹250. Note: left at gate"
    """
    parts = ["Delivered by rider"]
    if collected_amount is not None:
        parts.append(f"COD collected: ₹{collected_amount}")
    if note:
        parts.append(f"Note: {note}")
    return ". ".join(parts)


def mark_delivered(
    store: TripStore,
    trip_id: str,
    order_id: str,
    rider_id: str,
    collected_amount: Optional[Amount] = None,
    note: Optional[str] = None,
    clock: Callable = utcnow,
) -> DeliveryOutcome:
    """
    Rider confirms one stop of their trip.

    Preconditions, checked in this order:
      trip exists                      -> NotFound
      trip belongs to rider            -> Forbidden
      trip is IN_PROGRESS              -> InvalidState
      order is part of the trip        -> InvalidState
      order is OUT_FOR_DELIVERY        -> InvalidState (names the actual status)

    The trip completes in the same transaction as its last delivery.
    """
    with store.transaction() as tx:
        trip = tx.lock_trip(trip_id)
        if trip is None:
            raise NotFound("Trip not found")
        if trip.rider_id != rider_id:
            raise Forbidden("Not your trip")
        if trip.status != TripStatus.IN_PROGRESS:
            raise InvalidState("Trip is not in progress")

        orders = tx.list_trip_orders(trip_id)
        order = next((trip_order for trip_order in orders if trip_order.id == order_id), None)
        if order is None:
            raise InvalidState("Order not in this trip")
        if order.status != OrderStatus.OUT_FOR_DELIVERY:
            raise InvalidState(
                f"Order is {OrderStatus(order.status).value}, expected {OrderStatus.OUT_FOR_DELIVERY.value}"
            )

        tx.set_order_status(order_id, OrderStatus.DELIVERED)
        tx.append_status_log(order_id, OrderStatus.DELIVERED, build_delivery_note(collected_amount, note))
        order.status = OrderStatus.DELIVERED

        remaining = [
            trip_order for trip_order in orders
            if trip_order.id != order_id and trip_order.status == OrderStatus.OUT_FOR_DELIVERY
        ]

        completed_at = None
        if not remaining:
            completed_at = clock()
            tx.update_trip(trip_id, status=TripStatus.COMPLETED, completed_at=completed_at)

    if completed_at is not None:
        logger.info("Trip %s completed after delivering order %s", trip_id, order_id)
    else:
        logger.info("Order %s delivered, %d stop(s) left on trip %s", order_id, len(remaining), trip_id)

    return DeliveryOutcome(all_delivered=not remaining, order=order, completed_at=completed_at)


def start_trip(store: TripStore, trip_id: str, clock: Callable = utcnow):
    """
    CREATED -> IN_PROGRESS. Every READY order of the trip goes out for delivery.
    Returns the ids of the orders that changed status.
    """
    with store.transaction() as tx:
        trip = tx.lock_trip(trip_id)
        if trip is None:
            raise NotFound("Trip not found")
        if trip.status != TripStatus.CREATED:
            raise InvalidState(f"Cannot start trip in {TripStatus(trip.status).value} status")

        tx.update_trip(trip_id, status=TripStatus.IN_PROGRESS, started_at=clock())

        dispatched = []
        for order in tx.list_trip_orders(trip_id):
            if order.status != OrderStatus.READY:
                continue
            tx.set_order_status(order.id, OrderStatus.OUT_FOR_DELIVERY)
            tx.append_status_log(order.id, OrderStatus.OUT_FOR_DELIVERY, "Trip started")
            dispatched.append(order.id)

    logger.info("Trip %s started with %d order(s) out for delivery", trip_id, len(dispatched))
    return dispatched


def cancel_trip(store: TripStore, trip_id: str) -> None:
    """
    CREATED -> CANCELLED. Orders are released so they can join another trip.
    A trip that already started cannot be cancelled.
    """
    with store.transaction() as tx:
        trip = tx.lock_trip(trip_id)
        if trip is None:
            raise NotFound("Trip not found")
        if trip.status != TripStatus.CREATED:
            raise InvalidState(f"Cannot cancel trip in {TripStatus(trip.status).value} status")

        tx.update_trip(trip_id, status=TripStatus.CANCELLED)
        tx.unlink_orders(trip_id)

    logger.info("Trip %s cancelled", trip_id)
