"""
Purpose: The transactional store the trip state machine talks to.
What it does:
- TripStore: reads used by the tracking endpoints + transaction()
- TripTransaction: row-locking reads and the writes allowed inside a transaction
- InMemoryTripStore: single-process implementation (tests, simulations)

The Django-backed implementation lives in backend/logistics/repository.py.

Rule: Store owns persistence. It never decides whether a transition is allowed,
that is trips/state_machine.py's job.
"""

from __future__ import annotations

import copy
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from .models import OrderStatus, RiderProfile, StatusLog, StoreInfo, Trip, TripOrder, TripStatus


def by_delivery_sequence(order: TripOrder):
    # orders without a sequence go last
    return (order.delivery_sequence is None, order.delivery_sequence or 0)


class TripTransaction:
    """
    Operations available inside TripStore.transaction().
    Everything done through one instance commits or rolls back together.
    """

    def lock_trip(self, trip_id: str) -> Optional[Trip]:
        """Read the trip and hold its row lock until the transaction ends."""
        raise NotImplementedError

    def list_trip_orders(self, trip_id: str) -> List[TripOrder]:
        """Current committed orders of the trip, in delivery sequence."""
        raise NotImplementedError

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        raise NotImplementedError

    def append_status_log(self, order_id: str, status: OrderStatus, note: str) -> None:
        raise NotImplementedError

    def update_trip(
        self,
        trip_id: str,
        *,
        status: TripStatus,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        raise NotImplementedError

    def unlink_orders(self, trip_id: str) -> None:
        """Detach every order from the trip (used when a trip is cancelled)."""
        raise NotImplementedError


class TripStore:
    """
    Read side + transaction factory.
    Implementations must give at least read-committed isolation inside transaction().
    """

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        raise NotImplementedError

    def get_order(self, order_id: str) -> Optional[TripOrder]:
        raise NotImplementedError

    def list_trip_orders(self, trip_id: str, status: Optional[OrderStatus] = None) -> List[TripOrder]:
        raise NotImplementedError

    def customer_has_order_in_trip(self, trip_id: str, customer_id: str) -> bool:
        raise NotImplementedError

    def get_rider(self, rider_id: str) -> Optional[RiderProfile]:
        raise NotImplementedError

    def get_store(self, store_id: str) -> Optional[StoreInfo]:
        raise NotImplementedError

    def list_rider_trips(
        self,
        rider_id: str,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List[Trip]:
        """Rider's trips newest first, each with .store and .orders (in delivery sequence) filled."""
        raise NotImplementedError

    def transaction(self):
        """Context manager yielding a TripTransaction."""
        raise NotImplementedError


class InMemoryTripStore(TripStore):
    """
    Dict-backed store.

    Transactions are serialized with one re-entrant lock and rolled back by
    restoring a snapshot taken on entry. Reads hand out copies so callers
    can never mutate stored state outside a transaction.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._trips: Dict[str, Trip] = {}
        self._orders: Dict[str, TripOrder] = {}
        self._riders: Dict[str, RiderProfile] = {}
        self._stores: Dict[str, StoreInfo] = {}
        self._status_logs: List[StatusLog] = []

    # --- Seeding helpers ---

    def add_trip(self, trip: Trip) -> Trip:
        with self._lock:
            self._trips[trip.id] = replace(trip, orders=[])
        return trip

    def add_order(self, order: TripOrder) -> TripOrder:
        with self._lock:
            self._orders[order.id] = replace(order)
        return order

    def add_rider(self, rider: RiderProfile) -> RiderProfile:
        with self._lock:
            self._riders[rider.id] = rider
        return rider

    def add_store(self, store: StoreInfo) -> StoreInfo:
        with self._lock:
            self._stores[store.id] = store
        return store

    def status_logs(self, order_id: str) -> List[StatusLog]:
        with self._lock:
            return [log for log in self._status_logs if log.order_id == order_id]

    # --- TripStore ---

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        with self._lock:
            trip = self._trips.get(trip_id)
            return replace(trip, orders=[]) if trip else None

    def get_order(self, order_id: str) -> Optional[TripOrder]:
        with self._lock:
            order = self._orders.get(order_id)
            return replace(order) if order else None

    def list_trip_orders(self, trip_id: str, status: Optional[OrderStatus] = None) -> List[TripOrder]:
        with self._lock:
            return self._trip_orders(trip_id, status)

    def customer_has_order_in_trip(self, trip_id: str, customer_id: str) -> bool:
        with self._lock:
            return any(
                order.delivery_trip_id == trip_id and order.customer_id == customer_id
                for order in self._orders.values()
            )

    def get_rider(self, rider_id: str) -> Optional[RiderProfile]:
        with self._lock:
            return self._riders.get(rider_id)

    def get_store(self, store_id: str) -> Optional[StoreInfo]:
        with self._lock:
            return self._stores.get(store_id)

    def list_rider_trips(
        self,
        rider_id: str,
        created_after: Optional[datetime] = None,
        created_before: Optional[datetime] = None,
    ) -> List[Trip]:
        with self._lock:
            trips = []
            for trip in self._trips.values():
                if trip.rider_id != rider_id:
                    continue
                if created_after is not None and trip.created_at < created_after:
                    continue
                if created_before is not None and trip.created_at >= created_before:
                    continue
                trips.append(
                    replace(trip, orders=self._trip_orders(trip.id), store=self._stores.get(trip.store_id))
                )
        trips.sort(key=lambda trip: trip.created_at, reverse=True)
        return trips

    @contextmanager
    def transaction(self) -> Iterator[TripTransaction]:
        with self._lock:
            snapshot = copy.deepcopy((self._trips, self._orders, self._status_logs))
            try:
                yield _InMemoryTransaction(self)
            except BaseException:
                self._trips, self._orders, self._status_logs = snapshot
                raise

    # --- Internal ---

    def _trip_orders(self, trip_id: str, status: Optional[OrderStatus] = None) -> List[TripOrder]:
        orders = [
            replace(order)
            for order in self._orders.values()
            if order.delivery_trip_id == trip_id and (status is None or order.status == status)
        ]
        orders.sort(key=by_delivery_sequence)
        return orders


class _InMemoryTransaction(TripTransaction):
    def __init__(self, store: InMemoryTripStore):
        self.store = store

    def lock_trip(self, trip_id: str) -> Optional[Trip]:
        # the store lock is already held for the whole transaction
        return self.store.get_trip(trip_id)

    def list_trip_orders(self, trip_id: str) -> List[TripOrder]:
        return self.store._trip_orders(trip_id)

    def set_order_status(self, order_id: str, status: OrderStatus) -> None:
        self.store._orders[order_id].status = status

    def append_status_log(self, order_id: str, status: OrderStatus, note: str) -> None:
        self.store._status_logs.append(StatusLog(order_id=order_id, status=status, note=note))

    def update_trip(
        self,
        trip_id: str,
        *,
        status: TripStatus,
        started_at: Optional[datetime] = None,
        completed_at: Optional[datetime] = None,
    ) -> None:
        trip = self.store._trips[trip_id]
        trip.status = status
        if started_at is not None:
            trip.started_at = started_at
        if completed_at is not None:
            trip.completed_at = completed_at

    def unlink_orders(self, trip_id: str) -> None:
        for order in self.store._orders.values():
            if order.delivery_trip_id == trip_id:
                order.delivery_trip_id = None
                order.delivery_sequence = None
