import random
import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from trips import state_machine
from trips.errors import Forbidden, InvalidState, NotFound
from trips.models import OrderStatus, Trip, TripOrder, TripStatus
from trips.state_machine import build_delivery_note, cancel_trip, mark_delivered, start_trip
from trips.store import InMemoryTripStore

from conftest import seed_two_stop_trip


# --- Preconditions, in the order they are checked ---

def test_unknown_trip_is_not_found(store):
    with pytest.raises(NotFound):
        mark_delivered(store, "nope", "O1", "R")


def test_other_rider_is_forbidden(store):
    with pytest.raises(Forbidden, match="Not your trip"):
        mark_delivered(store, "T", "O1", "someone-else")


def test_trip_must_be_in_progress():
    store = seed_two_stop_trip(InMemoryTripStore(), status=TripStatus.CREATED)

    with pytest.raises(InvalidState, match="Trip is not in progress"):
        mark_delivered(store, "T", "O1", "R")


def test_order_must_belong_to_trip(store):
    store.add_order(TripOrder(id="O9", customer_id="C9", status=OrderStatus.OUT_FOR_DELIVERY))

    with pytest.raises(InvalidState, match="Order not in this trip"):
        mark_delivered(store, "T", "O9", "R")


def test_order_status_error_names_actual_status(store):
    mark_delivered(store, "T", "O1", "R")

    with pytest.raises(InvalidState, match="Order is DELIVERED, expected OUT_FOR_DELIVERY"):
        mark_delivered(store, "T", "O1", "R")


def test_forbidden_is_checked_before_trip_status():
    """
    A stranger poking at a finished trip learns it is not theirs, nothing more.
    """
    store = seed_two_stop_trip(InMemoryTripStore(), status=TripStatus.COMPLETED)

    with pytest.raises(Forbidden):
        mark_delivered(store, "T", "O1", "someone-else")


# --- Transitions ---

def test_last_delivery_completes_trip(store, clock):
    first = mark_delivered(store, "T", "O1", "R", clock=clock)

    assert first.all_delivered is False
    assert first.completed_at is None
    assert store.get_trip("T").status == TripStatus.IN_PROGRESS
    assert store.get_order("O1").status == OrderStatus.DELIVERED

    clock.advance(minutes=7)
    second = mark_delivered(store, "T", "O2", "R", clock=clock)

    assert second.all_delivered is True
    assert second.completed_at == clock.now
    trip = store.get_trip("T")
    assert trip.status == TripStatus.COMPLETED
    assert trip.completed_at == clock.now


def test_cancelled_orders_do_not_block_completion(store):
    store.add_order(TripOrder(
        id="O3", customer_id="C3", status=OrderStatus.CANCELLED, delivery_trip_id="T", delivery_sequence=3,
    ))

    mark_delivered(store, "T", "O1", "R")
    outcome = mark_delivered(store, "T", "O2", "R")

    assert outcome.all_delivered is True


def test_status_log_records_cash_and_note(store):
    mark_delivered(store, "T", "O1", "R", collected_amount=250, note="left with security")

    logs = store.status_logs("O1")
    assert len(logs) == 1
    assert logs[0].status == OrderStatus.DELIVERED
    assert logs[0].note == "Delivered by rider. COD collected: ₹250. Note: left with security"


def test_delivery_note_without_extras():
    assert build_delivery_note() == "Delivered by rider"
    assert build_delivery_note(collected_amount=0) == "Delivered by rider. COD collected: ₹0"


def test_failure_inside_transaction_rolls_everything_back(store, monkeypatch):
    def broken_log(self, order_id, status, note):
        raise RuntimeError("disk full")

    monkeypatch.setattr("trips.store._InMemoryTransaction.append_status_log", broken_log)

    with pytest.raises(RuntimeError):
        mark_delivered(store, "T", "O1", "R")

    assert store.get_order("O1").status == OrderStatus.OUT_FOR_DELIVERY
    assert store.get_trip("T").status == TripStatus.IN_PROGRESS


# --- Concurrency ---

@pytest.mark.parametrize("seed", range(5))
def test_concurrent_deliveries_complete_trip_exactly_once(seed):
    """
    Every order of one trip confirmed from its own thread, in a random order:
    exactly one confirmation reports the trip complete.
    """
    rng = random.Random(seed)
    store = InMemoryTripStore()
    store.add_trip(Trip(id="T", rider_id="R", store_id="S", status=TripStatus.IN_PROGRESS))
    order_ids = [f"O{i}" for i in range(12)]
    for sequence, order_id in enumerate(order_ids, start=1):
        store.add_order(TripOrder(
            id=order_id, customer_id=f"C{sequence}", status=OrderStatus.OUT_FOR_DELIVERY,
            delivery_trip_id="T", delivery_sequence=sequence,
        ))
    rng.shuffle(order_ids)

    start = threading.Barrier(len(order_ids))

    def deliver(order_id):
        start.wait()
        return mark_delivered(store, "T", order_id, "R")

    with ThreadPoolExecutor(max_workers=len(order_ids)) as pool:
        outcomes = list(pool.map(deliver, order_ids))

    assert sum(outcome.all_delivered for outcome in outcomes) == 1
    assert sum(outcome.completed_at is not None for outcome in outcomes) == 1
    assert store.get_trip("T").status == TripStatus.COMPLETED
    assert all(order.status == OrderStatus.DELIVERED for order in store.list_trip_orders("T"))


def test_same_order_confirmed_twice_concurrently_succeeds_once(store):
    start = threading.Barrier(4)

    def deliver(_):
        start.wait()
        try:
            mark_delivered(store, "T", "O1", "R")
            return "ok"
        except InvalidState:
            return "rejected"

    with ThreadPoolExecutor(max_workers=4) as pool:
        results = list(pool.map(deliver, range(4)))

    assert results.count("ok") == 1
    assert results.count("rejected") == 3
    assert len(store.status_logs("O1")) == 1


# --- Start / cancel ---

def test_start_trip_dispatches_ready_orders(clock):
    store = seed_two_stop_trip(InMemoryTripStore(), status=TripStatus.CREATED, order_status=OrderStatus.READY)
    store.add_order(TripOrder(
        id="O3", customer_id="C3", status=OrderStatus.CANCELLED, delivery_trip_id="T", delivery_sequence=3,
    ))

    dispatched = start_trip(store, "T", clock=clock)

    assert dispatched == ["O1", "O2"]
    trip = store.get_trip("T")
    assert trip.status == TripStatus.IN_PROGRESS
    assert trip.started_at == clock.now
    assert store.get_order("O3").status == OrderStatus.CANCELLED
    assert store.status_logs("O1")[0].note == "Trip started"


def test_start_trip_twice_is_rejected(store):
    with pytest.raises(InvalidState, match="Cannot start trip in IN_PROGRESS status"):
        start_trip(store, "T")


def test_cancel_trip_releases_orders():
    store = seed_two_stop_trip(InMemoryTripStore(), status=TripStatus.CREATED, order_status=OrderStatus.READY)

    cancel_trip(store, "T")

    assert store.get_trip("T").status == TripStatus.CANCELLED
    assert store.list_trip_orders("T") == []
    assert store.get_order("O1").delivery_trip_id is None


def test_started_trip_cannot_be_cancelled(store):
    with pytest.raises(InvalidState, match="Cannot cancel trip in IN_PROGRESS status"):
        cancel_trip(store, "T")


def test_state_machine_logs_completion(store, caplog):
    mark_delivered(store, "T", "O1", "R")
    with caplog.at_level("INFO", logger=state_machine.__name__):
        mark_delivered(store, "T", "O2", "R")

    assert "Trip T completed" in caplog.text
