"""
Delivery trips domain package.

Public API:
- Domain models: Trip, TripOrder, StoreInfo, TripStatus, OrderStatus, PaymentMethod, DeliveryOutcome
- Store: TripStore, InMemoryTripStore
- State machine: mark_delivered, start_trip, cancel_trip
"""
from .errors import Forbidden, InvalidRequest, InvalidState, NotFound, TransactionConflict, TripStateException
from .models import (
    DeliveryOutcome,
    OrderStatus,
    PaymentMethod,
    RiderProfile,
    StatusLog,
    StoreInfo,
    Trip,
    TripOrder,
    TripStatus,
)
from .state_machine import cancel_trip, mark_delivered, start_trip
from .store import InMemoryTripStore, TripStore, TripTransaction

__all__ = [
    "DeliveryOutcome",
    "Forbidden",
    "InMemoryTripStore",
    "InvalidRequest",
    "InvalidState",
    "NotFound",
    "OrderStatus",
    "PaymentMethod",
    "RiderProfile",
    "StatusLog",
    "StoreInfo",
    "TransactionConflict",
    "Trip",
    "TripOrder",
    "TripStateException",
    "TripStatus",
    "TripStore",
    "TripTransaction",
    "cancel_trip",
    "mark_delivered",
    "start_trip",
]
