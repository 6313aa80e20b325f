"""
Purpose: Domain models for delivery trips.
What it does:
- Defines core data structures, independent of the Django ORM:
- Trip (id, rider, store, status, timestamps)
- TripOrder (the subset of an order this package cares about)
- StatusLog (append-only order history)
- RiderProfile (what a customer is allowed to see about the rider)
- StoreInfo (pickup point shown to riders and customers)

Defines enums:
- TripStatus = CREATED | IN_PROGRESS | COMPLETED | CANCELLED
- OrderStatus = PENDING | CONFIRMED | PREPARING | READY | OUT_FOR_DELIVERY | DELIVERED | CANCELLED
- PaymentMethod = ONLINE | COD

Rule: No store access, no caching. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple

LatLon = Tuple[float, float]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TripStatus(str, Enum):
    CREATED = "CREATED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class OrderStatus(str, Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    READY = "READY"
    OUT_FOR_DELIVERY = "OUT_FOR_DELIVERY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"


class PaymentMethod(str, Enum):
    ONLINE = "ONLINE"
    COD = "COD"


@dataclass(frozen=True)
class StoreInfo:
    id: str
    name: str
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: str = ""


@dataclass
class Trip:
    """
    A rider's assigned batch of deliveries, sequenced by stop order.
    """
    id: str
    rider_id: str
    store_id: str
    status: TripStatus = TripStatus.CREATED

    created_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    # Filled only by listings that need them (e.g. a rider's trip list)
    orders: List[TripOrder] = field(default_factory=list)
    store: Optional[StoreInfo] = None


@dataclass
class TripOrder:
    """
    One order's delivery stop within a trip.
    """
    id: str
    customer_id: str
    status: OrderStatus = OrderStatus.PENDING

    delivery_trip_id: Optional[str] = None
    delivery_sequence: Optional[int] = None
    delivery_lat: Optional[float] = None
    delivery_lng: Optional[float] = None
    delivery_address: str = ""

    # What the rider collects and who to call at the door
    total_amount: Optional[Decimal] = None
    payment_method: Optional[PaymentMethod] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    @property
    def delivery_coordinates(self) -> Optional[LatLon]:
        if self.delivery_lat is None or self.delivery_lng is None:
            return None
        return (self.delivery_lat, self.delivery_lng)


@dataclass(frozen=True)
class StatusLog:
    order_id: str
    status: OrderStatus
    note: str
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class RiderProfile:
    id: str
    name: str
    phone: Optional[str] = None
    vehicle_type: Optional[str] = None


@dataclass(frozen=True)
class DeliveryOutcome:
    """
    Result of confirming a single delivery.
    all_delivered is True exactly once per trip: for the call that completed it.
    """
    all_delivered: bool
    order: TripOrder
    completed_at: Optional[datetime] = None
