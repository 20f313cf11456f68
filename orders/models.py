"""
Purpose: Domain models for the Orders capability.
What it does:
- Defines core data structures:
- Order (id, lines, customer, delivery details, notes, timestamps, status, assigned courier, timeline)
- OrderLine (id, name, unit price, quantity)
- DeliveryDetails / Address (fulfillment mode + resolved coordinate)
- TimelineEntry (append-only event log entry)

Defines enums/constants:
- OrderStatus = pending | paid | on_the_way | delivered | cancelled
- FulfillmentMode = delivery | collect

Rule: No validation, no store access. Models only.
The amount is always computed from the lines, never stored.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Sequence, Tuple

LatLng = Tuple[float, float]


class OrderStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class FulfillmentMode(str, Enum):
    DELIVERY = "delivery"
    COLLECT = "collect"


# Timeline tags pushed to the notification collaborator
ORDER_CREATED = "order_created"
PAYMENT_CONFIRMED = "payment_confirmed"
DRIVER_ASSIGNED = "driver_assigned"
DELIVERED = "delivered"
CANCELLED = "cancelled"


@dataclass(frozen=True)
class OrderLine:
    id: str
    name: str
    price: float
    qty: int = 1

    @property
    def total(self) -> float:
        return self.price * self.qty


@dataclass(frozen=True)
class Address:
    """
    A geocoded address. The geocoding collaborator resolves text to lat/lng;
    this core only ever receives the resolved pair.
    """
    lat: float
    lng: float
    label: Optional[str] = None

    @property
    def coordinates(self) -> LatLng:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class DeliveryDetails:
    mode: FulfillmentMode = FulfillmentMode.COLLECT
    address: Optional[Address] = None

    @property
    def destination(self) -> Optional[LatLng]:
        if self.address is None:
            return None
        return self.address.coordinates


@dataclass(frozen=True)
class Customer:
    name: str = "Guest"
    phone: Optional[str] = None


@dataclass(frozen=True)
class TimelineEntry:
    at: datetime
    event: str


@dataclass
class Order:
    """
    A single order from the merchant to one customer.
    """

    id: str
    lines: List[OrderLine]
    customer: Customer = field(default_factory=Customer)
    delivery: DeliveryDetails = field(default_factory=DeliveryDetails)
    notes: str = ""

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: OrderStatus = OrderStatus.PENDING

    # set exactly while on_the_way
    assigned_courier_id: Optional[str] = None
    timeline: List[TimelineEntry] = field(default_factory=list)

    @property
    def amount(self) -> float:
        return sum(line.total for line in self.lines)

    @property
    def destination(self) -> Optional[LatLng]:
        return self.delivery.destination

    @property
    def destination_label(self) -> Optional[str]:
        if self.delivery.address is None:
            return None
        return self.delivery.address.label

    def record(self, event: str, at: datetime) -> TimelineEntry:
        entry = TimelineEntry(at=at, event=event)
        self.timeline.append(entry)
        return entry

    @staticmethod  # Factory method: fresh id, pending status, one order_created entry
    def new(
        lines: Sequence[OrderLine],
        customer: Optional[Customer] = None,
        delivery: Optional[DeliveryDetails] = None,
        notes: str = "",
        created_at: Optional[datetime] = None,
    ) -> Order:
        created_at = created_at or datetime.now(timezone.utc)
        order = Order(
            id=f"ord_{uuid.uuid4().hex[:8]}",
            lines=list(lines),
            customer=customer or Customer(),
            delivery=delivery or DeliveryDetails(),
            notes=notes,
            created_at=created_at,
        )
        order.record(ORDER_CREATED, created_at)
        return order
