"""
Purpose: Core data models for the couriers domain.
What it does:
Defines the structure of a Courier, their delivery log and last known location
without relying on any ORM.

The courier status is never stored. It is derived on every read from the
availability flag and the assigned order id, so it cannot drift.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Tuple

from orders.models import OrderLine

LatLng = Tuple[float, float]


class CourierStatus(str, Enum):
    OFFLINE = "offline"
    IDLE = "idle"
    ON_DELIVERY = "on_delivery"


def derive_status(available: bool, assigned_order_id: Optional[str]) -> CourierStatus:
    if assigned_order_id:
        return CourierStatus.ON_DELIVERY
    if available:
        return CourierStatus.IDLE
    return CourierStatus.OFFLINE


@dataclass(frozen=True)
class LocationFix:
    lat: float
    lng: float
    at: datetime

    @property
    def coordinates(self) -> LatLng:
        return (self.lat, self.lng)


@dataclass(frozen=True)
class DeliveryLogEntry:
    """
    Snapshot of a completed delivery. Delivered orders leave the live order set,
    so this entry is the only record of them.
    """
    order_id: str
    delivered_at: datetime
    amount: float
    customer: str = "Guest"
    destination: Optional[str] = None
    lines: Tuple[OrderLine, ...] = ()


@dataclass
class Courier:
    id: str
    name: str
    phone: str
    vehicle: str = ""
    plate: str = ""

    # operator-declared willingness to work
    available: bool = False
    assigned_order_id: Optional[str] = None

    last_location: Optional[LocationFix] = None
    delivery_log: List[DeliveryLogEntry] = field(default_factory=list)

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    last_update: Optional[datetime] = None

    @property
    def status(self) -> CourierStatus:
        return derive_status(self.available, self.assigned_order_id)

    @property
    def deliveries_count(self) -> int:
        return len(self.delivery_log)

    @property
    def location(self) -> Optional[LatLng]:
        if self.last_location is None:
            return None
        return self.last_location.coordinates

    @classmethod
    def new(
        cls,
        name: str,
        phone: str,
        vehicle: str = "",
        plate: str = "",
        created_at: Optional[datetime] = None,
    ) -> Courier:
        created_at = created_at or datetime.now(timezone.utc)
        return cls(
            id=f"drv_{uuid.uuid4().hex[:6]}",
            name=name,
            phone=phone,
            vehicle=vehicle,
            plate=plate,
            created_at=created_at,
            last_update=created_at,
        )
