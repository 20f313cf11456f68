from datetime import datetime
from typing import Optional

from couriers.models import Courier, DeliveryLogEntry, LocationFix
from orders.models import Order
from ..errors import CourierBusy


def check_courier_free(courier: Courier) -> None:
    """One active order per courier."""
    if courier.assigned_order_id is not None:
        raise CourierBusy(f"Courier {courier.id} already has an active delivery ({courier.assigned_order_id})")


def handle_courier_assignment(courier: Courier, order_id: str, at: datetime) -> Courier:
    """
    Binds the order to the courier. The derived status becomes on_delivery
    as a consequence; it is never written directly.
    """
    check_courier_free(courier)
    courier.assigned_order_id = order_id
    courier.last_update = at
    return courier


def release_courier(courier: Courier, at: datetime) -> Courier:
    """
    Clears the assignment. Status falls back to idle or offline depending on
    the availability flag alone.
    """
    courier.assigned_order_id = None
    courier.last_update = at
    return courier


def set_courier_availability(courier: Courier, available: bool, at: datetime) -> Courier:
    courier.available = bool(available)
    courier.last_update = at
    return courier


def record_courier_location(courier: Courier, lat: float, lng: float, at: datetime) -> LocationFix:
    courier.last_location = LocationFix(lat=lat, lng=lng, at=at)
    return courier.last_location


def log_delivery(courier: Courier, order: Order, at: datetime) -> DeliveryLogEntry:
    """
    Snapshot the order into the courier's delivery log. The log entry outlives
    the order, which is dropped from the live set right after.
    """
    destination: Optional[str] = order.destination_label
    entry = DeliveryLogEntry(
        order_id=order.id,
        delivered_at=at,
        amount=order.amount,
        customer=order.customer.name or "Guest",
        destination=destination,
        lines=tuple(order.lines),
    )
    courier.delivery_log.append(entry)
    return entry
