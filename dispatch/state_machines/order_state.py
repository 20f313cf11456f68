"""
Order status transitions.

pending --mark_paid--> paid --assign--> on_the_way --delivered--> delivered
pending|paid|on_the_way --cancel--> cancelled

Each function checks the current status, mutates the order in place and appends
the matching timeline entry. Callers hold the store lock.
"""
from datetime import datetime

from orders.models import (
    CANCELLED,
    DELIVERED,
    DRIVER_ASSIGNED,
    PAYMENT_CONFIRMED,
    Order,
    OrderStatus,
    TimelineEntry,
)
from ..errors import InvalidTransition, NoActiveAssignment, OrderAlreadyAssigned

ASSIGNABLE = (OrderStatus.PENDING, OrderStatus.PAID)
CANCELLABLE = (OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.ON_THE_WAY)


def transition_order_to_paid(order: Order, at: datetime) -> bool:
    """
    Idempotent: an order that is already paid stays paid and gets no second
    timeline entry. Returns True only when the status actually changed.
    """
    if order.status == OrderStatus.PAID:
        return False

    if order.status != OrderStatus.PENDING:
        raise InvalidTransition(f"Cannot mark order {order.id} paid from {order.status.value}")

    order.status = OrderStatus.PAID
    order.record(PAYMENT_CONFIRMED, at)
    return True


def check_order_assignable(order: Order, require_paid: bool = False) -> None:
    """
    Called before a courier is bound to the order. Does not mutate.
    """
    if order.assigned_courier_id is not None:
        raise OrderAlreadyAssigned(f"Order {order.id} already assigned to {order.assigned_courier_id}")

    if order.status not in ASSIGNABLE:
        raise InvalidTransition(f"Cannot assign order {order.id} from {order.status.value}")

    if require_paid and order.status != OrderStatus.PAID:
        raise InvalidTransition(f"Order {order.id} must be paid before it can be assigned")


def transition_order_to_on_the_way(order: Order, courier_id: str, at: datetime) -> TimelineEntry:
    order.assigned_courier_id = courier_id
    order.status = OrderStatus.ON_THE_WAY
    return order.record(f"{DRIVER_ASSIGNED}:{courier_id}", at)


def transition_order_to_delivered(order: Order, courier_id: str, at: datetime) -> TimelineEntry:
    if order.status != OrderStatus.ON_THE_WAY:
        raise InvalidTransition(f"Cannot deliver order {order.id} from {order.status.value}")

    if order.assigned_courier_id != courier_id:
        raise NoActiveAssignment(f"Order {order.id} is not assigned to courier {courier_id}")

    order.status = OrderStatus.DELIVERED
    order.assigned_courier_id = None
    return order.record(DELIVERED, at)


def transition_order_to_cancelled(order: Order, at: datetime) -> TimelineEntry:
    """
    Administrative fallback: valid from any non-terminal status. The caller is
    responsible for releasing the courier in the same critical section.
    """
    if order.status not in CANCELLABLE:
        raise InvalidTransition(f"Cannot cancel order {order.id} from {order.status.value}")

    order.status = OrderStatus.CANCELLED
    order.assigned_courier_id = None
    return order.record(CANCELLED, at)
