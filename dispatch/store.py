"""
Purpose: The authoritative in-memory registry of Orders and Couriers.
What it does:
- Owns the live order set and the courier roster
- Applies every status transition under one re-entrant lock, so an order and
  its courier always change together
- Hands out detached copies on every read; callers can never observe (or
  mutate) a half-updated record

Provides operations:
   - add_order / get_order / list_orders
   - mark_paid / assign / complete_delivery / cancel_order / delete_order
   - add_courier / get_courier / list_couriers / set_availability
   - update_location / record_run_position / remove_courier / delivery_log

Rule: Store owns state and invariants. Simulation, events and orchestration
live in the service.
"""

from __future__ import annotations

import copy
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from couriers.models import Courier, CourierStatus, DeliveryLogEntry
from orders.models import Order, OrderStatus, TimelineEntry
from .errors import MissingDestination, NoActiveAssignment, NotFound
from .state_machines.courier_state import (
    check_courier_free,
    handle_courier_assignment,
    log_delivery,
    record_courier_location,
    release_courier,
    set_courier_availability,
)
from .state_machines.order_state import (
    check_order_assignable,
    transition_order_to_cancelled,
    transition_order_to_delivered,
    transition_order_to_on_the_way,
    transition_order_to_paid,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Assignment:
    order: Order
    courier: Courier
    entry: TimelineEntry


@dataclass(frozen=True)
class Completion:
    order: Order
    courier: Courier
    log_entry: DeliveryLogEntry
    entry: TimelineEntry


@dataclass(frozen=True)
class Removal:
    order: Order
    released_courier_id: Optional[str]
    entry: Optional[TimelineEntry] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_status_filter(status: Any, kind: type = OrderStatus) -> Any:
    """
    None means no filter. Raises ValueError for anything that is not a known
    status of the given enum.
    """
    if status is None or isinstance(status, kind):
        return status
    if not isinstance(status, str):
        raise ValueError(f"unknown status filter {status!r}")
    return kind(status.strip().lower())


class DispatchStore:
    """
    In-memory dispatch state:

    orders   : order id   -> Order   (live set; delivered orders are removed)
    couriers : courier id -> Courier (never removed while holding an order)
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._orders: Dict[str, Order] = {}
        self._couriers: Dict[str, Courier] = {}
        self._lock = threading.RLock()
        self._clock = clock or _utcnow

    def now(self) -> datetime:
        return self._clock()

    # --- Internal lookups (caller holds the lock) ---

    def _order(self, order_id: str) -> Order:
        order = self._orders.get(order_id)
        if order is None:
            raise NotFound(f"order {order_id} not found")
        return order

    def _courier(self, courier_id: str) -> Courier:
        courier = self._couriers.get(courier_id)
        if courier is None:
            raise NotFound(f"courier {courier_id} not found")
        return courier

    def _release_courier_of(self, order_id: str, courier_id: Optional[str], at: datetime) -> Optional[str]:
        if courier_id is None:
            return None
        courier = self._couriers.get(courier_id)
        if courier is not None and courier.assigned_order_id == order_id:
            release_courier(courier, at)
            logger.info("Released courier %s from order %s (now %s)", courier_id, order_id, courier.status.value)
        return courier_id

    # --- Orders ---

    def add_order(self, order: Order) -> Order:
        with self._lock:
            if order.id in self._orders:
                raise ValueError(f"duplicate order id {order.id}")
            self._orders[order.id] = copy.deepcopy(order)
            logger.info("Order %s created (amount=%.2f, mode=%s)", order.id, order.amount, order.delivery.mode.value)
            return copy.deepcopy(order)

    def get_order(self, order_id: str) -> Order:
        with self._lock:
            return copy.deepcopy(self._order(order_id))

    def list_orders(self, status: Union[OrderStatus, str, None] = None) -> List[Order]:
        try:
            wanted = parse_status_filter(status)
        except ValueError:
            # unknown status string matches nothing
            return []
        with self._lock:
            return [
                copy.deepcopy(order)
                for order in self._orders.values()
                if wanted is None or order.status == wanted
            ]

    def mark_paid(self, order_id: str) -> tuple:
        """
        Returns (order, entry). entry is None when the order was already paid.
        """
        with self._lock:
            order = self._order(order_id)
            changed = transition_order_to_paid(order, self.now())
            entry = order.timeline[-1] if changed else None
            if changed:
                logger.info("Order %s paid", order_id)
            return copy.deepcopy(order), entry

    def assign(self, courier_id: str, order_id: str, require_paid: bool = False) -> Assignment:
        """
        Bind one order to one courier. All checks run before anything is touched,
        so a failure leaves both records unchanged.
        """
        with self._lock:
            courier = self._courier(courier_id)
            order = self._order(order_id)

            check_order_assignable(order, require_paid=require_paid)
            check_courier_free(courier)
            if order.destination is None:
                raise MissingDestination(f"order {order_id} has no destination coordinate to deliver to")

            at = self.now()
            handle_courier_assignment(courier, order.id, at)
            entry = transition_order_to_on_the_way(order, courier.id, at)
            logger.info("Order %s assigned to courier %s", order_id, courier_id)
            return Assignment(order=copy.deepcopy(order), courier=copy.deepcopy(courier), entry=entry)

    def complete_delivery(self, courier_id: str, order_id: Optional[str] = None) -> Completion:
        """
        Finish the courier's delivery: log it, release the courier, and drop the
        order from the live set.
        """
        with self._lock:
            courier = self._courier(courier_id)
            order_id = order_id or courier.assigned_order_id
            if not order_id:
                raise NoActiveAssignment(f"no order assigned to courier {courier_id}")

            order = self._order(order_id)
            at = self.now()
            entry = transition_order_to_delivered(order, courier.id, at)
            log_entry = log_delivery(courier, order, at)
            release_courier(courier, at)

            del self._orders[order.id]
            logger.info("Order %s delivered by courier %s (amount=%.2f)", order.id, courier_id, log_entry.amount)
            return Completion(
                order=copy.deepcopy(order),
                courier=copy.deepcopy(courier),
                log_entry=log_entry,
                entry=entry,
            )

    def cancel_order(self, order_id: str) -> Removal:
        """
        Order stays in the live set as cancelled; its courier is freed in the same step.
        """
        with self._lock:
            order = self._order(order_id)
            at = self.now()
            courier_id = order.assigned_courier_id
            entry = transition_order_to_cancelled(order, at)
            released = self._release_courier_of(order.id, courier_id, at)
            logger.info("Order %s cancelled", order_id)
            return Removal(order=copy.deepcopy(order), released_courier_id=released, entry=entry)

    def delete_order(self, order_id: str) -> Removal:
        """
        Administrative removal from the live set, from any status.
        """
        with self._lock:
            order = self._order(order_id)
            released = self._release_courier_of(order.id, order.assigned_courier_id, self.now())
            order.assigned_courier_id = None
            del self._orders[order_id]
            logger.info("Order %s deleted", order_id)
            return Removal(order=copy.deepcopy(order), released_courier_id=released)

    # --- Couriers ---

    def add_courier(self, courier: Courier) -> Courier:
        with self._lock:
            if courier.id in self._couriers:
                raise ValueError(f"duplicate courier id {courier.id}")
            self._couriers[courier.id] = copy.deepcopy(courier)
            logger.info("Courier %s registered (%s)", courier.id, courier.name)
            return copy.deepcopy(courier)

    def get_courier(self, courier_id: str) -> Courier:
        with self._lock:
            return copy.deepcopy(self._courier(courier_id))

    def list_couriers(self, status: Union[CourierStatus, str, None] = None) -> List[Courier]:
        try:
            wanted = parse_status_filter(status, CourierStatus)
        except ValueError:
            return []
        with self._lock:
            return [
                copy.deepcopy(courier)
                for courier in self._couriers.values()
                if wanted is None or courier.status == wanted
            ]

    def set_availability(self, courier_id: str, available: bool) -> Courier:
        with self._lock:
            courier = self._courier(courier_id)
            set_courier_availability(courier, available, self.now())
            logger.info("Courier %s availability=%s (now %s)", courier_id, courier.available, courier.status.value)
            return copy.deepcopy(courier)

    def update_location(self, courier_id: str, lat: float, lng: float) -> Courier:
        with self._lock:
            courier = self._courier(courier_id)
            record_courier_location(courier, lat, lng, self.now())
            return copy.deepcopy(courier)

    def record_run_position(self, courier_id: str, order_id: str, lat: float, lng: float) -> Optional[Courier]:
        """
        Position feed from a simulation run. Written only while the courier is
        still assigned to the run's order; returns None when the run is stale.
        """
        with self._lock:
            courier = self._courier(courier_id)
            if courier.assigned_order_id != order_id:
                return None
            record_courier_location(courier, lat, lng, self.now())
            return copy.deepcopy(courier)

    def remove_courier(self, courier_id: str) -> Courier:
        with self._lock:
            courier = self._courier(courier_id)
            check_courier_free(courier)
            del self._couriers[courier_id]
            logger.info("Courier %s removed", courier_id)
            return copy.deepcopy(courier)

    def delivery_log(self, courier_id: str) -> List[DeliveryLogEntry]:
        with self._lock:
            return list(self._courier(courier_id).delivery_log)

    # --- Audit ---

    def invariant_violations(self) -> List[str]:
        """
        Cross-checks orders against couriers. An empty list means consistent.
        """
        problems = []
        with self._lock:
            holders: Dict[str, List[str]] = {}
            for order in self._orders.values():
                if order.assigned_courier_id is None:
                    if order.status == OrderStatus.ON_THE_WAY:
                        problems.append(f"order {order.id} is on_the_way without a courier")
                    continue
                if order.status != OrderStatus.ON_THE_WAY:
                    problems.append(f"order {order.id} has a courier while {order.status.value}")
                holders.setdefault(order.assigned_courier_id, []).append(order.id)

            for courier_id, order_ids in holders.items():
                if len(order_ids) > 1:
                    problems.append(f"courier {courier_id} holds {len(order_ids)} orders: {order_ids}")
                courier = self._couriers.get(courier_id)
                if courier is None or courier.assigned_order_id != order_ids[0]:
                    problems.append(f"order {order_ids[0]} points at courier {courier_id} which does not point back")

            for courier in self._couriers.values():
                if courier.assigned_order_id is None:
                    continue
                order = self._orders.get(courier.assigned_order_id)
                if order is None or order.assigned_courier_id != courier.id:
                    problems.append(f"courier {courier.id} points at order {courier.assigned_order_id} which does not point back")
        return problems
