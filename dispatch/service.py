"""
Purpose: The one entry point collaborators call (order intake, operator console, tracking display).
What it does:
- Validates inbound payloads, then applies the mutation on the DispatchStore
- Starts a SimulationRun on assignment (merchant -> order destination) and stops it
  on delivery, cancellation or deletion, inside the same critical section
- Feeds simulated positions back into the courier's last known location
- Auto-completes the order when the simulated courier arrives (policy switch)
- Publishes every timeline entry as a DispatchEvent once the locks are released

Rule: Errors propagate to the caller unchanged. Only observer callbacks are guarded.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, List, Optional, Sequence, Union

from couriers.models import Courier, CourierStatus, DeliveryLogEntry
from orders.models import CANCELLED, ORDER_CREATED, Order, OrderStatus
from simulation.manager import SimulationManager
from simulation.models import SimulationSnapshot
from simulation.policy import SimulationPolicy
from simulation.run import SimulationRun
from .errors import DispatchError, NotFound
from .events import ORDER_DELETED, DispatchEvent, EventBus
from .policy import DispatchPolicy, default_dispatch_policy
from .settings import Settings
from .store import DispatchStore
from .validation import (
    parse_courier_fields,
    parse_customer,
    parse_delivery,
    parse_lines,
    parse_location,
)

logger = logging.getLogger(__name__)


class DispatchService:
    def __init__(
        self,
        store: Optional[DispatchStore] = None,
        simulations: Optional[SimulationManager] = None,
        policy: Optional[DispatchPolicy] = None,
        events: Optional[EventBus] = None,
        simulation_policy: Optional[SimulationPolicy] = None,
    ):
        self.policy = policy or default_dispatch_policy()
        self.policy.validate()
        self.store = store or DispatchStore()
        self.simulations = simulations or SimulationManager(policy=simulation_policy)
        self.events = events or EventBus()

        # store mutation + simulation start/stop happen under this lock
        self._lock = threading.RLock()

        self.simulations.add_snapshot_listener(self._on_snapshot)
        self.simulations.add_arrival_listener(self._on_arrival)

    @classmethod
    def from_settings(cls, settings: Settings, autostart: bool = True) -> DispatchService:
        return cls(
            simulations=SimulationManager(policy=settings.simulation, autostart=autostart),
            policy=settings.dispatch,
        )

    def _emit(self, events: Sequence[DispatchEvent]) -> None:
        for event in events:
            self.events.publish(event)

    def _stop_run_for_order(self, order_id: str) -> None:
        sim_run = self.simulations.find_by_order(order_id)
        if sim_run is not None:
            self.simulations.stop(sim_run.courier_id)

    # --- Orders (order-intake collaborator) ---

    def create_order(
        self,
        lines: Sequence[Any],
        customer: Any = None,
        delivery: Any = None,
        notes: str = "",
    ) -> Order:
        """
        Amount is always computed from the lines; a client-supplied total is never read.
        """
        order = Order.new(
            lines=parse_lines(lines),
            customer=parse_customer(customer),
            delivery=parse_delivery(delivery),
            notes=notes or "",
            created_at=self.store.now(),
        )
        stored = self.store.add_order(order)
        self._emit([DispatchEvent(stored.id, ORDER_CREATED, stored.created_at)])
        return stored

    def mark_paid(self, order_id: str) -> Order:
        order, entry = self.store.mark_paid(order_id)
        if entry is not None:
            self._emit([DispatchEvent(order.id, entry.event, entry.at)])
        return order

    def get_order(self, order_id: str) -> Order:
        return self.store.get_order(order_id)

    def list_orders(self, status: Union[OrderStatus, str, None] = None) -> List[Order]:
        return self.store.list_orders(status)

    def cancel_order(self, order_id: str) -> Order:
        with self._lock:
            removal = self.store.cancel_order(order_id)
            self._stop_run_for_order(order_id)

        self._emit([DispatchEvent(order_id, CANCELLED, removal.entry.at, removal.released_courier_id)])
        return removal.order

    def delete_order(self, order_id: str) -> Order:
        with self._lock:
            removal = self.store.delete_order(order_id)
            self._stop_run_for_order(order_id)

        self._emit([DispatchEvent(order_id, ORDER_DELETED, self.store.now(), removal.released_courier_id)])
        return removal.order

    # --- Couriers (operator collaborator) ---

    def register_courier(self, name: str, phone: str, vehicle: str = "", plate: str = "") -> Courier:
        name, phone = parse_courier_fields(name, phone)
        courier = Courier.new(
            name=name,
            phone=phone,
            vehicle=(vehicle or "").strip(),
            plate=(plate or "").strip(),
            created_at=self.store.now(),
        )
        return self.store.add_courier(courier)

    def set_availability(self, courier_id: str, available: bool) -> Courier:
        return self.store.set_availability(courier_id, available)

    def update_courier_location(self, courier_id: str, lat: Any, lng: Any) -> Courier:
        lat, lng = parse_location(lat, lng)
        return self.store.update_location(courier_id, lat, lng)

    def get_courier(self, courier_id: str) -> Courier:
        return self.store.get_courier(courier_id)

    def list_couriers(self, status: Union[CourierStatus, str, None] = None) -> List[Courier]:
        return self.store.list_couriers(status)

    def get_delivery_log(self, courier_id: str) -> List[DeliveryLogEntry]:
        return self.store.delivery_log(courier_id)

    def remove_courier(self, courier_id: str) -> Courier:
        with self._lock:
            courier = self.store.remove_courier(courier_id)
            self.simulations.stop(courier_id)
        return courier

    # --- Dispatch ---

    def assign(self, courier_id: str, order_id: str) -> Order:
        """
        The single trigger point for a simulation run: origin is the merchant,
        destination is the order's resolved coordinate.
        """
        with self._lock:
            assignment = self.store.assign(
                courier_id,
                order_id,
                require_paid=self.policy.require_payment_before_assign,
            )
            self.simulations.start(
                courier_id=courier_id,
                order_id=order_id,
                origin=self.policy.merchant_location,
                destination=assignment.order.destination,
            )

        entry = assignment.entry
        self._emit([DispatchEvent(order_id, entry.event, entry.at, courier_id)])
        return assignment.order

    def mark_delivered(self, courier_id: str, order_id: Optional[str] = None) -> DeliveryLogEntry:
        with self._lock:
            completion = self.store.complete_delivery(courier_id, order_id)
            sim_run = self.simulations.get(courier_id)
            if sim_run is not None and sim_run.order_id == completion.order.id:
                self.simulations.stop(courier_id)

        entry = completion.entry
        self._emit([DispatchEvent(completion.order.id, entry.event, entry.at, courier_id)])
        return completion.log_entry

    # --- Tracking (display collaborator) ---

    def track_courier(self, courier_id: str) -> Optional[SimulationSnapshot]:
        self.store.get_courier(courier_id)
        return self.simulations.snapshot(courier_id)

    def track_order(self, order_id: str) -> Optional[SimulationSnapshot]:
        self.store.get_order(order_id)
        sim_run = self.simulations.find_by_order(order_id)
        if sim_run is None:
            return None
        return sim_run.snapshot(self.simulations.now())

    # --- Simulation controls (operator collaborator) ---

    def pause_simulation(self, courier_id: str) -> bool:
        return self.simulations.pause(courier_id)

    def resume_simulation(self, courier_id: str) -> bool:
        return self.simulations.resume(courier_id)

    def simulate_traffic(self, courier_id: str, seconds: Optional[float] = None) -> bool:
        return self.simulations.simulate_traffic(courier_id, seconds)

    def skip_to_destination(self, courier_id: str) -> Optional[SimulationSnapshot]:
        return self.simulations.skip_to_destination(courier_id)

    def shutdown(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        self.simulations.stop_all(wait=wait, timeout=timeout)

    # --- Simulation observers ---

    def _on_snapshot(self, snapshot: SimulationSnapshot) -> None:
        sim_run = self.simulations.get(snapshot.courier_id)
        if sim_run is None or sim_run.order_id != snapshot.order_id or sim_run.stopped:
            # late tick from a run that was already replaced or stopped
            return

        lat, lng = snapshot.position
        try:
            # the store re-checks the assignment under its own lock
            recorded = self.store.record_run_position(snapshot.courier_id, snapshot.order_id, lat, lng)
        except NotFound:
            logger.debug("Courier %s vanished mid-run", snapshot.courier_id)
            return
        if recorded is None:
            logger.debug("Dropped stale position for courier %s (order %s)", snapshot.courier_id, snapshot.order_id)

    def _on_arrival(self, sim_run: SimulationRun, snapshot: SimulationSnapshot) -> None:
        logger.info("Courier %s arrived with order %s", sim_run.courier_id, sim_run.order_id)
        if not self.policy.auto_complete_on_arrival:
            return

        try:
            self.mark_delivered(sim_run.courier_id, sim_run.order_id)
        except DispatchError as exc:
            logger.info("Arrival of %s not auto-completed: %s", sim_run.order_id, exc)
