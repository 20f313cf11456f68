"""
Purpose: Owns every live SimulationRun and the threads that tick them.
What it does:
- At most one run per courier; starting a new one retires the old one
- One ticker thread per run, so couriers never block each other
- Fans out per-tick snapshots and arrivals to registered listeners
- Exposes manual stepping (tick / tick_all) for tests and batch scripts

The ticker is a background heartbeat in the spirit of a cron loop: it wakes up
every tick interval, advances its run, and exits once the run is finished.
"""

from __future__ import annotations

import logging
import random
import threading
import time
from typing import Callable, Dict, List, Optional

from routing.geo import LatLng
from routing.route_service import build_route
from .models import SimulationPhase, SimulationSnapshot
from .policy import SimulationPolicy, default_simulation_policy
from .run import SimulationRun

logger = logging.getLogger(__name__)

SnapshotListener = Callable[[SimulationSnapshot], None]
ArrivalListener = Callable[[SimulationRun, SimulationSnapshot], None]


class _RunTicker(threading.Thread):
    def __init__(self, manager: SimulationManager, sim_run: SimulationRun):
        super().__init__(name=f"sim-{sim_run.courier_id}", daemon=True)
        self._manager = manager
        self.sim_run = sim_run
        self._cancelled = threading.Event()

    def cancel(self) -> None:
        self._cancelled.set()

    def run(self) -> None:
        interval = self.sim_run.policy.tick_interval_s
        while not self._cancelled.wait(interval):
            if self.sim_run.finished:
                break
            self._manager._advance(self.sim_run, self._manager.now())
        logger.debug("Ticker for %s exited", self.sim_run.courier_id)


class SimulationManager:
    """
    Registry of active runs keyed by courier id.

    With autostart=False no threads are created and runs only move when
    tick()/tick_all() is called, which keeps tests deterministic.
    """

    def __init__(
        self,
        policy: Optional[SimulationPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
        autostart: bool = True,
    ):
        self.policy = policy or default_simulation_policy()
        self.policy.validate()
        self._clock = clock
        self.autostart = autostart

        self._lock = threading.Lock()
        self._runs: Dict[str, SimulationRun] = {}
        self._tickers: Dict[str, _RunTicker] = {}

        self._snapshot_listeners: List[SnapshotListener] = []
        self._arrival_listeners: List[ArrivalListener] = []

    def now(self) -> float:
        return self._clock()

    # --- Listeners ---

    def add_snapshot_listener(self, listener: SnapshotListener) -> None:
        self._snapshot_listeners.append(listener)

    def add_arrival_listener(self, listener: ArrivalListener) -> None:
        self._arrival_listeners.append(listener)

    # --- Lifecycle ---

    def start(
        self,
        courier_id: str,
        order_id: str,
        origin: LatLng,
        destination: LatLng,
        policy: Optional[SimulationPolicy] = None,
    ) -> SimulationRun:
        """
        Start a run for the courier. An existing run for the same courier is
        stopped first (reassignment).
        """
        policy = policy or self.policy
        route = build_route(origin, destination, policy.route_offset_degrees)
        sim_run = SimulationRun(
            courier_id=courier_id,
            order_id=order_id,
            route=route,
            policy=policy,
            started_at=self.now(),
            rng=random.Random(policy.seed),
        )

        ticker = _RunTicker(self, sim_run) if self.autostart else None
        with self._lock:
            previous = self._runs.pop(courier_id, None)
            previous_ticker = self._tickers.pop(courier_id, None)
            self._runs[courier_id] = sim_run
            if ticker is not None:
                self._tickers[courier_id] = ticker

        if previous is not None:
            previous.stop()
            logger.info("Replaced run %s/%s for courier %s", previous.courier_id, previous.order_id, courier_id)
        if previous_ticker is not None:
            previous_ticker.cancel()
        if ticker is not None:
            ticker.start()

        logger.info("Started run for courier %s, order %s (%d route points)", courier_id, order_id, len(route))
        return sim_run

    def stop(self, courier_id: str) -> bool:
        """
        Destroy the courier's run. Does not wait for the ticker thread, which
        may be blocked in a listener that needs the caller's locks.
        """
        with self._lock:
            sim_run = self._runs.pop(courier_id, None)
            ticker = self._tickers.pop(courier_id, None)

        if ticker is not None:
            ticker.cancel()
        if sim_run is None:
            return False

        sim_run.stop()
        logger.info("Stopped run for courier %s, order %s", courier_id, sim_run.order_id)
        return True

    def stop_all(self, wait: bool = False, timeout: Optional[float] = None) -> None:
        with self._lock:
            runs = list(self._runs.values())
            tickers = list(self._tickers.values())
            self._runs.clear()
            self._tickers.clear()

        for sim_run in runs:
            sim_run.stop()
        for ticker in tickers:
            ticker.cancel()
        if wait:
            for ticker in tickers:
                if ticker is not threading.current_thread():
                    ticker.join(timeout)

    # --- Lookups ---

    def get(self, courier_id: str) -> Optional[SimulationRun]:
        with self._lock:
            return self._runs.get(courier_id)

    def find_by_order(self, order_id: str) -> Optional[SimulationRun]:
        with self._lock:
            for sim_run in self._runs.values():
                if sim_run.order_id == order_id:
                    return sim_run
        return None

    def active_runs(self) -> List[SimulationRun]:
        with self._lock:
            return list(self._runs.values())

    def snapshot(self, courier_id: str) -> Optional[SimulationSnapshot]:
        sim_run = self.get(courier_id)
        if sim_run is None:
            return None
        return sim_run.snapshot(self.now())

    def snapshots(self) -> List[SimulationSnapshot]:
        now = self.now()
        return [sim_run.snapshot(now) for sim_run in self.active_runs()]

    # --- Operator controls ---

    def pause(self, courier_id: str) -> bool:
        sim_run = self.get(courier_id)
        if sim_run is None:
            return False
        sim_run.pause()
        return True

    def resume(self, courier_id: str) -> bool:
        sim_run = self.get(courier_id)
        if sim_run is None:
            return False
        sim_run.resume()
        return True

    def simulate_traffic(self, courier_id: str, seconds: Optional[float] = None) -> bool:
        sim_run = self.get(courier_id)
        if sim_run is None:
            return False
        sim_run.simulate_traffic(self.now(), seconds)
        return True

    def skip_to_destination(self, courier_id: str) -> Optional[SimulationSnapshot]:
        sim_run = self.get(courier_id)
        if sim_run is None or not sim_run.skip_to_destination():
            return None
        snapshot = sim_run.snapshot(self.now())
        self._publish(sim_run, snapshot)
        return snapshot

    # --- Manual stepping ---

    def tick(self, courier_id: str, now: Optional[float] = None) -> Optional[SimulationSnapshot]:
        sim_run = self.get(courier_id)
        if sim_run is None:
            return None
        return self._advance(sim_run, self.now() if now is None else now)

    def tick_all(self, now: Optional[float] = None) -> List[SimulationSnapshot]:
        now = self.now() if now is None else now
        snapshots = []
        for sim_run in self.active_runs():
            snapshot = self._advance(sim_run, now)
            if snapshot is not None:
                snapshots.append(snapshot)
        return snapshots

    # --- Internals ---

    def _advance(self, sim_run: SimulationRun, now: float) -> Optional[SimulationSnapshot]:
        snapshot = sim_run.tick(now)
        if snapshot is None:
            return None
        self._publish(sim_run, snapshot)
        return snapshot

    def _publish(self, sim_run: SimulationRun, snapshot: SimulationSnapshot) -> None:
        for listener in list(self._snapshot_listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("Snapshot listener failed for courier %s", sim_run.courier_id)

        if snapshot.phase != SimulationPhase.ARRIVED or not sim_run.claim_arrival():
            return

        self._retire(sim_run)
        for listener in list(self._arrival_listeners):
            try:
                listener(sim_run, snapshot)
            except Exception:
                logger.exception("Arrival listener failed for courier %s", sim_run.courier_id)

    def _retire(self, sim_run: SimulationRun) -> None:
        """Drop an arrived run from the registry, unless it was already replaced."""
        with self._lock:
            if self._runs.get(sim_run.courier_id) is sim_run:
                del self._runs[sim_run.courier_id]
                ticker = self._tickers.pop(sim_run.courier_id, None)
            else:
                ticker = None
        if ticker is not None:
            ticker.cancel()
