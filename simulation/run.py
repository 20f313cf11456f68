"""
Purpose: One simulated delivery (the courier's moving pin).
What it does:
- Walks a courier along a fixed polyline, one tick at a time
- Flips preparing -> picked_up -> delivering on fixed delays after start
- Flips delivering -> arrived once inside the arrival threshold
- Injects random traffic pauses
- Computes ETA and remaining distance on demand

Time is passed in explicitly (`now`, seconds on any monotonic clock), so a run can
be stepped by a real ticker thread or by a test loop.

Rule: A run never raises while ticking. Inputs are validated before it is created.
"""

from __future__ import annotations

import logging
import random
import threading
from typing import List, Optional, Sequence

from routing.eta_service import EtaEstimate, estimate_eta
from routing.geo import LatLng, bearing_degrees, destination_point, distance_meters
from .models import MOVING_PHASES, SimulationPhase, SimulationSnapshot
from .policy import SimulationPolicy, default_simulation_policy

logger = logging.getLogger(__name__)


class SimulationRun:
    """
    Mutable state of one courier/order delivery. Every public method takes the
    run's own lock, so a ticker thread and operator calls can interleave safely.
    """

    def __init__(
        self,
        courier_id: str,
        order_id: str,
        route: Sequence[LatLng],
        policy: Optional[SimulationPolicy] = None,
        started_at: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if len(route) < 2:
            raise ValueError("a route needs at least two points")

        self.courier_id = courier_id
        self.order_id = order_id
        self.route: List[LatLng] = list(route)
        self.policy = policy or default_simulation_policy()
        self.started_at = started_at
        self._rng = rng or random.Random(self.policy.seed)
        self._lock = threading.Lock()

        self.position: LatLng = self.route[0]
        # index of the vertex we are leaving; the target is segment_index + 1
        self.segment_index = 0
        self.phase = SimulationPhase.PREPARING
        self.traffic_until = float("-inf")
        self.path: List[LatLng] = [self.route[0]]

        self.paused = False
        self.stopped = False
        self.ticks = 0
        self._arrival_claimed = False

    # --- Read side ---

    @property
    def destination(self) -> LatLng:
        return self.route[-1]

    @property
    def finished(self) -> bool:
        return self.stopped or self.phase == SimulationPhase.ARRIVED

    def distance_remaining_m(self) -> float:
        with self._lock:
            return distance_meters(self.position, self.destination)

    def eta(self) -> EtaEstimate:
        with self._lock:
            return self._eta()

    def snapshot(self, now: Optional[float] = None) -> SimulationSnapshot:
        with self._lock:
            return self._snapshot(now)

    def traveled_path(self) -> List[LatLng]:
        with self._lock:
            return list(self.path)

    # --- Control ---

    def pause(self) -> None:
        """Stop advancing without losing state. Resumable."""
        with self._lock:
            self.paused = True

    def resume(self) -> None:
        with self._lock:
            self.paused = False

    def stop(self) -> None:
        """Kill the run. Any tick that lands afterwards is discarded."""
        with self._lock:
            self.stopped = True

    def skip_to_destination(self) -> bool:
        """
        Administrative override: jump straight to the drop-off, no distance check.
        Returns False if the run was already stopped.
        """
        with self._lock:
            if self.stopped:
                return False
            self._arrive()
            return True

    def simulate_traffic(self, now: float, seconds: Optional[float] = None) -> float:
        """Force a traffic pause of `seconds` (defaults to the policy's manual pause)."""
        if seconds is None:
            seconds = self.policy.manual_traffic_pause_s
        with self._lock:
            self.traffic_until = max(self.traffic_until, now + seconds)
            return self.traffic_until

    def claim_arrival(self) -> bool:
        """True exactly once, for whoever first observes the arrival."""
        with self._lock:
            if self.phase != SimulationPhase.ARRIVED or self._arrival_claimed:
                return False
            self._arrival_claimed = True
            return True

    # --- Tick ---

    def tick(self, now: float) -> Optional[SimulationSnapshot]:
        """
        Advance one step. Returns the post-tick snapshot, or None when the run is
        stopped or paused (nothing happened).
        """
        with self._lock:
            if self.stopped or self.paused:
                return None

            self.ticks += 1
            self._advance_phase(now)

            if self.phase in MOVING_PHASES:
                self._maybe_traffic(now)
                if now >= self.traffic_until:
                    self._move()

            return self._snapshot(now)

    # --- Internals (caller holds the lock) ---

    def _advance_phase(self, now: float) -> None:
        elapsed = now - self.started_at

        if self.phase == SimulationPhase.PREPARING and elapsed >= self.policy.pickup_delay_s:
            self.phase = SimulationPhase.PICKED_UP
            logger.debug("Run %s/%s picked up", self.courier_id, self.order_id)

        if self.phase == SimulationPhase.PICKED_UP and elapsed >= self.policy.departure_delay_s:
            self.phase = SimulationPhase.DELIVERING
            logger.debug("Run %s/%s delivering", self.courier_id, self.order_id)

    def _maybe_traffic(self, now: float) -> None:
        policy = self.policy
        if not policy.traffic_enabled or now < self.traffic_until:
            return

        if self._rng.random() < policy.traffic_probability:
            pause_s = self._rng.uniform(policy.traffic_pause_min_s, policy.traffic_pause_max_s)
            self.traffic_until = now + pause_s
            logger.debug("Run %s/%s stuck in traffic for %.1fs", self.courier_id, self.order_id, pause_s)

    def _move(self) -> None:
        meters = self.policy.meters_per_tick

        if distance_meters(self.position, self.destination) < self.policy.arrival_threshold_m:
            self._arrive()
            return

        last_segment = len(self.route) - 2
        target = self.route[self.segment_index + 1]
        vertex_radius = max(self.policy.vertex_threshold_m, meters)

        # zero-length segments are crossed in the same tick
        while (
            self.segment_index < last_segment
            and distance_meters(self.position, target) < vertex_radius
        ):
            self.segment_index += 1
            target = self.route[self.segment_index + 1]

        gap = distance_meters(self.position, target)
        if gap <= 0:
            self.position = target
        else:
            # never overshoot the vertex we are heading for
            self.position = destination_point(self.position, bearing_degrees(self.position, target), min(meters, gap))

        self.path.append(self.position)

    def _arrive(self) -> None:
        self.phase = SimulationPhase.ARRIVED
        self.position = self.destination
        if self.path[-1] != self.position:
            self.path.append(self.position)
        logger.info("Run %s/%s arrived", self.courier_id, self.order_id)

    def _eta(self) -> EtaEstimate:
        remaining = distance_meters(self.position, self.destination)
        return estimate_eta(self.phase, remaining, self.policy.speed_mps, self.policy.min_eta_minutes)

    def _snapshot(self, now: Optional[float]) -> SimulationSnapshot:
        eta = self._eta()
        in_traffic = now is not None and now < self.traffic_until
        return SimulationSnapshot(
            courier_id=self.courier_id,
            order_id=self.order_id,
            phase=self.phase,
            position=self.position,
            eta_minutes=eta.minutes,
            eta_label=eta.label,
            distance_remaining_m=distance_meters(self.position, self.destination),
            paused=self.paused,
            in_traffic=in_traffic,
        )
