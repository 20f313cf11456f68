"""
Purpose: Central configuration for the courier position simulator.
What it does:

Stores all tunable knobs for how a simulated courier moves:

SPEED_MPS = 10
TICK_INTERVAL_MS = 250
PICKUP_DELAY_S = 2.0 / DEPARTURE_DELAY_S = 3.5
ARRIVAL_THRESHOLD_M = 20
TRAFFIC_PROBABILITY = 0.08, pause 2-6 s

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SimulationPolicy:
    """
    Central configuration for one simulated delivery run.
    """

    # --- Motion ---
    speed_mps: float = 10.0
    tick_interval_ms: int = 250

    # --- Kitchen / pickup latency ---
    # Seconds after the run starts before the phase flips. Not distance-dependent.
    pickup_delay_s: float = 2.0      # preparing -> picked_up
    departure_delay_s: float = 3.5   # picked_up -> delivering

    # --- Distance thresholds ---
    # Below this remaining distance the destination counts as reached.
    arrival_threshold_m: float = 20.0
    # A route vertex counts as passed within max(this, meters per tick).
    vertex_threshold_m: float = 15.0

    # --- Route shape ---
    route_offset_degrees: float = 0.01

    # --- Traffic model ---
    # One Bernoulli draw per running tick; on success pause for U(min, max) seconds.
    traffic_enabled: bool = True
    traffic_probability: float = 0.08
    traffic_pause_min_s: float = 2.0
    traffic_pause_max_s: float = 6.0
    # Length of an operator-triggered "simulate traffic" pause.
    manual_traffic_pause_s: float = 5.0
    # Seed for the traffic RNG. None means nondeterministic.
    seed: Optional[int] = None

    # --- ETA display ---
    min_eta_minutes: int = 1

    @property
    def tick_interval_s(self) -> float:
        return self.tick_interval_ms / 1000.0

    @property
    def meters_per_tick(self) -> float:
        return self.speed_mps * self.tick_interval_s

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.speed_mps <= 0:
            raise ValueError("speed_mps must be > 0")

        if self.tick_interval_ms <= 0:
            raise ValueError("tick_interval_ms must be > 0")

        if self.pickup_delay_s < 0 or self.departure_delay_s < 0:
            raise ValueError("phase delays must be >= 0")

        if self.departure_delay_s < self.pickup_delay_s:
            raise ValueError("departure_delay_s must be >= pickup_delay_s")

        if self.arrival_threshold_m <= 0:
            raise ValueError("arrival_threshold_m must be > 0")

        if self.vertex_threshold_m < 0:
            raise ValueError("vertex_threshold_m must be >= 0")

        if not 0.0 <= self.traffic_probability <= 1.0:
            raise ValueError("traffic_probability must be within [0, 1]")

        if self.traffic_pause_min_s < 0 or self.traffic_pause_max_s < self.traffic_pause_min_s:
            raise ValueError("traffic pause range must satisfy 0 <= min <= max")

        if self.min_eta_minutes < 0:
            raise ValueError("min_eta_minutes must be >= 0")


def default_simulation_policy() -> SimulationPolicy:
    """
    Convenience factory for the default policy.
    """
    p = SimulationPolicy()
    p.validate()
    return p


def fast_simulation_policy() -> SimulationPolicy:
    """
    Quicker courier and tighter tick, used when a run auto-starts right after
    an operator assigns the order.
    """
    p = SimulationPolicy(
        speed_mps=18.0,
        tick_interval_ms=160,
    )
    p.validate()
    return p
