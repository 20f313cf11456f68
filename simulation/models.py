"""
Purpose: Data shapes shared by the simulator and its observers.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

LatLng = Tuple[float, float]


class SimulationPhase(str, Enum):
    """
    Motion sub-state of one delivery. Not the same thing as OrderStatus.

    preparing -> picked_up -> delivering -> arrived
    The first two transitions are time-delayed, the last one is distance-triggered.
    """
    PREPARING = "preparing"
    PICKED_UP = "picked_up"
    DELIVERING = "delivering"
    ARRIVED = "arrived"


MOVING_PHASES = (SimulationPhase.PICKED_UP, SimulationPhase.DELIVERING)


@dataclass(frozen=True)
class SimulationSnapshot:
    """
    Read-only view handed to the tracking/display collaborator once per tick.
    """
    courier_id: str
    order_id: str
    phase: SimulationPhase
    position: LatLng
    eta_minutes: Optional[int]
    eta_label: str
    distance_remaining_m: float
    paused: bool = False
    in_traffic: bool = False
