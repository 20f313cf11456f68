#Purpose: ETA estimation policy.
#Converts simulator state (phase + remaining distance) into the customer-facing
#"arrives in X" value. Keeps ETA logic separate from route computation.

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class EtaState(str, Enum):
    NOT_MOVING = "not_moving"
    EN_ROUTE = "en_route"
    ARRIVED = "arrived"


@dataclass(frozen=True)
class EtaEstimate:
    state: EtaState
    minutes: Optional[int] = None

    @property
    def label(self) -> str:
        if self.state == EtaState.NOT_MOVING:
            return "Preparing order…"
        if self.state == EtaState.ARRIVED:
            return "Arrived"
        return f"~{self.minutes} min"


def estimate_eta(
    phase: str,
    remaining_m: float,
    speed_mps: float,
    min_minutes: int = 1,
) -> EtaEstimate:
    """
    ETA from the simulator phase.

    preparing            -> not yet moving
    picked_up/delivering -> ceil(remaining / max(speed, 1 m/s) / 60), floored at min_minutes
    arrived              -> arrived
    """
    phase = getattr(phase, "value", phase)
    if phase == "preparing":
        return EtaEstimate(EtaState.NOT_MOVING)
    if phase == "arrived":
        return EtaEstimate(EtaState.ARRIVED, 0)

    seconds = max(0.0, remaining_m) / max(speed_mps, 1.0)
    minutes = max(min_minutes, math.ceil(seconds / 60))
    return EtaEstimate(EtaState.EN_ROUTE, minutes)


def format_distance(meters: float) -> str:
    """'640 m' below a kilometer, '1.3 km' above."""
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.1f} km"
