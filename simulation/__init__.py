"""
Simulation package: moves a courier pin from the merchant to the customer.

Public API:
- SimulationRun, SimulationManager
- SimulationPolicy, default_simulation_policy, fast_simulation_policy
- SimulationPhase, SimulationSnapshot
"""

from .models import SimulationPhase, SimulationSnapshot
from .policy import SimulationPolicy, default_simulation_policy, fast_simulation_policy
from .run import SimulationRun
from .manager import SimulationManager

__all__ = [
    "SimulationPhase",
    "SimulationSnapshot",
    "SimulationPolicy",
    "default_simulation_policy",
    "fast_simulation_policy",
    "SimulationRun",
    "SimulationManager",
]
