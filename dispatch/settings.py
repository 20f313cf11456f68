#Purpose: Runtime configuration from the environment.
#Reads a .env file (if present) and the process environment, and turns the
#values into validated policy objects. Also owns logging setup.
#
#Example .env:
#MERCHANT_LAT=-33.9249
#MERCHANT_LNG=18.4241
#SIM_SPEED_MPS=10
#SIM_TICK_MS=250
#SIM_TRAFFIC_ENABLED=true
#LOG_LEVEL=INFO

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from simulation.policy import SimulationPolicy
from .policy import DEFAULT_MERCHANT_LOCATION, DispatchPolicy

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    dispatch: DispatchPolicy
    simulation: SimulationPolicy
    log_level: str = "INFO"


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the environment. Values already set in the process
    environment win over the .env file.
    """
    load_dotenv(env_file)

    dispatch = DispatchPolicy(
        merchant_location=(
            _env_float("MERCHANT_LAT", DEFAULT_MERCHANT_LOCATION[0]),
            _env_float("MERCHANT_LNG", DEFAULT_MERCHANT_LOCATION[1]),
        ),
        require_payment_before_assign=_env_bool("REQUIRE_PAYMENT_BEFORE_ASSIGN", False),
        auto_complete_on_arrival=_env_bool("AUTO_COMPLETE_ON_ARRIVAL", True),
    )
    dispatch.validate()

    simulation = SimulationPolicy(
        speed_mps=_env_float("SIM_SPEED_MPS", 10.0),
        tick_interval_ms=_env_int("SIM_TICK_MS", 250),
        traffic_enabled=_env_bool("SIM_TRAFFIC_ENABLED", True),
        seed=_env_int("SIM_SEED", None),
    )
    simulation.validate()

    return Settings(
        dispatch=dispatch,
        simulation=simulation,
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)
