"""
Purpose: Central configuration for dispatch rules.
What it does:

Stores the tunable knobs of the dispatch core:

MERCHANT_LOCATION = (-33.9249, 18.4241)
REQUIRE_PAYMENT_BEFORE_ASSIGN = False
AUTO_COMPLETE_ON_ARRIVAL = True

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

LatLng = Tuple[float, float]

# Café Frank, 160 Bree St, Cape Town
DEFAULT_MERCHANT_LOCATION: LatLng = (-33.9249, 18.4241)


@dataclass(frozen=True)
class DispatchPolicy:
    """
    Central configuration for order assignment and completion.
    """

    # --- Merchant ---
    # Every delivery starts here. Single merchant, single origin.
    merchant_location: LatLng = DEFAULT_MERCHANT_LOCATION

    # --- Assignment gates ---
    # When True, only paid orders can be handed to a courier.
    # Off by default: operators routinely dispatch cash-on-delivery orders.
    require_payment_before_assign: bool = False

    # --- Completion ---
    # When the simulated courier arrives, finalize the order as delivered
    # without waiting for the operator.
    auto_complete_on_arrival: bool = True

    # --- Auto-matcher ---
    # Couriers farther than this from the merchant are skipped (None = no cap).
    match_radius_m: Optional[float] = None
    # How many ranked couriers to try before giving up.
    max_match_candidates: int = 5

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        lat, lng = self.merchant_location
        if not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
            raise ValueError("merchant_location must be a valid (lat, lng)")

        if self.match_radius_m is not None and self.match_radius_m <= 0:
            raise ValueError("match_radius_m must be > 0")

        if self.max_match_candidates <= 0:
            raise ValueError("max_match_candidates must be > 0")


def default_dispatch_policy() -> DispatchPolicy:
    """
    Convenience factory for the default policy.
    """
    p = DispatchPolicy()
    p.validate()
    return p
