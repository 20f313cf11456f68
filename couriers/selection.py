"""
Purpose: Business rules and distance math for choosing the best courier.
What it does:
Accepts a pickup point and a pool of couriers, filters out ineligible couriers,
and ranks the remaining ones by great-circle distance to the pickup.
"""

from typing import List, Optional

from routing.geo import LatLng, distance_meters
from .models import Courier, CourierStatus


def filter_eligible_couriers(couriers: List[Courier]) -> List[Courier]:
    """
    Returns only couriers who are available and not holding an order.
    One active order per courier, so anyone on a delivery is out.
    """
    eligible = []

    for courier in couriers:
        if courier.status != CourierStatus.IDLE:
            continue

        eligible.append(courier)

    return eligible


def rank_couriers(
    pickup_location: LatLng,
    couriers: List[Courier],
    max_radius_m: Optional[float] = None,
    max_candidates: Optional[int] = None,
) -> List[Courier]:
    """
    Eligible couriers ordered closest first.

    Couriers that never reported a location cannot be measured; they are kept
    (the merchant is small enough that an idle courier is usually nearby) but
    ranked after every located courier, oldest registration first. They are
    dropped when a radius cap is set.
    """
    located = []
    unlocated = []

    for courier in filter_eligible_couriers(couriers):
        if courier.location is None:
            if max_radius_m is None:
                unlocated.append(courier)
            continue

        distance = distance_meters(pickup_location, courier.location)
        if max_radius_m is not None and distance > max_radius_m:
            continue
        located.append((distance, courier))

    # id breaks ties so the ranking is deterministic
    located.sort(key=lambda pair: (pair[0], pair[1].id))
    unlocated.sort(key=lambda courier: (courier.created_at, courier.id))

    ranked = [courier for _, courier in located] + unlocated
    if max_candidates is not None:
        ranked = ranked[:max_candidates]
    return ranked
