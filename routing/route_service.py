#Purpose: Route computation for downstream use.
#Returns the polyline a simulated courier follows from the merchant to the customer.
#There is no road network here: the route is origin -> bent midpoint -> destination,
#which is enough for a live map to look plausible and for the simulator to walk.

from __future__ import annotations

from typing import List

from .geo import LatLng

# ~1.1 km of latitude; pushes the midpoint off the straight line
DEFAULT_OFFSET_DEGREES = 0.01


def _sign(value: float) -> int:
    if value > 0:
        return 1
    if value < 0:
        return -1
    return 0


def build_route(
    origin: LatLng,
    destination: LatLng,
    offset_degrees: float = DEFAULT_OFFSET_DEGREES,
) -> List[LatLng]:
    """
    Three-point polyline [origin, control point, destination].

    The control point is the midpoint shifted by `offset_degrees` in the direction
    of the destination-minus-origin delta on each axis. When origin == destination
    the deltas are zero, so every point collapses onto the origin.
    """
    dlat = destination[0] - origin[0]
    dlng = destination[1] - origin[1]

    control = (
        (origin[0] + destination[0]) / 2 + offset_degrees * _sign(dlat),
        (origin[1] + destination[1]) / 2 + offset_degrees * _sign(dlng),
    )
    return [origin, control, destination]
