#Marks routing as a package.
#Re-exports the geo math, route builder and ETA helpers so other modules
#import from routing without knowing internal file names.
#No business logic.

from .geo import (
    EARTH_RADIUS_M,
    LatLng,
    bearing_degrees,
    destination_point,
    distance_meters,
    polyline_length_meters,
)
from .route_service import build_route
from .eta_service import EtaEstimate, EtaState, estimate_eta, format_distance

__all__ = [
    "EARTH_RADIUS_M",
    "LatLng",
    "bearing_degrees",
    "destination_point",
    "distance_meters",
    "polyline_length_meters",
    "build_route",
    "EtaEstimate",
    "EtaState",
    "estimate_eta",
    "format_distance",
]
