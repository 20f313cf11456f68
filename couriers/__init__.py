"""
Couriers domain package.

Public API:
- Domain models: Courier, CourierStatus, DeliveryLogEntry, LocationFix
- Selection: filter_eligible_couriers, rank_couriers
"""
from .models import Courier, CourierStatus, DeliveryLogEntry, LocationFix, derive_status
from .selection import filter_eligible_couriers, rank_couriers

__all__ = [
    "Courier",
    "CourierStatus",
    "DeliveryLogEntry",
    "LocationFix",
    "derive_status",
    "filter_eligible_couriers",
    "rank_couriers",
]
