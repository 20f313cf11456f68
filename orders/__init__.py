"""
Orders domain package.

Public API:
- Domain models: Order, OrderLine, Address, DeliveryDetails, Customer, TimelineEntry
- Enums: OrderStatus, FulfillmentMode
"""
from .models import (
    Address,
    Customer,
    DeliveryDetails,
    FulfillmentMode,
    Order,
    OrderLine,
    OrderStatus,
    TimelineEntry,
)

__all__ = ["Order",
           "OrderLine",
             "Address",
               "DeliveryDetails",
               "Customer",
               "TimelineEntry",
               "OrderStatus",
               "FulfillmentMode",
               ]
