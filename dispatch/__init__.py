#Expose the high-level dispatch pieces:
#Store (state + invariants)
#Service (the one entry point collaborators call)
#Dispatcher (auto-matcher on top of the service)

from .errors import (
    CourierBusy,
    DispatchError,
    InvalidCourier,
    InvalidOrder,
    InvalidTransition,
    MissingDestination,
    NoActiveAssignment,
    NotFound,
    OrderAlreadyAssigned,
)
from .events import DispatchEvent, EventBus, EventRecorder
from .policy import DispatchPolicy, default_dispatch_policy
from .store import DispatchStore
from .service import DispatchService #the main object to build to run dispatch
from .dispatcher import Dispatcher

__all__ = [
    "CourierBusy",
    "DispatchError",
    "InvalidCourier",
    "InvalidOrder",
    "InvalidTransition",
    "MissingDestination",
    "NoActiveAssignment",
    "NotFound",
    "OrderAlreadyAssigned",
    "DispatchEvent",
    "EventBus",
    "EventRecorder",
    "DispatchPolicy",
    "default_dispatch_policy",
    "DispatchStore",
    "DispatchService",
    "Dispatcher",
]
