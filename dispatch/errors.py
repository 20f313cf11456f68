"""
Purpose: Error kinds raised by the dispatch core.
Every store/service operation either succeeds or raises exactly one of these.
The collaborator layer maps them to user-facing messages.
"""


class DispatchError(Exception):
    """Base class for every dispatch failure."""
    pass


class NotFound(DispatchError):
    """Raised when an order or courier id is unknown."""
    pass


class InvalidOrder(DispatchError):
    """Raised when line items are empty or malformed."""
    pass


class MissingDestination(DispatchError):
    """Raised when a delivery-mode order has no resolved coordinate."""
    pass


class InvalidTransition(DispatchError):
    """Raised when an invalid order state transition is attempted."""
    pass


class OrderAlreadyAssigned(DispatchError):
    """Raised when the order already has a courier."""
    pass


class CourierBusy(DispatchError):
    """Raised when the courier already holds an active order."""
    pass


class NoActiveAssignment(DispatchError):
    """Raised when a courier has nothing to deliver."""
    pass


class InvalidCourier(DispatchError):
    """Raised when required courier fields are missing or malformed."""
    pass
