"""
Purpose: Auto-matcher (the "glue" between an open order and the courier pool).
What it does:
Ranks idle couriers by distance from the merchant and hands the order to the
closest one. If that courier gets taken by a concurrent assignment between the
ranking and the assign call, the next candidate is tried.
"""

import logging
from typing import Dict, List, Optional

from couriers.selection import rank_couriers
from orders.models import OrderStatus
from .errors import CourierBusy
from .service import DispatchService

logger = logging.getLogger(__name__)


class Dispatcher:
    """
    Picks couriers on behalf of the operator. All mutations go through the service,
    so the one-order-per-courier rule is enforced in exactly one place.
    """
    def __init__(self, service: DispatchService):
        self.service = service

    def candidates(self) -> List[str]:
        policy = self.service.policy
        ranked = rank_couriers(
            pickup_location=policy.merchant_location,
            couriers=self.service.list_couriers(),
            max_radius_m=policy.match_radius_m,
            max_candidates=policy.max_match_candidates,
        )
        return [courier.id for courier in ranked]

    def auto_assign(self, order_id: str) -> Optional[str]:
        """
        Returns the id of the courier that got the order, or None when every
        candidate was busy (or there were none). Order-side failures
        (NotFound, OrderAlreadyAssigned, InvalidTransition, MissingDestination)
        propagate to the caller.
        """
        for courier_id in self.candidates():
            try:
                self.service.assign(courier_id, order_id)
            except CourierBusy:
                # Too late, someone else grabbed this courier
                logger.info("Courier %s taken before order %s could be assigned, trying next", courier_id, order_id)
                continue

            logger.info("Auto-assigned order %s to courier %s", order_id, courier_id)
            return courier_id

        logger.warning("No courier available for order %s", order_id)
        return None

    def dispatch_open_orders(self) -> Dict[str, Optional[str]]:
        """
        One matching pass over every assignable delivery order, oldest first.
        Stops handing out orders once the courier pool is exhausted.
        """
        wanted = [OrderStatus.PAID]
        if not self.service.policy.require_payment_before_assign:
            wanted.append(OrderStatus.PENDING)

        open_orders = [
            order
            for order in self.service.list_orders()
            if order.status in wanted and order.destination is not None
        ]
        open_orders.sort(key=lambda order: order.created_at)

        results: Dict[str, Optional[str]] = {}
        for order in open_orders:
            courier_id = self.auto_assign(order.id)
            results[order.id] = courier_id
            if courier_id is None:
                break
        return results
