"""Order status machine.

Lifecycle::

    Pending -> Accepted -> Cooking -> Ready -> Served ----------------> Paid -> Completed
                                            \\-> Out for Delivery -> Delivered /

Staff (admin, cashier, kitchen) may move an order to any later status; skipping
steps is allowed, moving backwards is not. A served order never enters the
delivery branch. Cancelled is reachable:
- by admin/cashier from any non-cancelled state;
- by the owning customer or guest session only while the order is Pending.

Every change appends to the order's status history. History rows are never
updated or removed.
"""

import logging
from datetime import datetime
from typing import Callable, Dict, FrozenSet

from app.core.exceptions import InvalidStateTransition, Unauthorized
from app.core.rbac import Actor, CANCEL_ROLES, STAFF_ROLES
from app.models.order import Order, OrderStatus
from app.services.availability import utc_clock

logger = logging.getLogger(__name__)

LIFECYCLE_RANK: Dict[OrderStatus, int] = {
    OrderStatus.PENDING: 0,
    OrderStatus.ACCEPTED: 1,
    OrderStatus.COOKING: 2,
    OrderStatus.READY: 3,
    OrderStatus.SERVED: 4,
    OrderStatus.OUT_FOR_DELIVERY: 4,
    OrderStatus.DELIVERED: 5,
    OrderStatus.PAID: 6,
    OrderStatus.COMPLETED: 7,
}

# Statuses only reachable by orders that left the counter
DELIVERY_BRANCH: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.OUT_FOR_DELIVERY,
    OrderStatus.DELIVERED,
})

# "Is this order done?" from the customer's point of view
DONE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.COMPLETED,
    OrderStatus.SERVED,
    OrderStatus.DELIVERED,
    OrderStatus.PAID,
})

# Orders a customer is still waiting on
ACTIVE_STATUSES: FrozenSet[OrderStatus] = frozenset({
    OrderStatus.PENDING,
    OrderStatus.ACCEPTED,
    OrderStatus.COOKING,
    OrderStatus.READY,
    OrderStatus.OUT_FOR_DELIVERY,
})


def is_done(status: OrderStatus) -> bool:
    return status in DONE_STATUSES


def is_owner(order: Order, actor: Actor) -> bool:
    if actor.customer_id is not None and order.customer_id == actor.customer_id:
        return True
    return bool(actor.session_id) and order.session_id == actor.session_id


class OrderStatusMachine:
    def __init__(self, clock: Callable[[], datetime] = utc_clock):
        self.clock = clock

    def transition(self, order: Order, new_status: OrderStatus, actor: Actor) -> Order:
        """Move an order forward. Staff only; Cancelled goes through ``cancel``."""
        if new_status == OrderStatus.CANCELLED:
            return self.cancel(order, actor)

        if actor.role not in STAFF_ROLES:
            raise Unauthorized(f"Role '{actor.role.value}' may not change order status")

        current = order.status
        if current == OrderStatus.CANCELLED:
            raise InvalidStateTransition(f"Order {order.id} is cancelled")
        if LIFECYCLE_RANK[new_status] <= LIFECYCLE_RANK[current] or (
            current == OrderStatus.SERVED and new_status in DELIVERY_BRANCH
        ):
            raise InvalidStateTransition(
                f"Order {order.id} cannot move from {current.value} to {new_status.value}"
            )

        order.record_status(new_status, self.clock())
        logger.info(f"Order {order.id}: {current.value} -> {new_status.value} by {actor.role.value}")
        return order

    def cancel(self, order: Order, actor: Actor) -> Order:
        is_staff = actor.role in CANCEL_ROLES
        if not is_staff and not is_owner(order, actor):
            raise Unauthorized("Not authorized to cancel this order")

        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateTransition(f"Order {order.id} is already cancelled")
        if not is_staff and order.status != OrderStatus.PENDING:
            raise InvalidStateTransition("Only Pending orders can be cancelled")

        previous = order.status
        order.record_status(OrderStatus.CANCELLED, self.clock())
        logger.info(f"Order {order.id}: {previous.value} -> Cancelled by {actor.role.value}")
        return order
