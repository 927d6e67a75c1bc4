from __future__ import annotations

import enum
from datetime import timedelta
from typing import Callable

import structlog

from ..errors import InvalidTransitionError, NotFoundError, ValidationError
from ..utils.api import utcnow

logger = structlog.get_logger()


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PREPARING = "preparing"
    READY = "ready"
    COMPLETED = "completed"


_FLOW = (OrderStatus.PENDING, OrderStatus.PREPARING, OrderStatus.READY, OrderStatus.COMPLETED)

_LABELS = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.PREPARING: "Preparing",
    OrderStatus.READY: "Ready for Pickup",
    OrderStatus.COMPLETED: "Completed",
}


def parse_status(value) -> OrderStatus:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown order status '{value}'.")


def next_status(current) -> OrderStatus | None:
    """Single successor of ``current``; None once completed."""
    i = _FLOW.index(parse_status(current))
    return _FLOW[i + 1] if i + 1 < len(_FLOW) else None


def status_label(status) -> str:
    return _LABELS[parse_status(status)]


def ensure_transition(current, new) -> OrderStatus:
    current, new = parse_status(current), parse_status(new)
    if next_status(current) != new:
        raise InvalidTransitionError(
            f"Cannot move an order from {_LABELS[current]} to {_LABELS[new]}.",
            {"current": current.value, "requested": new.value},
        )
    return new


class KitchenQueue:
    """Orders the kitchen display shows and the transitions staff make on them.

    A completed order keeps showing for ``grace_seconds`` after it was
    completed so the display can show the final state, then drops out of
    ``active_orders``. Nothing is deleted.
    """

    def __init__(self, store, grace_seconds: float = 3, clock: Callable = utcnow):
        self.store = store
        self.grace_seconds = grace_seconds
        self._clock = clock

    def active_orders(self):
        since = self._clock() - timedelta(seconds=self.grace_seconds)
        return self.store.fetch_active_orders(completed_since=since)

    def _order(self, order_id):
        order = self.store.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found.")
        return order

    def advance(self, order_id):
        order = self._order(order_id)
        new = next_status(order.status)
        if new is None:
            raise InvalidTransitionError("This order is already completed.")
        return self._apply(order, new)

    def set_status(self, order_id, status, kitchen_notes=None):
        order = self._order(order_id)
        new = ensure_transition(order.status, status)
        return self._apply(order, new, kitchen_notes)

    def _apply(self, order, new: OrderStatus, kitchen_notes=None):
        previous = order.status
        order = self.store.update_order_status(order.id, new.value, kitchen_notes=kitchen_notes)
        logger.info("kitchen.status_changed", order_number=order.order_number, previous=previous, status=new.value)
        return order
