"""
Order Service - status state machine

Legal transitions for the generic status update path:

    PLACED     → CONFIRMED | CANCELLED
    CONFIRMED  → PROCESSING | CANCELLED
    PROCESSING → SHIPPED | CANCELLED
    SHIPPED    → DELIVERED
    DELIVERED  → RETURNED
    CANCELLED, RETURNED: terminal

Cancel and return have their own guards below. The cancel guard accepts
RETURNED even though the graph above does not.
"""

from enum import Enum

from .errors import InvalidOperationError, InvalidTransitionError


class OrderStatus(str, Enum):
    PLACED = "PLACED"
    CONFIRMED = "CONFIRMED"
    PROCESSING = "PROCESSING"
    SHIPPED = "SHIPPED"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"
    RETURNED = "RETURNED"


TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PLACED: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.RETURNED: frozenset(),
}

NON_CANCELLABLE = frozenset(
    {OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED}
)


def validate_transition(current: OrderStatus, requested: OrderStatus) -> None:
    """
    Raise InvalidTransitionError unless current → requested is an edge.

    Same status is always accepted, terminal ones included.
    """
    if current == requested:
        return
    if requested not in TRANSITIONS[current]:
        raise InvalidTransitionError(current, requested)


def ensure_cancellable(status: OrderStatus) -> None:
    if status in NON_CANCELLABLE:
        raise InvalidOperationError(
            f"Order cannot be cancelled. Current status: {status.value}"
        )


def ensure_returnable(status: OrderStatus) -> None:
    if status != OrderStatus.DELIVERED:
        raise InvalidOperationError(
            f"Order must be delivered to request return. Current status: {status.value}"
        )
