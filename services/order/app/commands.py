"""
Order Service - command handlers (write side)

Every command runs as one transaction: the order row, its items and the new
history row are committed together or not at all. Events are published only
after the commit, and a failed publish never undoes the command.

    create_order         → OrderCreated
    update_order_status  → OrderStatusUpdated
    cancel_order         → OrderCancelled
    request_return       → (no event)
"""

import logging
import secrets
import time
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.ext.asyncio import AsyncSession

from .access import can_access_order, has_elevated_role
from .errors import AccessDeniedError
from .events import OrderCancelled, OrderCreated, OrderStatusUpdated
from .models import Order, OrderItem, OrderStatusHistory
from .publisher import (
    ORDER_CANCELLED_CHANNEL,
    ORDER_CREATED_CHANNEL,
    ORDER_STATUS_UPDATED_CHANNEL,
    EventPublisher,
)
from .queries import load_order
from .schemas import CreateOrderRequest, OrderResponse
from .transitions import (
    OrderStatus,
    ensure_cancellable,
    ensure_returnable,
    validate_transition,
)

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"
ZERO = Decimal("0")


def generate_order_number() -> str:
    return f"ORD-{time.time_ns() // 1_000_000}-{secrets.token_hex(4).upper()}"


def _record_status(
    order: Order,
    status: OrderStatus,
    reason: str | None,
    changed_by: UUID,
    now: datetime,
) -> OrderStatusHistory:
    """Move the order to `status` and append the matching history row."""
    previous = order.status
    entry = OrderStatusHistory(
        id=uuid4(),
        sequence=len(order.status_history) + 1,
        status=status,
        previous_status=previous.value,
        reason=reason,
        changed_by=changed_by,
        created_at=now,
    )
    order.status = status
    order.updated_at = now
    order.status_history.append(entry)
    return entry


async def create_order(
    session: AsyncSession,
    publisher: EventPublisher,
    user_id: UUID,
    tenant_id: UUID,
    request: CreateOrderRequest,
) -> OrderResponse:
    """
    Place an order.

    1. Build the order in PLACED with a fresh order number
    2. Copy the item snapshots from the request
    3. Write the initial history row (previous_status = None)
    4. Commit, then publish OrderCreated
    """
    logger.info("Creating order: userId=%s, tenantId=%s", user_id, tenant_id)

    now = datetime.now(timezone.utc)
    currency = request.currency or DEFAULT_CURRENCY

    order = Order(
        id=uuid4(),
        user_id=user_id,
        tenant_id=tenant_id,
        order_number=generate_order_number(),
        status=OrderStatus.PLACED,
        shipping_address_id=request.shipping_address_id,
        payment_id=request.payment_id,
        subtotal=request.subtotal,
        discount_amount=request.discount_amount if request.discount_amount is not None else ZERO,
        tax_amount=request.tax_amount if request.tax_amount is not None else ZERO,
        shipping_cost=request.shipping_cost if request.shipping_cost is not None else ZERO,
        total=request.total,
        currency=currency,
        notes=request.notes,
        created_at=now,
        items=[
            OrderItem(
                id=uuid4(),
                product_id=item.product_id,
                sku=item.sku,
                product_name=item.product_name or item.sku,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
                currency=currency,
            )
            for item in request.items
        ],
        status_history=[
            OrderStatusHistory(
                id=uuid4(),
                sequence=1,
                status=OrderStatus.PLACED,
                previous_status=None,
                reason="Order placed",
                changed_by=user_id,
                created_at=now,
            )
        ],
    )

    session.add(order)
    await session.commit()
    logger.info("Order created: orderId=%s, orderNumber=%s", order.id, order.order_number)

    await publisher.publish(ORDER_CREATED_CHANNEL, order.id, OrderCreated.from_order(order))
    return OrderResponse.model_validate(order)


async def update_order_status(
    session: AsyncSession,
    publisher: EventPublisher,
    order_id: UUID,
    user_id: UUID,
    tenant_id: UUID,
    roles: list[str] | None,
    new_status: OrderStatus,
    reason: str | None,
) -> OrderResponse:
    """
    Generic status change, checked against the transition graph.

    Requesting the current status is accepted and still recorded.
    """
    logger.info("Updating order status: orderId=%s, newStatus=%s", order_id, new_status.value)

    order = await load_order(session, order_id, tenant_id)
    if not has_elevated_role(roles) and order.user_id != user_id:
        raise AccessDeniedError("Only admins or order owner can update order status")

    validate_transition(order.status, new_status)

    previous = order.status
    _record_status(order, new_status, reason, user_id, datetime.now(timezone.utc))
    await session.commit()
    logger.info(
        "Order status updated: orderId=%s, status=%s -> %s",
        order_id, previous.value, new_status.value,
    )

    await publisher.publish(
        ORDER_STATUS_UPDATED_CHANNEL,
        order.id,
        OrderStatusUpdated.from_order(order, previous, reason),
    )
    return OrderResponse.model_validate(order)


async def cancel_order(
    session: AsyncSession,
    publisher: EventPublisher,
    order_id: UUID,
    user_id: UUID,
    tenant_id: UUID,
    roles: list[str] | None,
    reason: str,
) -> OrderResponse:
    """
    Cancel an order that has not shipped yet.

    Uses its own guard instead of the transition graph, so a RETURNED order
    can still be cancelled here.
    """
    logger.info("Cancelling order: orderId=%s", order_id)

    order = await load_order(session, order_id, tenant_id)
    if not can_access_order(user_id, order.user_id, roles):
        raise AccessDeniedError(f"Access denied to order: {order_id}")

    ensure_cancellable(order.status)

    _record_status(order, OrderStatus.CANCELLED, reason, user_id, datetime.now(timezone.utc))
    await session.commit()
    logger.info("Order cancelled: orderId=%s", order_id)

    await publisher.publish(
        ORDER_CANCELLED_CHANNEL,
        order.id,
        OrderCancelled.from_order(order, reason),
    )
    return OrderResponse.model_validate(order)


async def request_return(
    session: AsyncSession,
    order_id: UUID,
    user_id: UUID,
    tenant_id: UUID,
    reason: str,
) -> OrderResponse:
    """
    Return a delivered order. Only the owner may ask; elevated roles do not
    bypass this. No event is published for returns.
    """
    logger.info("Requesting return for order: orderId=%s", order_id)

    order = await load_order(session, order_id, tenant_id)
    if order.user_id != user_id:
        raise AccessDeniedError(f"Access denied to order: {order_id}")

    ensure_returnable(order.status)

    _record_status(order, OrderStatus.RETURNED, reason, user_id, datetime.now(timezone.utc))
    await session.commit()
    logger.info("Return requested for order: orderId=%s", order_id)

    return OrderResponse.model_validate(order)
