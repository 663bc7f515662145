"""
Order Service - query handlers (read side)

Reads go straight to the order tables. Every read is tenant-scoped;
the access rules for each read are listed in access.py.
"""

import logging
import math
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from .access import can_access_order
from .errors import AccessDeniedError, NotFoundError
from .models import Order
from .schemas import OrderResponse, OrderSummaryPage, OrderSummaryResponse, PageRequest
from .transitions import OrderStatus

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "created_at": Order.created_at,
    "createdAt": Order.created_at,
    "updated_at": Order.updated_at,
    "updatedAt": Order.updated_at,
    "total": Order.total,
    "status": Order.status,
    "order_number": Order.order_number,
    "orderNumber": Order.order_number,
}
DEFAULT_SORT = Order.created_at.desc()


async def load_order(session: AsyncSession, order_id: UUID, tenant_id: UUID) -> Order:
    """
    Fetch an order for a tenant-scoped operation.

    Raises NotFoundError when the id is unknown and AccessDeniedError when the
    order belongs to another tenant. Ownership is left to the caller.
    """
    order = await session.get(Order, order_id)
    if order is None:
        raise NotFoundError(f"Order not found: {order_id}")
    if order.tenant_id != tenant_id:
        raise AccessDeniedError("Order belongs to different tenant")
    return order


def to_summary(order: Order) -> OrderSummaryResponse:
    return OrderSummaryResponse(
        id=order.id,
        order_number=order.order_number,
        status=order.status,
        payment_id=order.payment_id,
        total=order.total,
        currency=order.currency,
        item_count=len(order.items),
        created_at=order.created_at,
    )


def parse_sort(sort: str | None):
    """
    "field,direction" → ORDER BY clause.

    Anything malformed or naming an unknown column falls back to
    created_at DESC.
    """
    if not sort:
        return DEFAULT_SORT
    parts = sort.split(",")
    if len(parts) != 2:
        return DEFAULT_SORT
    column = SORTABLE_COLUMNS.get(parts[0].strip())
    if column is None:
        return DEFAULT_SORT
    if parts[1].strip().lower() == "desc":
        return column.desc()
    return column.asc()


async def get_order(
    session: AsyncSession,
    order_id: UUID,
    user_id: UUID,
    tenant_id: UUID,
    roles: list[str] | None,
) -> OrderResponse:
    logger.debug("Getting order: orderId=%s, userId=%s", order_id, user_id)
    order = await load_order(session, order_id, tenant_id)
    if not can_access_order(user_id, order.user_id, roles):
        raise AccessDeniedError(f"Access denied to order: {order_id}")
    return OrderResponse.model_validate(order)


async def list_order_history(
    session: AsyncSession,
    user_id: UUID,
    tenant_id: UUID,
    status: OrderStatus | None,
    page: PageRequest,
) -> OrderSummaryPage:
    """The caller's own orders in this tenant, one page at a time."""
    logger.debug("Getting order history: userId=%s, status=%s", user_id, status)

    conditions = [Order.user_id == user_id, Order.tenant_id == tenant_id]
    if status is not None:
        conditions.append(Order.status == status)

    total = await session.scalar(select(func.count()).select_from(Order).where(*conditions))
    result = await session.scalars(
        select(Order)
        .where(*conditions)
        .order_by(parse_sort(page.sort))
        .offset(page.page * page.size)
        .limit(page.size)
    )
    return OrderSummaryPage(
        content=[to_summary(order) for order in result.all()],
        page=page.page,
        size=page.size,
        total_elements=total or 0,
        total_pages=math.ceil((total or 0) / page.size),
    )


async def find_order_by_payment_id(
    session: AsyncSession,
    payment_id: UUID,
    user_id: UUID,
    tenant_id: UUID,
) -> OrderSummaryResponse | None:
    """Idempotency lookup for checkout. No match is not an error."""
    logger.debug("Finding order by payment ID: paymentId=%s, userId=%s", payment_id, user_id)
    order = await session.scalar(
        select(Order).where(
            Order.payment_id == payment_id,
            Order.user_id == user_id,
            Order.tenant_id == tenant_id,
        )
    )
    if order is None:
        logger.debug("No order found with payment ID: paymentId=%s", payment_id)
        return None
    logger.info("Found order by payment ID: orderId=%s, paymentId=%s", order.id, payment_id)
    return to_summary(order)
