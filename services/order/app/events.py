"""
Order Service - lifecycle event payloads

Events are named in the past tense and never modified once built.
Each is keyed by order_id when published.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from .models import Order
from .transitions import OrderStatus


class OrderItemEvent(BaseModel):
    product_id: UUID
    sku: str
    quantity: int
    unit_price: Decimal


class OrderCreated(BaseModel):
    """An order was placed"""
    order_id: UUID
    order_number: str
    user_id: UUID
    tenant_id: UUID
    shipping_address_id: UUID
    payment_id: UUID | None
    items: list[OrderItemEvent]
    total: Decimal
    currency: str
    created_at: datetime

    @classmethod
    def from_order(cls, order: Order) -> "OrderCreated":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            tenant_id=order.tenant_id,
            shipping_address_id=order.shipping_address_id,
            payment_id=order.payment_id,
            items=[
                OrderItemEvent(
                    product_id=item.product_id,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                )
                for item in order.items
            ],
            total=order.total,
            currency=order.currency,
            created_at=order.created_at,
        )


class OrderStatusUpdated(BaseModel):
    """An order moved to a new status through the generic update path"""
    order_id: UUID
    order_number: str
    user_id: UUID
    tenant_id: UUID
    status: OrderStatus
    previous_status: str
    reason: str | None
    updated_at: datetime

    @classmethod
    def from_order(
        cls, order: Order, previous_status: OrderStatus, reason: str | None
    ) -> "OrderStatusUpdated":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            tenant_id=order.tenant_id,
            status=order.status,
            previous_status=previous_status.value,
            reason=reason,
            updated_at=order.updated_at,
        )


class OrderCancelled(BaseModel):
    """An order was cancelled; payment_id lets downstream start the refund"""
    order_id: UUID
    order_number: str
    user_id: UUID
    tenant_id: UUID
    payment_id: UUID | None
    reason: str
    cancelled_at: datetime

    @classmethod
    def from_order(cls, order: Order, reason: str) -> "OrderCancelled":
        return cls(
            order_id=order.id,
            order_number=order.order_number,
            user_id=order.user_id,
            tenant_id=order.tenant_id,
            payment_id=order.payment_id,
            reason=reason,
            cancelled_at=order.updated_at,
        )
