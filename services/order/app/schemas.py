"""
Order Service - request / response models
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from .transitions import OrderStatus


# ── Requests ─────────────────────────────────────

class OrderItemRequest(BaseModel):
    product_id: UUID
    sku: str = Field(min_length=1, max_length=100)
    product_name: str | None = Field(default=None, max_length=500)
    quantity: int = Field(gt=0)
    unit_price: Decimal = Field(gt=0, max_digits=19, decimal_places=2)
    total_price: Decimal = Field(gt=0, max_digits=19, decimal_places=2)


class CreateOrderRequest(BaseModel):
    shipping_address_id: UUID
    payment_id: UUID | None = None
    items: list[OrderItemRequest] = Field(min_length=1)
    subtotal: Decimal = Field(gt=0, max_digits=19, decimal_places=2)
    discount_amount: Decimal | None = Field(default=None, ge=0, max_digits=19, decimal_places=2)
    tax_amount: Decimal | None = Field(default=None, ge=0, max_digits=19, decimal_places=2)
    shipping_cost: Decimal | None = Field(default=None, ge=0, max_digits=19, decimal_places=2)
    total: Decimal = Field(gt=0, max_digits=19, decimal_places=2)
    currency: str | None = Field(default=None, pattern=r"^[A-Z]{3}$")
    notes: str | None = Field(default=None, max_length=1000)


class UpdateOrderStatusRequest(BaseModel):
    status: OrderStatus
    reason: str | None = Field(default=None, max_length=500)


class CancelOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


class ReturnOrderRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=500)


# ── Responses ────────────────────────────────────

class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    sku: str
    product_name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal
    currency: str


class OrderStatusHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    status: OrderStatus
    previous_status: str | None
    reason: str | None
    changed_by: UUID | None
    created_at: datetime


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    order_number: str
    user_id: UUID
    tenant_id: UUID
    status: OrderStatus
    shipping_address_id: UUID
    payment_id: UUID | None
    items: list[OrderItemResponse]
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total: Decimal
    currency: str
    notes: str | None
    status_history: list[OrderStatusHistoryResponse]
    created_at: datetime
    updated_at: datetime | None


class OrderSummaryResponse(BaseModel):
    id: UUID
    order_number: str
    status: OrderStatus
    payment_id: UUID | None
    total: Decimal
    currency: str
    item_count: int
    created_at: datetime


class OrderSummaryPage(BaseModel):
    content: list[OrderSummaryResponse]
    page: int
    size: int
    total_elements: int
    total_pages: int


class PageRequest(BaseModel):
    """Zero-based page, plus an optional "field,direction" sort string."""
    page: int = Field(default=0, ge=0)
    size: int = Field(default=20, ge=1, le=100)
    sort: str | None = None
