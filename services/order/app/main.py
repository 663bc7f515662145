"""
Order Service - FastAPI entrypoint

Commands (POST/PUT) go to commands.py, reads (GET) to queries.py.
Authentication happens upstream: the gateway validates the JWT and forwards
the caller as X-User-Id / X-Tenant-Id / X-User-Roles headers.
"""

import logging
import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from . import commands, queries
from .access import ROUTE_ROLES
from .errors import OrderServiceError
from .models import Base
from .publisher import EventPublisher
from .schemas import (
    CancelOrderRequest,
    CreateOrderRequest,
    OrderResponse,
    OrderSummaryPage,
    OrderSummaryResponse,
    PageRequest,
    ReturnOrderRequest,
    UpdateOrderStatusRequest,
)
from .transitions import OrderStatus

DATABASE_URL = os.environ["DATABASE_URL"]
REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379")
PUBLISH_TIMEOUT = float(os.environ.get("PUBLISH_TIMEOUT", "2.0"))
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
DB_ECHO = os.environ.get("DB_ECHO", "").lower() in ("1", "true", "yes")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

engine = create_async_engine(DATABASE_URL, echo=DB_ECHO)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
redis_pool: aioredis.Redis | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    global redis_pool
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    redis_pool = aioredis.from_url(
        REDIS_URL,
        decode_responses=True,
        socket_connect_timeout=PUBLISH_TIMEOUT,
        socket_timeout=PUBLISH_TIMEOUT,
    )
    logger.info("Order service started")
    yield
    await redis_pool.aclose()
    await engine.dispose()


app = FastAPI(title="Order Service", lifespan=lifespan)


@app.exception_handler(OrderServiceError)
async def order_service_error_handler(request: Request, exc: OrderServiceError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "detail": exc.detail},
    )


# ── Dependencies ─────────────────────────────────

class Caller(BaseModel):
    user_id: UUID
    tenant_id: UUID
    roles: list[str]


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def get_publisher() -> EventPublisher:
    return EventPublisher(redis_pool, timeout=PUBLISH_TIMEOUT)


def get_caller(
    x_user_id: str | None = Header(default=None),
    x_tenant_id: str | None = Header(default=None),
    x_user_roles: str = Header(default=""),
) -> Caller:
    try:
        user_id = UUID(x_user_id)
        tenant_id = UUID(x_tenant_id)
    except (TypeError, ValueError):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid authentication headers")
    roles = [r.strip().upper() for r in x_user_roles.split(",") if r.strip()]
    return Caller(user_id=user_id, tenant_id=tenant_id, roles=roles)


def require_roles(operation: str):
    """Route-level role gate for one operation (see access.ROUTE_ROLES)."""
    allowed = ROUTE_ROLES[operation]

    def dependency(caller: Caller = Depends(get_caller)) -> Caller:
        if allowed.isdisjoint(caller.roles):
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Insufficient role")
        return caller

    return dependency


# ── Command Endpoints ────────────────────────────

@app.post("/api/v1/order", status_code=status.HTTP_201_CREATED)
async def create_order(
    req: CreateOrderRequest,
    caller: Caller = Depends(require_roles("create_order")),
    session: AsyncSession = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderResponse:
    """Create an order from checkout data"""
    return await commands.create_order(session, publisher, caller.user_id, caller.tenant_id, req)


@app.put("/api/v1/order/{order_id}/status")
async def update_order_status(
    order_id: UUID,
    req: UpdateOrderStatusRequest,
    caller: Caller = Depends(require_roles("update_order_status")),
    session: AsyncSession = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderResponse:
    return await commands.update_order_status(
        session, publisher, order_id,
        caller.user_id, caller.tenant_id, caller.roles,
        req.status, req.reason,
    )


@app.post("/api/v1/order/{order_id}/cancel")
async def cancel_order(
    order_id: UUID,
    req: CancelOrderRequest,
    caller: Caller = Depends(require_roles("cancel_order")),
    session: AsyncSession = Depends(get_session),
    publisher: EventPublisher = Depends(get_publisher),
) -> OrderResponse:
    """Cancel an order that has not shipped"""
    return await commands.cancel_order(
        session, publisher, order_id,
        caller.user_id, caller.tenant_id, caller.roles,
        req.reason,
    )


@app.post("/api/v1/order/{order_id}/return")
async def request_return(
    order_id: UUID,
    req: ReturnOrderRequest,
    caller: Caller = Depends(require_roles("request_return")),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    return await commands.request_return(
        session, order_id, caller.user_id, caller.tenant_id, req.reason,
    )


# ── Query Endpoints ──────────────────────────────

@app.get("/api/v1/order")
async def get_order_history(
    page: int = Query(default=0, ge=0),
    size: int = Query(default=20, ge=1, le=100),
    order_status: OrderStatus | None = Query(default=None, alias="status"),
    sort: str | None = None,
    caller: Caller = Depends(require_roles("list_order_history")),
    session: AsyncSession = Depends(get_session),
) -> OrderSummaryPage:
    """The caller's own orders, newest first unless `sort` says otherwise"""
    page_request = PageRequest(page=page, size=size, sort=sort)
    return await queries.list_order_history(
        session, caller.user_id, caller.tenant_id, order_status, page_request,
    )


@app.get("/api/v1/order/by-payment/{payment_id}")
async def find_order_by_payment_id(
    payment_id: UUID,
    caller: Caller = Depends(require_roles("find_order_by_payment_id")),
    session: AsyncSession = Depends(get_session),
) -> OrderSummaryResponse | None:
    return await queries.find_order_by_payment_id(
        session, payment_id, caller.user_id, caller.tenant_id,
    )


@app.get("/api/v1/order/{order_id}")
async def get_order(
    order_id: UUID,
    caller: Caller = Depends(require_roles("get_order")),
    session: AsyncSession = Depends(get_session),
) -> OrderResponse:
    return await queries.get_order(
        session, order_id, caller.user_id, caller.tenant_id, caller.roles,
    )


@app.get("/health")
async def health():
    return {"status": "ok", "service": "order-service"}
