"""
Query handler tests: get_order / list_order_history / find_order_by_payment_id.
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

import pytest
from sqlalchemy import update

from app import commands, queries
from app.errors import AccessDeniedError, NotFoundError
from app.models import Order, OrderStatusHistory
from app.schemas import PageRequest
from app.transitions import OrderStatus


# ── get_order ────────────────────────────────────


async def test_owner_gets_full_order(session, publisher, placed_order, owner_id, tenant_id):
    await commands.update_order_status(
        session, publisher, placed_order.id, owner_id, tenant_id, [], OrderStatus.CONFIRMED, "ok",
    )

    order = await queries.get_order(session, placed_order.id, owner_id, tenant_id, [])

    assert order.id == placed_order.id
    assert len(order.items) == 1
    assert [h.status for h in order.status_history] == [OrderStatus.PLACED, OrderStatus.CONFIRMED]


HISTORY_PATH = [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED]


async def walk_to_delivered(session, publisher, order_id, tenant_id):
    for next_status in HISTORY_PATH:
        await commands.update_order_status(
            session, publisher, order_id, uuid4(), tenant_id, ["ADMIN"], next_status, None,
        )


async def test_history_is_oldest_first_after_reload(
    session, session_factory, publisher, placed_order, owner_id, tenant_id
):
    await walk_to_delivered(session, publisher, placed_order.id, tenant_id)

    async with session_factory() as fresh:
        order = await queries.get_order(fresh, placed_order.id, owner_id, tenant_id, [])

    assert [h.status for h in order.status_history] == [OrderStatus.PLACED, *HISTORY_PATH]
    assert [h.previous_status for h in order.status_history] == [
        None, "PLACED", "CONFIRMED", "PROCESSING", "SHIPPED",
    ]


async def test_history_order_survives_equal_timestamps(
    session, session_factory, publisher, placed_order, owner_id, tenant_id
):
    await walk_to_delivered(session, publisher, placed_order.id, tenant_id)
    same_instant = datetime(2024, 1, 1, tzinfo=timezone.utc)
    await session.execute(
        update(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == placed_order.id)
        .values(created_at=same_instant)
    )
    await session.commit()

    async with session_factory() as fresh:
        order = await queries.get_order(fresh, placed_order.id, owner_id, tenant_id, [])

    assert [h.status for h in order.status_history] == [OrderStatus.PLACED, *HISTORY_PATH]


async def test_stranger_is_denied_but_staff_allowed(session, placed_order, tenant_id):
    stranger = uuid4()

    with pytest.raises(AccessDeniedError):
        await queries.get_order(session, placed_order.id, stranger, tenant_id, [])

    order = await queries.get_order(session, placed_order.id, stranger, tenant_id, ["STAFF"])
    assert order.id == placed_order.id


async def test_other_tenant_is_denied_even_for_admin(session, placed_order, owner_id):
    with pytest.raises(AccessDeniedError, match="different tenant"):
        await queries.get_order(session, placed_order.id, owner_id, uuid4(), ["ADMIN"])


async def test_unknown_order_not_found(session, owner_id, tenant_id):
    with pytest.raises(NotFoundError):
        await queries.get_order(session, uuid4(), owner_id, tenant_id, ["ADMIN"])


# ── list_order_history ───────────────────────────


@pytest.fixture
def seed_orders(session, publisher, owner_id, tenant_id, create_request):
    async def _seed(count: int) -> list[Order]:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        orders = []
        for i in range(count):
            created = await commands.create_order(session, publisher, owner_id, tenant_id, create_request)
            order = await session.get(Order, created.id)
            order.created_at = base + timedelta(days=i)
            orders.append(order)
        await session.commit()
        return orders

    return _seed


async def test_history_newest_first_by_default(session, seed_orders, owner_id, tenant_id):
    orders = await seed_orders(3)

    page = await queries.list_order_history(session, owner_id, tenant_id, None, PageRequest())

    assert [o.id for o in page.content] == [o.id for o in reversed(orders)]
    assert page.total_elements == 3
    assert page.total_pages == 1
    assert page.content[0].item_count == 1


async def test_history_pagination(session, seed_orders, owner_id, tenant_id):
    orders = await seed_orders(5)

    page = await queries.list_order_history(
        session, owner_id, tenant_id, None, PageRequest(page=1, size=2),
    )

    assert [o.id for o in page.content] == [orders[2].id, orders[1].id]
    assert page.total_elements == 5
    assert page.total_pages == 3


async def test_history_explicit_sort(session, seed_orders, owner_id, tenant_id):
    orders = await seed_orders(3)

    page = await queries.list_order_history(
        session, owner_id, tenant_id, None, PageRequest(sort="created_at,asc"),
    )

    assert [o.id for o in page.content] == [o.id for o in orders]


@pytest.mark.parametrize("sort", ["bogus", "password,asc", "created_at,asc,extra", ""])
async def test_history_bad_sort_falls_back_to_default(session, seed_orders, owner_id, tenant_id, sort):
    orders = await seed_orders(2)

    page = await queries.list_order_history(session, owner_id, tenant_id, None, PageRequest(sort=sort))

    assert [o.id for o in page.content] == [orders[1].id, orders[0].id]


async def test_history_status_filter(session, publisher, seed_orders, owner_id, tenant_id):
    orders = await seed_orders(3)
    await commands.cancel_order(session, publisher, orders[0].id, owner_id, tenant_id, [], "x")

    page = await queries.list_order_history(
        session, owner_id, tenant_id, OrderStatus.CANCELLED, PageRequest(),
    )

    assert [o.id for o in page.content] == [orders[0].id]
    assert page.content[0].status is OrderStatus.CANCELLED


async def test_history_is_owner_and_tenant_scoped(session, seed_orders, owner_id, tenant_id):
    await seed_orders(2)

    assert (await queries.list_order_history(session, uuid4(), tenant_id, None, PageRequest())).content == []
    assert (await queries.list_order_history(session, owner_id, uuid4(), None, PageRequest())).content == []


def test_parse_sort_direction():
    assert str(queries.parse_sort("total,desc")) == str(Order.total.desc())
    assert str(queries.parse_sort("total,ASC")) == str(Order.total.asc())
    assert str(queries.parse_sort(None)) == str(Order.created_at.desc())


# ── find_order_by_payment_id ─────────────────────


async def test_find_by_payment_id(session, placed_order, owner_id, tenant_id):
    summary = await queries.find_order_by_payment_id(session, placed_order.payment_id, owner_id, tenant_id)

    assert summary is not None
    assert summary.id == placed_order.id
    assert summary.payment_id == placed_order.payment_id


async def test_find_by_unknown_payment_id_returns_none(session, placed_order, owner_id, tenant_id):
    assert await queries.find_order_by_payment_id(session, uuid4(), owner_id, tenant_id) is None


async def test_find_by_payment_id_is_scoped_to_caller(session, placed_order, owner_id, tenant_id):
    assert await queries.find_order_by_payment_id(session, placed_order.payment_id, uuid4(), tenant_id) is None
    assert await queries.find_order_by_payment_id(session, placed_order.payment_id, owner_id, uuid4()) is None
