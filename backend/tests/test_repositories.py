"""
仓储层的条件更新：内存实现和SQL实现行为必须一致
"""
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from app.models import Order, OrderItem
from tests.helpers import add_item, add_user


def _add_order(store, user, item, quantity=1, created_at=None):
    price = Decimal(str(item.price))
    order = Order(
        user_id=user.id,
        items=[OrderItem(food_item_id=item.id, name=item.name, price=price,
                         quantity=quantity, preparation_time=item.preparation_time)],
        total_amount=price * quantity,
        status="pending",
        order_type="immediate",
        payment_status="pending",
        payment_method="balance",
        created_at=created_at or datetime(2026, 3, 2, 6, 30),
    )
    store.orders.add(order)
    store.commit()
    return order


def test_decrement_stops_at_available_stock(open_store):
    store = open_store()
    item = add_item(store, stock=3)

    assert store.catalog.try_decrement_stock(item.id, 2)
    assert not store.catalog.try_decrement_stock(item.id, 2)
    store.commit()

    fresh = open_store().catalog.get(item.id)
    assert fresh.stock == 1
    assert fresh.is_available


def test_decrement_to_zero_marks_item_unavailable(open_store):
    store = open_store()
    item = add_item(store, stock=2)

    assert store.catalog.try_decrement_stock(item.id, 2)
    store.commit()

    fresh = open_store().catalog.get(item.id)
    assert fresh.stock == 0
    assert not fresh.is_available
    assert not open_store().catalog.try_decrement_stock(item.id, 1)


def test_stale_reader_cannot_oversell(open_store):
    first, second = open_store(), open_store()
    item = add_item(first, stock=1)
    assert second.catalog.get(item.id).stock == 1

    assert first.catalog.try_decrement_stock(item.id, 1)
    first.commit()

    assert not second.catalog.try_decrement_stock(item.id, 1)
    second.rollback()
    assert open_store().catalog.get(item.id).stock == 0


def test_restore_is_capped_at_max_daily_stock(open_store):
    store = open_store()
    item = add_item(store, stock=8, max_daily_stock=10)

    assert store.catalog.restore_stock(item.id, 5)
    store.commit()
    assert open_store().catalog.get(item.id).stock == 10
    assert not store.catalog.restore_stock(9999, 1)


@pytest.mark.parametrize("taken_off_by_admin, expected", [(False, True), (True, False)])
def test_restore_after_sell_out_puts_item_back_on_menu(open_store, taken_off_by_admin, expected):
    store = open_store()
    item = add_item(store, stock=1)

    assert store.catalog.try_decrement_stock(item.id, 1)
    store.commit()
    sold_out = store.catalog.get(item.id)
    assert not sold_out.is_available
    if taken_off_by_admin:
        store.catalog.update(sold_out, {"manually_disabled": True})
        store.commit()

    assert store.catalog.restore_stock(item.id, 1)
    store.commit()
    fresh = open_store().catalog.get(item.id)
    assert fresh.stock == 1
    assert fresh.is_available is expected


def test_rollback_discards_pending_writes(open_store):
    store = open_store()
    item = add_item(store, stock=5)

    assert store.catalog.try_decrement_stock(item.id, 3)
    store.rollback()

    assert open_store().catalog.get(item.id).stock == 5


def test_reset_daily_stock(open_store):
    store = open_store()
    add_item(store, name="Idli", stock=0, max_daily_stock=30, is_available=False)
    add_item(store, name="Dosa", stock=4, max_daily_stock=12)
    add_item(store, name="Vada", stock=6, max_daily_stock=20, is_available=False, manually_disabled=True)

    assert store.catalog.reset_daily_stock() == 3
    store.commit()

    items = {i.name: i for i in open_store().catalog.list()}
    assert {name: i.stock for name, i in items.items()} == {"Idli": 30, "Dosa": 12, "Vada": 20}
    # 售罄自动下架的恢复上架，管理员手动下架的保持下架
    assert items["Idli"].is_available
    assert items["Dosa"].is_available
    assert not items["Vada"].is_available


def test_transition_compares_current_status(open_store):
    first, second = open_store(), open_store()
    user = add_user(first)
    item = add_item(first)
    order = _add_order(first, user, item)

    stale = second.orders.get(order.id)
    assert first.orders.transition(first.orders.get(order.id), "pending", {"status": "confirmed"})
    first.commit()

    assert not second.orders.transition(stale, "pending", {"status": "cancelled"})
    second.rollback()
    assert open_store().orders.get(order.id).status == "confirmed"


def test_sweep_ready_only_touches_due_orders(open_store):
    store = open_store()
    user = add_user(store)
    item = add_item(store)
    due = _add_order(store, user, item)
    later = _add_order(store, user, item)
    now = datetime(2026, 3, 2, 7, 0)

    store.orders.transition(store.orders.get(due.id), "pending",
                            {"status": "preparing", "estimated_ready_time": now - timedelta(minutes=1)})
    store.orders.transition(store.orders.get(later.id), "pending",
                            {"status": "preparing", "estimated_ready_time": now + timedelta(minutes=5)})
    store.commit()

    assert store.orders.sweep_ready(now) == 1
    store.commit()
    check = open_store()
    assert check.orders.get(due.id).status == "ready"
    assert check.orders.get(later.id).status == "preparing"
    # 重复执行没有副作用
    assert store.orders.sweep_ready(now) == 0


def test_mark_paid_only_counts_pending_orders_of_the_user(open_store):
    store = open_store()
    asha = add_user(store, name="Asha")
    ravi = add_user(store, name="Ravi")
    item = add_item(store)
    mine = _add_order(store, asha, item)
    theirs = _add_order(store, ravi, item)

    assert store.orders.mark_paid(asha.id, [mine.id, theirs.id], "cash") == 1
    store.commit()
    assert store.orders.mark_paid(asha.id, [mine.id], "cash") == 0

    totals = open_store().orders.pending_totals_by_user()
    assert asha.id not in totals
    assert totals[ravi.id] == (Decimal("45.00"), 1)


def test_balance_never_goes_negative(open_store):
    store = open_store()
    user = add_user(store, balance="100")

    assert store.accounts.adjust_balance(user.id, Decimal("-60")) == (Decimal("100"), Decimal("40"))
    assert store.accounts.adjust_balance(user.id, Decimal("-60")) is None
    store.commit()
    assert Decimal(str(open_store().accounts.get(user.id).balance)) == Decimal("40")


def test_orders_listed_newest_first(open_store):
    store = open_store()
    user = add_user(store)
    item = add_item(store)
    old = _add_order(store, user, item, created_at=datetime(2026, 3, 1, 6, 0))
    new = _add_order(store, user, item, created_at=datetime(2026, 3, 2, 6, 0))

    orders, total = store.orders.list(user_id=user.id, skip=0, limit=10)
    assert total == 2
    assert [o.id for o in orders] == [new.id, old.id]

    orders, total = store.orders.list(created_from=datetime(2026, 3, 2), created_to=datetime(2026, 3, 3))
    assert total == 1
    assert orders[0].id == new.id
