"""
模型字段校验与跨字段约束
"""
from decimal import Decimal

import pytest

from app.core.errors import ValidationError
from app.models import FoodItem, Order, OrderItem


def make_food(**overrides):
    data = dict(name="Samosa", category="snacks", price=Decimal("15"), preparation_time=5,
                stock=10, max_daily_stock=20, is_available=True)
    data.update(overrides)
    return FoodItem(**data)


def test_food_item_rejects_negative_price():
    with pytest.raises(ValidationError):
        make_food(price=Decimal("-1"))


def test_food_item_rejects_unknown_category():
    with pytest.raises(ValidationError):
        make_food(category="brunch")


@pytest.mark.parametrize("field,value", [
    ("preparation_time", 0),
    ("stock", -1),
    ("max_daily_stock", 0),
])
def test_food_item_rejects_out_of_range_numbers(field, value):
    with pytest.raises(ValidationError):
        make_food(**{field: value})


def test_stock_cannot_exceed_max_daily_stock():
    item = make_food(stock=21, max_daily_stock=20)
    with pytest.raises(ValidationError, match="cannot exceed"):
        item.check_invariants()


def test_available_item_needs_stock():
    item = make_food(stock=0, is_available=True)
    with pytest.raises(ValidationError):
        item.check_invariants()
    item.is_available = False
    item.check_invariants()
    assert not item.is_orderable


def test_order_item_quantity_must_be_positive():
    with pytest.raises(ValidationError):
        OrderItem(food_item_id=1, name="Samosa", price=Decimal("15"), quantity=0, preparation_time=5)


def _order(items, total):
    return Order(user_id=1, items=items, total_amount=total, status="pending",
                 order_type="immediate", payment_status="pending", payment_method="balance")


def test_order_total_must_match_items():
    line = OrderItem(food_item_id=1, name="Samosa", price=Decimal("15"), quantity=2, preparation_time=5)
    assert line.line_total == Decimal("30")
    _order([line], Decimal("30")).check_invariants()

    other = OrderItem(food_item_id=1, name="Samosa", price=Decimal("15"), quantity=2, preparation_time=5)
    with pytest.raises(ValidationError, match="total"):
        _order([other], Decimal("31")).check_invariants()


def test_order_needs_items():
    with pytest.raises(ValidationError):
        _order([], Decimal("0")).check_invariants()


def test_order_rejects_unknown_status():
    with pytest.raises(ValidationError):
        Order(status="shipped")


def test_terminal_statuses():
    assert Order(status="completed").is_terminal
    assert Order(status="cancelled").is_terminal
    assert not Order(status="ready").is_terminal
