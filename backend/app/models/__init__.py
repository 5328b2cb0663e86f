"""
数据库模型
"""
from app.models.user import User
from app.models.food_item import FoodItem
from app.models.order import Order, OrderItem
from app.models.transaction import LedgerEntry
from app.models.auth_token import AuthToken

__all__ = [
    "User",
    "FoodItem",
    "Order",
    "OrderItem",
    "LedgerEntry",
    "AuthToken",
]
