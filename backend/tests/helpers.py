"""
测试辅助函数
"""
from datetime import datetime, timedelta
from decimal import Decimal

from app.models import FoodItem, User


class FakeClock:
    """可手动拨动的时钟"""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


def add_user(store, name="Asha", role="student", balance="0"):
    user = User(
        name=name,
        email=f"{name.lower()}@university.edu",
        password_hash="not-a-real-hash",
        role=role,
        balance=Decimal(balance),
    )
    store.accounts.add(user)
    store.commit()
    return user


def add_item(store, **overrides):
    data = {
        "name": "Veg Thali",
        "category": "lunch",
        "price": Decimal("45.00"),
        "preparation_time": 10,
        "stock": 5,
        "max_daily_stock": 10,
        "is_available": True,
    }
    data.update(overrides)
    item = FoodItem(**data)
    store.catalog.add(item)
    store.commit()
    return item


def login(client, email, password="secret123") -> dict:
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return {"Authorization": f"Bearer {response.json()['access_token']}"}
