"""
数据库初始化与示例数据
"""
from app.db import init_db
from app.repositories import SqlStore


def test_seed_is_idempotent(monkeypatch, sql_session_factory):
    monkeypatch.setattr(init_db, "SessionLocal", sql_session_factory)

    init_db.seed()
    init_db.seed()

    store = SqlStore(sql_session_factory())
    try:
        admins = store.accounts.list(role="admin")
        assert len(admins) == 1
        items = store.catalog.list(limit=1000)
        assert len(items) == len(init_db.STARTER_MENU)
        assert all(item.is_available and item.stock == item.max_daily_stock for item in items)
    finally:
        store.close()
