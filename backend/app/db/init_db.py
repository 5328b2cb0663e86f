"""
数据库初始化脚本

    python -m app.db.init_db           # 只建表
    python -m app.db.init_db --seed    # 建表并写入管理员账号和示例菜单
"""
import argparse
import logging
import os
from decimal import Decimal

from app.core.config import settings
from app.core.logging_config import setup_logging
from app.db.database import engine, Base, SessionLocal
from app import models  # noqa: F401
from app.repositories import SqlStore
from app.services.accounts import AccountService
from app.services.catalog import CatalogService

logger = logging.getLogger(__name__)

STARTER_MENU = [
    {"name": "Masala Dosa", "category": "breakfast", "price": Decimal("40.00"), "preparation_time": 10,
     "stock": 40, "max_daily_stock": 40, "calories": 350},
    {"name": "Idli Sambar", "category": "breakfast", "price": Decimal("30.00"), "preparation_time": 5,
     "stock": 50, "max_daily_stock": 50, "calories": 250},
    {"name": "Veg Thali", "category": "lunch", "price": Decimal("80.00"), "preparation_time": 15,
     "stock": 60, "max_daily_stock": 60, "calories": 650},
    {"name": "Chicken Biryani", "category": "lunch", "price": Decimal("120.00"), "preparation_time": 20,
     "stock": 30, "max_daily_stock": 30, "calories": 700},
    {"name": "Paneer Butter Masala", "category": "dinner", "price": Decimal("90.00"), "preparation_time": 15,
     "stock": 25, "max_daily_stock": 25, "calories": 550},
    {"name": "Samosa", "category": "snacks", "price": Decimal("15.00"), "preparation_time": 5,
     "stock": 100, "max_daily_stock": 100, "calories": 260},
    {"name": "Masala Chai", "category": "beverages", "price": Decimal("10.00"), "preparation_time": 3,
     "stock": 200, "max_daily_stock": 200, "calories": 90},
]


def init_db():
    """初始化数据库，创建所有表"""
    Base.metadata.create_all(bind=engine)
    logger.info("database tables created")


def seed():
    """写入管理员账号和示例菜单（已存在的数据会跳过）"""
    store = SqlStore(SessionLocal())
    try:
        accounts = AccountService(store, settings)
        admin_email = os.getenv("ADMIN_EMAIL", "admin@canteen.edu").lower()
        if store.accounts.get_by_email(admin_email) is None:
            accounts.create_user(
                {
                    "name": "Canteen Admin",
                    "email": admin_email,
                    "password": os.getenv("ADMIN_PASSWORD", "admin123"),
                },
                role="admin",
            )
            logger.info("admin account %s created", admin_email)

        catalog = CatalogService(store)
        existing = {item.name for item in catalog.list_items(limit=1000)}
        for data in STARTER_MENU:
            if data["name"] not in existing:
                catalog.create_item(data)
    finally:
        store.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description="初始化食堂订餐系统数据库")
    parser.add_argument("--seed", action="store_true", help="写入管理员账号和示例菜单")
    args = parser.parse_args(argv)

    setup_logging(settings.log_level)
    init_db()
    if args.seed:
        seed()
    print("数据库初始化完成！")


if __name__ == "__main__":
    main()
