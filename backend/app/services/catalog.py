"""
菜品管理：增删改查、库存和可点状态调整
"""
import logging
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models import FoodItem
from app.repositories.base import Store

logger = logging.getLogger(__name__)


class CatalogService:

    def __init__(self, store: Store):
        self.store = store

    def list_items(self, category=None, is_available=None, search=None, skip=0, limit=100):
        return self.store.catalog.list(
            category=category, is_available=is_available, search=search, skip=skip, limit=limit
        )

    def get_item(self, item_id: int) -> FoodItem:
        item = self.store.catalog.get(item_id)
        if not item:
            raise NotFoundError("food item not found")
        return item

    def create_item(self, data: dict) -> FoodItem:
        data = dict(data)
        # 显式传入 is_available=False 视为管理员手动下架
        data["manually_disabled"] = data.get("is_available") is False
        if not data.get("stock"):
            data["is_available"] = False
        try:
            item = FoodItem(**data)
            self.store.catalog.add(item)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("food item %s (%s) created", item.id, item.name)
        return item

    def update_item(self, item_id: int, data: dict) -> FoodItem:
        item = self.get_item(item_id)
        values = {k: v for k, v in data.items() if v is not None}
        if "is_available" in values:
            values["manually_disabled"] = not values["is_available"]
        elif "stock" in values:
            # 库存清零时同步下架，补货后自动上架（手动下架的除外）
            values["is_available"] = values["stock"] > 0 and not item.manually_disabled
        try:
            self.store.catalog.update(item, values)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return item

    def set_stock(self, item_id: int, stock: int) -> FoodItem:
        if stock is None or stock < 0:
            raise ValidationError("stock cannot be negative")
        item = self.get_item(item_id)
        values = {"stock": stock, "is_available": stock > 0 and not item.manually_disabled}
        try:
            self.store.catalog.update(item, values)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("stock of food item %s set to %s", item_id, stock)
        return item

    def set_availability(self, item_id: int, is_available: bool) -> FoodItem:
        item = self.get_item(item_id)
        if is_available and item.stock <= 0:
            raise ConflictError("an item with no stock cannot be marked available")
        try:
            self.store.catalog.update(item, {"is_available": is_available, "manually_disabled": not is_available})
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return item

    def delete_item(self, item_id: int) -> None:
        """直接删除；历史订单明细保存了菜品快照，不受影响"""
        item = self.get_item(item_id)
        try:
            self.store.catalog.delete(item)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("food item %s deleted", item_id)

    def reset_daily_stock(self) -> int:
        try:
            count = self.store.catalog.reset_daily_stock()
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("daily stock reset for %s item(s)", count)
        return count
