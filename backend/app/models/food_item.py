"""
菜品模型
"""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, Boolean, DateTime, Index, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from app.db.database import Base
from app.core.errors import ValidationError

FOOD_CATEGORIES = ("breakfast", "lunch", "dinner", "snacks", "beverages")


class FoodItem(Base):
    """菜品表"""
    __tablename__ = "food_items"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False, index=True, comment="名称")
    description = Column(String(500), nullable=False, default="", comment="描述")
    price = Column(Numeric(10, 2), nullable=False, comment="单价")
    category = Column(String(20), nullable=False, index=True, comment="分类：breakfast/lunch/dinner/snacks/beverages")
    image = Column(String(500), default="", comment="图片地址")
    is_available = Column(Boolean, nullable=False, default=True, comment="是否可点")
    manually_disabled = Column(Boolean, nullable=False, default=False, comment="是否被管理员手动下架（补货不会自动上架）")
    preparation_time = Column(Integer, nullable=False, default=10, comment="制作时间（分钟）")
    stock = Column(Integer, nullable=False, default=0, comment="当日剩余库存")
    max_daily_stock = Column(Integer, nullable=False, default=50, comment="每日最大库存")
    calories = Column(Integer, comment="热量")
    protein = Column(Numeric(6, 2), comment="蛋白质（克）")
    carbs = Column(Numeric(6, 2), comment="碳水（克）")
    fat = Column(Numeric(6, 2), comment="脂肪（克）")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    __table_args__ = (
        CheckConstraint("stock >= 0 AND stock <= max_daily_stock", name="ck_food_items_stock_range"),
        CheckConstraint("max_daily_stock >= 1", name="ck_food_items_max_daily_stock"),
        CheckConstraint("price >= 0", name="ck_food_items_price"),
        Index("idx_food_items_category", "category"),
    )

    @validates("price")
    def _validate_price(self, key, value):
        if value is None or Decimal(str(value)) < 0:
            raise ValidationError("price must be a non-negative amount")
        return Decimal(str(value))

    @validates("category")
    def _validate_category(self, key, value):
        if value not in FOOD_CATEGORIES:
            raise ValidationError(f"category must be one of: {', '.join(FOOD_CATEGORIES)}")
        return value

    @validates("preparation_time")
    def _validate_preparation_time(self, key, value):
        if value is None or int(value) < 1:
            raise ValidationError("preparation_time must be at least 1 minute")
        return int(value)

    @validates("stock")
    def _validate_stock(self, key, value):
        if value is None or int(value) < 0:
            raise ValidationError("stock cannot be negative")
        return int(value)

    @validates("max_daily_stock")
    def _validate_max_daily_stock(self, key, value):
        if value is None or int(value) < 1:
            raise ValidationError("max_daily_stock must be at least 1")
        return int(value)

    def check_invariants(self):
        """跨字段约束：0 <= stock <= max_daily_stock，可点的菜品必须有库存"""
        if self.stock > self.max_daily_stock:
            raise ValidationError(
                f"stock ({self.stock}) cannot exceed max_daily_stock ({self.max_daily_stock})"
            )
        if self.is_available and self.stock <= 0:
            raise ValidationError("an item with no stock cannot be marked available")

    @property
    def is_orderable(self) -> bool:
        return bool(self.is_available) and self.stock > 0
