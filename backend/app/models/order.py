"""
订单模型
"""
from decimal import Decimal
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from app.db.database import Base
from app.core.errors import ValidationError

# 订单状态按先后顺序排列，cancelled 不在正常流程中
ORDER_FLOW = ("pending", "confirmed", "preparing", "ready", "completed")
ORDER_STATUSES = ORDER_FLOW + ("cancelled",)
TERMINAL_STATUSES = ("completed", "cancelled")
ORDER_TYPES = ("immediate", "scheduled")
PAYMENT_STATUSES = ("pending", "paid", "failed", "refunded")
PAYMENT_METHODS = ("balance", "cash", "card")


class Order(Base):
    """订单表"""
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, comment="下单用户ID")
    total_amount = Column(Numeric(10, 2), nullable=False, comment="订单总额（下单时计算，之后不再变化）")
    status = Column(String(20), nullable=False, default="pending", index=True, comment="订单状态")
    order_type = Column(String(20), nullable=False, default="immediate", comment="immediate=立即取餐, scheduled=预约")
    scheduled_time = Column(DateTime(timezone=True), nullable=True, comment="预约取餐时间")
    payment_status = Column(String(20), nullable=False, default="pending", index=True, comment="付款状态：pending/paid/failed/refunded")
    payment_method = Column(String(20), nullable=False, default="balance", comment="付款方式：balance/cash/card")
    notes = Column(String(500), comment="备注")
    preparation_started_at = Column(DateTime(timezone=True), nullable=True, comment="开始备餐时间")
    estimated_ready_time = Column(DateTime(timezone=True), nullable=True, comment="预计出餐时间")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False, comment="更新时间")

    # 关系
    items = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan",
        order_by="OrderItem.id", lazy="selectin",
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="ck_orders_total_amount"),
        Index("idx_orders_user_id", "user_id"),
        Index("idx_orders_status", "status"),
        Index("idx_orders_payment_status", "payment_status"),
    )

    @validates("status")
    def _validate_status(self, key, value):
        if value not in ORDER_STATUSES:
            raise ValidationError(f"invalid status: {value}")
        return value

    @validates("payment_status")
    def _validate_payment_status(self, key, value):
        if value not in PAYMENT_STATUSES:
            raise ValidationError(f"invalid payment status: {value}")
        return value

    @validates("payment_method")
    def _validate_payment_method(self, key, value):
        if value not in PAYMENT_METHODS:
            raise ValidationError(f"payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        return value

    @validates("notes")
    def _validate_notes(self, key, value):
        if value is not None and len(value) > 500:
            raise ValidationError("notes cannot exceed 500 characters")
        return value

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def items_total(self) -> Decimal:
        return sum((item.price * item.quantity for item in self.items), Decimal("0"))

    def check_invariants(self):
        """订单必须有明细，订单总额必须等于明细快照之和"""
        if not self.items:
            raise ValidationError("an order needs at least one item")
        if Decimal(str(self.total_amount)) != self.items_total():
            raise ValidationError("order total does not match its items")
        if self.order_type == "scheduled" and self.scheduled_time is None:
            raise ValidationError("scheduled orders need a scheduled_time")


class OrderItem(Base):
    """订单明细表（保存下单时的菜品快照）"""
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True, comment="订单ID")
    # 弱引用：菜品删除后订单明细仍保留快照
    food_item_id = Column(Integer, nullable=False, index=True, comment="菜品ID")
    name = Column(String(100), nullable=False, comment="下单时的菜品名称")
    price = Column(Numeric(10, 2), nullable=False, comment="下单时的单价")
    quantity = Column(Integer, nullable=False, comment="数量")
    preparation_time = Column(Integer, nullable=False, comment="下单时的制作时间（分钟）")

    # 关系
    order = relationship("Order", back_populates="items")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_order_items_quantity"),
        CheckConstraint("price >= 0", name="ck_order_items_price"),
        Index("idx_order_items_order_id", "order_id"),
    )

    @validates("quantity")
    def _validate_quantity(self, key, value):
        if value is None or int(value) < 1:
            raise ValidationError("quantity must be at least 1")
        return int(value)

    @validates("price")
    def _validate_price(self, key, value):
        if value is None or Decimal(str(value)) < 0:
            raise ValidationError("price must be a non-negative amount")
        return Decimal(str(value))

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity
