"""
订单生命周期：下单扣库存、状态流转、取消归还库存、自动出餐
"""
import logging
from collections import OrderedDict
from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Callable, List, Optional

from app.core.clock import utc_now, to_naive_utc
from app.core.config import Settings
from app.core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from app.models import LedgerEntry, Order, OrderItem, User
from app.models.order import ORDER_FLOW, ORDER_STATUSES, ORDER_TYPES, PAYMENT_METHODS
from app.repositories.base import Store

logger = logging.getLogger(__name__)


class OrderLine:
    """下单请求中的一行"""

    def __init__(self, food_item_id: int, quantity: int):
        self.food_item_id = food_item_id
        self.quantity = quantity


def merge_lines(lines: List[OrderLine]) -> "OrderedDict[int, int]":
    """同一菜品出现多次时合并数量，保持首次出现的顺序"""
    merged = OrderedDict()
    for line in lines:
        if line.quantity is None or line.quantity < 1:
            raise ValidationError("quantity must be at least 1")
        merged[line.food_item_id] = merged.get(line.food_item_id, 0) + line.quantity
    return merged


class OrderService:
    """订单服务，所有写操作要么整体提交，要么整体回滚"""

    def __init__(self, store: Store, settings: Settings, clock: Callable = utc_now):
        self.store = store
        self.settings = settings
        self.clock = clock

    # ---------- 下单 ----------

    def create_order(
        self,
        user: Optional[User],
        lines: List[OrderLine],
        order_type: str = "immediate",
        scheduled_time=None,
        notes: Optional[str] = None,
        payment_method: str = "balance",
    ) -> Order:
        if user is None:
            raise AuthError("not authenticated")
        if not lines:
            raise ValidationError("at least one item is required")
        if order_type not in ORDER_TYPES:
            raise ValidationError("order type must be immediate or scheduled")
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment method must be one of: {', '.join(PAYMENT_METHODS)}")
        if notes is not None and len(notes) > 500:
            raise ValidationError("notes cannot exceed 500 characters")

        now = self.clock()
        if order_type == "scheduled":
            if scheduled_time is None:
                raise ValidationError("scheduled_time is required for scheduled orders")
            scheduled_time = to_naive_utc(scheduled_time)
            if scheduled_time <= now:
                raise ValidationError("scheduled_time must be in the future")
        else:
            scheduled_time = None

        merged = merge_lines(lines)

        # 先整体校验，任何一项不满足都不产生副作用
        order_items = []
        total_amount = Decimal("0")
        for food_item_id, quantity in merged.items():
            food = self.store.catalog.get(food_item_id)
            if food is None or not food.is_available:
                raise ValidationError(f"item not found or unavailable: {food_item_id}")
            if food.stock < quantity:
                raise ConflictError(
                    f"insufficient stock for {food.name}: available {food.stock}, requested {quantity}"
                )
            price = Decimal(str(food.price))
            total_amount += price * quantity
            order_items.append(OrderItem(
                food_item_id=food.id,
                name=food.name,
                price=price,
                quantity=quantity,
                preparation_time=food.preparation_time,
            ))

        order = Order(
            user_id=user.id,
            items=order_items,
            total_amount=total_amount,
            status="pending",
            order_type=order_type,
            scheduled_time=scheduled_time,
            payment_status="pending",
            payment_method=payment_method,
            notes=notes,
            created_at=now,
            updated_at=now,
        )

        # 订单写入和库存扣减在同一个事务里
        try:
            self.store.orders.add(order)
            for item in order_items:
                if not self.store.catalog.try_decrement_stock(item.food_item_id, item.quantity):
                    current = self.store.catalog.get(item.food_item_id)
                    available = current.stock if current is not None else 0
                    logger.warning(
                        "stock race lost for item %s (wanted %s, available %s)",
                        item.food_item_id, item.quantity, available,
                    )
                    raise ConflictError(
                        f"insufficient stock for {item.name}: available {available}, requested {item.quantity}"
                    )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info("order %s created for user %s, total %s", order.id, user.id, order.total_amount)
        return order

    # ---------- 查询 ----------

    def get_order(self, order_id: int, user: Optional[User] = None) -> Order:
        order = self.store.orders.get(order_id, user_id=user.id if user is not None else None)
        if order is None:
            raise NotFoundError("order not found")
        return order

    def list_orders(self, user_id=None, status=None, day=None, page: int = 1, limit: int = 10):
        if status and status not in ORDER_STATUSES:
            raise ValidationError(f"invalid status: {status}")
        if page < 1 or limit < 1:
            raise ValidationError("page and limit must be positive")
        created_from = created_to = None
        if day is not None:
            # day 是展示时区下的日期
            offset = timedelta(minutes=self.settings.display_utc_offset_minutes)
            created_from = datetime.combine(day, time.min) - offset
            created_to = created_from + timedelta(days=1)
        orders, total = self.store.orders.list(
            user_id=user_id,
            status=status,
            created_from=created_from,
            created_to=created_to,
            skip=(page - 1) * limit,
            limit=limit,
        )
        return orders, total

    # ---------- 状态流转 ----------

    def cancel_order(self, user: User, order_id: int) -> Order:
        """学生自助取消，只能取消待确认的订单"""
        order = self.get_order(order_id, user)
        if order.status != "pending":
            raise ConflictError("only pending orders can be cancelled")
        return self._apply_transition(order, "cancelled")

    def update_status(self, order_id: int, status: str) -> Order:
        """管理员/员工修改订单状态"""
        if status not in ORDER_STATUSES:
            raise ValidationError(f"invalid status: {status}")
        order = self.get_order(order_id)
        if order.is_terminal:
            raise ConflictError(f"order is already {order.status}")
        if status != "cancelled":
            current_rank = ORDER_FLOW.index(order.status)
            target_rank = ORDER_FLOW.index(status)
            if target_rank == current_rank:
                raise ConflictError(f"order is already {status}")
            if target_rank < current_rank:
                raise ConflictError(f"cannot move order from {order.status} back to {status}")
        return self._apply_transition(order, status)

    def _apply_transition(self, order: Order, status: str) -> Order:
        from_status = order.status
        now = self.clock()
        values = {"status": status}

        if status == "preparing":
            max_prep = max(item.preparation_time or 0 for item in order.items)
            values["preparation_started_at"] = now
            values["estimated_ready_time"] = now + timedelta(minutes=max_prep)

        if status == "cancelled":
            if order.payment_status == "pending":
                values["payment_status"] = "failed"
            elif order.payment_status == "paid":
                values["payment_status"] = "refunded"

        # 先抓取需要的快照，transition 之后订单对象会被刷新
        lines = [(item.food_item_id, item.quantity) for item in order.items]
        was_paid = order.payment_status == "paid"
        total_amount = Decimal(str(order.total_amount))
        order_id, user_id = order.id, order.user_id
        refund_to_wallet = status == "cancelled" and was_paid and (
            self.settings.settlement_deducts_balance or self._charged_from_wallet(order_id)
        )

        try:
            if not self.store.orders.transition(order, from_status, values):
                raise ConflictError("order status changed concurrently, please reload")
            if status == "cancelled" and from_status == "pending":
                for food_item_id, quantity in lines:
                    if not self.store.catalog.restore_stock(food_item_id, quantity):
                        logger.info("item %s no longer exists, stock not restored", food_item_id)
            if refund_to_wallet:
                self._refund(user_id, order_id, total_amount)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info("order %s: %s -> %s", order_id, from_status, status)
        return self.store.orders.get(order_id)

    def _charged_from_wallet(self, order_id: int) -> bool:
        """该订单是否真的从钱包扣过钱（自助支付，或开启扣款的结算）"""
        return any(
            e.type == "debit" and Decimal(str(e.balance_before)) > Decimal(str(e.balance_after))
            for e in self.store.ledger.list_for_order(order_id)
        )

    def _refund(self, user_id: int, order_id: int, amount: Decimal):
        result = self.store.accounts.adjust_balance(user_id, amount)
        if result is None:
            raise NotFoundError("user not found")
        before, after = result
        self.store.ledger.append(LedgerEntry(
            user_id=user_id,
            type="credit",
            amount=amount,
            description=f"Refund for cancelled order {order_id}",
            order_id=order_id,
            balance_before=before,
            balance_after=after,
            created_at=self.clock(),
        ))

    # ---------- 自动出餐 ----------

    def sweep_ready(self) -> int:
        """把已到预计出餐时间的备餐订单置为 ready，可重复执行"""
        try:
            updated = self.store.orders.sweep_ready(self.clock())
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        if updated:
            logger.info("auto-ready sweep moved %s order(s) to ready", updated)
        return updated
