"""
欠款统计与结算

欠款 = 用户所有 payment_status=pending 订单的 total_amount 之和。
结算是否真正从钱包扣款由 SETTLEMENT_DEDUCTS_BALANCE 决定：
关闭时只修改付款状态，流水记录的变动前后余额相同。
"""
import logging
from datetime import timedelta
from decimal import Decimal
from typing import Callable, List

from app.core.clock import utc_now
from app.core.config import Settings
from app.core.errors import ConflictError, NotFoundError, ValidationError
from app.models import LedgerEntry, User
from app.models.order import PAYMENT_METHODS
from app.repositories.base import Store

logger = logging.getLogger(__name__)


class DuesService:

    def __init__(self, store: Store, settings: Settings, clock: Callable = utc_now):
        self.store = store
        self.settings = settings
        self.clock = clock

    def _grace(self) -> timedelta:
        return timedelta(days=self.settings.dues_grace_days)

    def summary(self, user: User) -> dict:
        """欠款汇总：总额、笔数、逾期笔数、最近到期日"""
        pending = self.store.orders.pending_payment(user.id)
        now = self.clock()
        grace = self._grace()
        total = sum((Decimal(str(o.total_amount)) for o in pending), Decimal("0"))
        overdue = [o for o in pending if o.created_at + grace < now]
        next_due = min(o.created_at for o in pending) + grace if pending else None
        return {
            "total_dues": total,
            "pending_payments": len(pending),
            "overdue_payments": len(overdue),
            "next_due_date": next_due,
        }

    def user_dues(self, user: User) -> dict:
        pending = self.store.orders.pending_payment(user.id)
        return {
            "total_dues": sum((Decimal(str(o.total_amount)) for o in pending), Decimal("0")),
            "order_count": len(pending),
            "pending_orders": list(reversed(pending)),
        }

    def students_with_dues(self) -> List[dict]:
        """有欠款的学生列表，按欠款金额倒序"""
        totals = self.store.orders.pending_totals_by_user()
        result = []
        for student in self.store.accounts.list(role="student"):
            total, count = totals.get(student.id, (Decimal("0"), 0))
            if total > 0:
                result.append({"student": student, "total_dues": total, "pending_orders": count})
        result.sort(key=lambda row: row["total_dues"], reverse=True)
        return result

    def student_dues(self, student_id: int) -> dict:
        student = self._get_student(student_id)
        detail = self.user_dues(student)
        detail["student"] = student
        return detail

    def _get_student(self, student_id: int) -> User:
        student = self.store.accounts.get(student_id)
        if student is None:
            raise NotFoundError("student not found")
        return student

    # ---------- 结算 ----------

    def mark_paid(self, student_id: int, order_ids: List[int], payment_method: str = "cash") -> dict:
        """把指定订单标记为已付款，每个订单记一条流水"""
        if not order_ids:
            raise ValidationError("order ids are required")
        self._check_method(payment_method)
        student = self._get_student(student_id)

        order_ids = list(dict.fromkeys(order_ids))
        pending = {o.id: o for o in self.store.orders.pending_payment(student.id)}
        if not pending.keys() & set(order_ids):
            raise ConflictError("no pending orders to settle")
        invalid = [oid for oid in order_ids if oid not in pending]
        if invalid:
            raise ConflictError(
                f"orders are not pending payments of this student: {', '.join(str(i) for i in invalid)}"
            )

        orders = [pending[oid] for oid in order_ids]
        amounts = [(o.id, Decimal(str(o.total_amount))) for o in orders]
        total = sum((amount for _, amount in amounts), Decimal("0"))

        try:
            updated = self.store.orders.mark_paid(student.id, order_ids, payment_method)
            if updated != len(order_ids):
                raise ConflictError("orders changed while settling, please reload")
            for order_id, amount in amounts:
                self._record_payment(
                    student.id, amount, f"Payment for order {order_id} - {payment_method}", order_id
                )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info("marked %s order(s) paid for student %s, total %s", updated, student.id, total)
        return {"modified_count": updated, "total_amount": total, "payment_method": payment_method}

    def mark_all_paid(self, student_id: int, payment_method: str = "cash") -> dict:
        """结清该学生全部欠款，只记一条汇总流水"""
        self._check_method(payment_method)
        student = self._get_student(student_id)
        pending = self.store.orders.pending_payment(student.id)
        if not pending:
            raise ConflictError("no pending orders to settle")

        order_ids = [o.id for o in pending]
        total = sum((Decimal(str(o.total_amount)) for o in pending), Decimal("0"))

        try:
            updated = self.store.orders.mark_paid(student.id, order_ids, payment_method)
            if updated != len(order_ids):
                raise ConflictError("orders changed while settling, please reload")
            self._record_payment(
                student.id,
                total,
                f"Payment for all pending dues ({updated} orders) - {payment_method}",
                None,
            )
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

        logger.info("settled all dues for student %s: %s order(s), total %s", student.id, updated, total)
        return {"orders_count": updated, "total_amount": total, "payment_method": payment_method}

    def _check_method(self, payment_method: str):
        if payment_method not in PAYMENT_METHODS:
            raise ValidationError(f"payment method must be one of: {', '.join(PAYMENT_METHODS)}")

    def _record_payment(self, user_id: int, amount: Decimal, description: str, order_id):
        if amount <= 0:
            return
        if self.settings.settlement_deducts_balance:
            result = self.store.accounts.adjust_balance(user_id, -amount)
            if result is None:
                raise ConflictError("insufficient balance")
            before, after = result
        else:
            user = self.store.accounts.get(user_id)
            before = after = Decimal(str(user.balance))
        self.store.ledger.append(LedgerEntry(
            user_id=user_id,
            type="debit",
            amount=amount,
            description=description,
            order_id=order_id,
            balance_before=before,
            balance_after=after,
            created_at=self.clock(),
        ))
