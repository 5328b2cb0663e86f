"""
基于SQLAlchemy的仓储实现
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from app.models import AuthToken, FoodItem, LedgerEntry, Order, User
from app.repositories.base import (
    apply_column_defaults, AccountRepository, CatalogRepository, LedgerRepository, OrderRepository, Store
)


def _expire_cached(session: Session, model, pk):
    """条件更新绕过了ORM，需要让会话里缓存的对象失效"""
    for obj in list(session.identity_map.values()):
        if isinstance(obj, model) and obj.id == pk:
            session.expire(obj)


def _restocked_availability():
    """补货后的可点状态：手动下架的保持下架，其余上架"""
    return case((FoodItem.manually_disabled.is_(True), False), else_=True)


class SqlCatalogRepository(CatalogRepository):

    def __init__(self, session: Session):
        self.session = session

    def get(self, item_id):
        return self.session.get(FoodItem, item_id)

    def list(self, category=None, is_available=None, search=None, skip=0, limit=100):
        query = self.session.query(FoodItem)
        if category:
            query = query.filter(FoodItem.category == category)
        if is_available is not None:
            query = query.filter(FoodItem.is_available == is_available)
        if search:
            query = query.filter(FoodItem.name.like(f"%{search}%"))
        return query.order_by(FoodItem.category, FoodItem.name).offset(skip).limit(limit).all()

    def add(self, item):
        apply_column_defaults(item)
        item.check_invariants()
        self.session.add(item)
        self.session.flush()
        return item

    def update(self, item, values):
        for field, value in values.items():
            setattr(item, field, value)
        item.check_invariants()
        self.session.flush()
        return item

    def delete(self, item):
        self.session.delete(item)
        self.session.flush()

    def try_decrement_stock(self, item_id, quantity):
        stmt = (
            update(FoodItem)
            .where(
                FoodItem.id == item_id,
                FoodItem.is_available.is_(True),
                FoodItem.stock >= quantity,
            )
            .values(
                stock=FoodItem.stock - quantity,
                is_available=case((FoodItem.stock > quantity, True), else_=False),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        _expire_cached(self.session, FoodItem, item_id)
        return result.rowcount == 1

    def restore_stock(self, item_id, quantity):
        stmt = (
            update(FoodItem)
            .where(FoodItem.id == item_id)
            .values(
                stock=case(
                    (FoodItem.stock + quantity > FoodItem.max_daily_stock, FoodItem.max_daily_stock),
                    else_=FoodItem.stock + quantity,
                ),
                # 归还后库存必然大于0，只要不是管理员手动下架就重新上架
                is_available=_restocked_availability(),
            )
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        _expire_cached(self.session, FoodItem, item_id)
        return result.rowcount == 1

    def reset_daily_stock(self):
        result = self.session.execute(
            update(FoodItem)
            .values(stock=FoodItem.max_daily_stock, is_available=_restocked_availability())
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return result.rowcount


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session):
        self.session = session

    def add(self, order):
        apply_column_defaults(order)
        order.check_invariants()
        self.session.add(order)
        self.session.flush()
        return order

    def get(self, order_id, user_id=None):
        query = self.session.query(Order).filter(Order.id == order_id)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        return query.first()

    def list(self, user_id=None, status=None, created_from=None, created_to=None, skip=0, limit=10):
        query = self.session.query(Order)
        if user_id is not None:
            query = query.filter(Order.user_id == user_id)
        if status:
            query = query.filter(Order.status == status)
        if created_from is not None:
            query = query.filter(Order.created_at >= created_from)
        if created_to is not None:
            query = query.filter(Order.created_at < created_to)
        total = query.count()
        orders = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit).all()
        return orders, total

    def pending_payment(self, user_id):
        return (
            self.session.query(Order)
            .filter(Order.user_id == user_id, Order.payment_status == "pending")
            .order_by(Order.created_at, Order.id)
            .all()
        )

    def transition(self, order, from_status, values):
        stmt = (
            update(Order)
            .where(Order.id == order.id, Order.status == from_status)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        self.session.expire(order)
        return result.rowcount == 1

    def mark_paid(self, user_id, order_ids, payment_method):
        result = self.session.execute(
            update(Order)
            .where(
                Order.id.in_(order_ids),
                Order.user_id == user_id,
                Order.payment_status == "pending",
            )
            .values(payment_status="paid", payment_method=payment_method)
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return result.rowcount

    def sweep_ready(self, now: datetime):
        result = self.session.execute(
            update(Order)
            .where(
                Order.status == "preparing",
                Order.estimated_ready_time.is_not(None),
                Order.estimated_ready_time <= now,
            )
            .values(status="ready")
            .execution_options(synchronize_session=False)
        )
        self.session.expire_all()
        return result.rowcount

    def pending_totals_by_user(self) -> Dict[int, Tuple[Decimal, int]]:
        rows = (
            self.session.query(Order.user_id, func.sum(Order.total_amount), func.count(Order.id))
            .filter(Order.payment_status == "pending")
            .group_by(Order.user_id)
            .all()
        )
        return {user_id: (Decimal(str(total or 0)).quantize(Decimal("0.01")), count) for user_id, total, count in rows}


class SqlAccountRepository(AccountRepository):

    def __init__(self, session: Session):
        self.session = session

    def get(self, user_id):
        return self.session.get(User, user_id)

    def get_by_email(self, email):
        return self.session.query(User).filter(User.email == email).first()

    def list(self, role=None):
        query = self.session.query(User)
        if role:
            query = query.filter(User.role == role)
        return query.order_by(User.id).all()

    def add(self, user):
        apply_column_defaults(user)
        self.session.add(user)
        self.session.flush()
        return user

    def update(self, user, values):
        for field, value in values.items():
            setattr(user, field, value)
        self.session.flush()
        return user

    def adjust_balance(self, user_id, delta) -> Optional[Tuple[Decimal, Decimal]]:
        result = self.session.execute(
            update(User)
            .where(User.id == user_id, User.balance + delta >= 0)
            .values(balance=User.balance + delta)
            .execution_options(synchronize_session=False)
        )
        _expire_cached(self.session, User, user_id)
        if result.rowcount != 1:
            return None
        after = self.session.execute(select(User.balance).where(User.id == user_id)).scalar_one()
        after = Decimal(str(after))
        return after - delta, after

    def add_token(self, token):
        apply_column_defaults(token)
        self.session.add(token)
        self.session.flush()
        return token

    def get_token(self, token):
        return self.session.get(AuthToken, token)

    def delete_token(self, token):
        self.session.query(AuthToken).filter(AuthToken.token == token).delete()


class SqlLedgerRepository(LedgerRepository):

    def __init__(self, session: Session):
        self.session = session

    def append(self, entry):
        apply_column_defaults(entry)
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_for_user(self, user_id, skip=0, limit=100):
        return (
            self.session.query(LedgerEntry)
            .filter(LedgerEntry.user_id == user_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def list_for_order(self, order_id):
        return (
            self.session.query(LedgerEntry)
            .filter(LedgerEntry.order_id == order_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .all()
        )

    def list_all(self, skip=0, limit=100):
        return (
            self.session.query(LedgerEntry)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


class SqlStore(Store):
    """一个数据库会话就是一个工作单元"""

    def __init__(self, session: Session):
        self.session = session
        self.catalog = SqlCatalogRepository(session)
        self.orders = SqlOrderRepository(session)
        self.accounts = SqlAccountRepository(session)
        self.ledger = SqlLedgerRepository(session)

    def commit(self):
        self.session.commit()

    def rollback(self):
        self.session.rollback()

    def close(self):
        self.session.close()
