"""
内存仓储实现，用于测试和本地演示

多个 MemoryStore 可以共享同一个 MemoryDatabase；所有读写都在数据库锁内完成，
每个 store 记录自己的撤销日志，rollback() 时按相反顺序撤销。
"""
import threading
from collections import defaultdict
from decimal import Decimal

from app.core.clock import utc_now
from app.repositories.base import (
    apply_column_defaults, AccountRepository, CatalogRepository, LedgerRepository, OrderRepository, Store
)


class MemoryDatabase:
    """共享的内存表"""

    def __init__(self):
        self.lock = threading.RLock()
        self.food_items = {}
        self.orders = {}
        self.users = {}
        self.transactions = {}
        self.auth_tokens = {}
        self._sequences = defaultdict(int)

    def next_id(self, table: str) -> int:
        with self.lock:
            self._sequences[table] += 1
            return self._sequences[table]


class _MemoryRepository:

    def __init__(self, store: "MemoryStore"):
        self.store = store
        self.db = store.db

    def _insert(self, table: dict, key, obj):
        table[key] = obj
        self.store.journal.append(lambda: table.pop(key, None))

    def _set(self, obj, values: dict):
        old = {field: getattr(obj, field) for field in values}
        self.store.journal.append(lambda: [setattr(obj, f, v) for f, v in old.items()])
        for field, value in values.items():
            setattr(obj, field, value)
        if hasattr(obj, "updated_at"):
            obj.updated_at = utc_now()


class MemoryCatalogRepository(_MemoryRepository, CatalogRepository):

    def get(self, item_id):
        with self.db.lock:
            return self.db.food_items.get(item_id)

    def list(self, category=None, is_available=None, search=None, skip=0, limit=100):
        with self.db.lock:
            items = list(self.db.food_items.values())
        if category:
            items = [i for i in items if i.category == category]
        if is_available is not None:
            items = [i for i in items if bool(i.is_available) == is_available]
        if search:
            items = [i for i in items if search.lower() in i.name.lower()]
        items.sort(key=lambda i: (i.category, i.name))
        return items[skip:skip + limit]

    def add(self, item):
        with self.db.lock:
            apply_column_defaults(item)
            item.check_invariants()
            item.id = self.db.next_id("food_items")
            self._insert(self.db.food_items, item.id, item)
        return item

    def update(self, item, values):
        with self.db.lock:
            self._set(item, values)
            item.check_invariants()
        return item

    def delete(self, item):
        with self.db.lock:
            removed = self.db.food_items.pop(item.id, None)
            if removed is not None:
                table = self.db.food_items
                self.store.journal.append(lambda: table.__setitem__(removed.id, removed))

    def try_decrement_stock(self, item_id, quantity):
        with self.db.lock:
            item = self.db.food_items.get(item_id)
            if item is None or not item.is_available or item.stock < quantity:
                return False
            remaining = item.stock - quantity
            self._set(item, {"stock": remaining, "is_available": remaining > 0})
            return True

    def restore_stock(self, item_id, quantity):
        with self.db.lock:
            item = self.db.food_items.get(item_id)
            if item is None:
                return False
            self._set(item, {
                "stock": min(item.stock + quantity, item.max_daily_stock),
                "is_available": not item.manually_disabled,
            })
            return True

    def reset_daily_stock(self):
        with self.db.lock:
            items = list(self.db.food_items.values())
            for item in items:
                self._set(item, {"stock": item.max_daily_stock, "is_available": not item.manually_disabled})
            return len(items)


class MemoryOrderRepository(_MemoryRepository, OrderRepository):

    def add(self, order):
        with self.db.lock:
            apply_column_defaults(order)
            for item in order.items:
                apply_column_defaults(item)
                item.id = self.db.next_id("order_items")
            order.check_invariants()
            order.id = self.db.next_id("orders")
            for item in order.items:
                item.order_id = order.id
            self._insert(self.db.orders, order.id, order)
        return order

    def get(self, order_id, user_id=None):
        with self.db.lock:
            order = self.db.orders.get(order_id)
        if order is None or (user_id is not None and order.user_id != user_id):
            return None
        return order

    def list(self, user_id=None, status=None, created_from=None, created_to=None, skip=0, limit=10):
        with self.db.lock:
            orders = list(self.db.orders.values())
        if user_id is not None:
            orders = [o for o in orders if o.user_id == user_id]
        if status:
            orders = [o for o in orders if o.status == status]
        if created_from is not None:
            orders = [o for o in orders if o.created_at >= created_from]
        if created_to is not None:
            orders = [o for o in orders if o.created_at < created_to]
        orders.sort(key=lambda o: (o.created_at, o.id), reverse=True)
        return orders[skip:skip + limit], len(orders)

    def pending_payment(self, user_id):
        with self.db.lock:
            orders = [
                o for o in self.db.orders.values()
                if o.user_id == user_id and o.payment_status == "pending"
            ]
        return sorted(orders, key=lambda o: (o.created_at, o.id))

    def transition(self, order, from_status, values):
        with self.db.lock:
            stored = self.db.orders.get(order.id)
            if stored is None or stored.status != from_status:
                return False
            self._set(stored, values)
            return True

    def mark_paid(self, user_id, order_ids, payment_method):
        wanted = set(order_ids)
        updated = 0
        with self.db.lock:
            for order in self.db.orders.values():
                if order.id in wanted and order.user_id == user_id and order.payment_status == "pending":
                    self._set(order, {"payment_status": "paid", "payment_method": payment_method})
                    updated += 1
        return updated

    def sweep_ready(self, now):
        updated = 0
        with self.db.lock:
            for order in self.db.orders.values():
                if (
                    order.status == "preparing"
                    and order.estimated_ready_time is not None
                    and order.estimated_ready_time <= now
                ):
                    self._set(order, {"status": "ready"})
                    updated += 1
        return updated

    def pending_totals_by_user(self):
        totals = {}
        with self.db.lock:
            for order in self.db.orders.values():
                if order.payment_status != "pending":
                    continue
                amount, count = totals.get(order.user_id, (Decimal("0"), 0))
                totals[order.user_id] = (amount + order.total_amount, count + 1)
        return totals


class MemoryAccountRepository(_MemoryRepository, AccountRepository):

    def get(self, user_id):
        with self.db.lock:
            return self.db.users.get(user_id)

    def get_by_email(self, email):
        with self.db.lock:
            for user in self.db.users.values():
                if user.email == email:
                    return user
        return None

    def list(self, role=None):
        with self.db.lock:
            users = sorted(self.db.users.values(), key=lambda u: u.id)
        if role:
            users = [u for u in users if u.role == role]
        return users

    def add(self, user):
        with self.db.lock:
            apply_column_defaults(user)
            user.balance = Decimal(str(user.balance))
            user.id = self.db.next_id("users")
            self._insert(self.db.users, user.id, user)
        return user

    def update(self, user, values):
        with self.db.lock:
            self._set(user, values)
        return user

    def adjust_balance(self, user_id, delta):
        with self.db.lock:
            user = self.db.users.get(user_id)
            if user is None:
                return None
            before = Decimal(str(user.balance))
            after = before + delta
            if after < 0:
                return None
            self._set(user, {"balance": after})
            return before, after

    def add_token(self, token):
        with self.db.lock:
            apply_column_defaults(token)
            self._insert(self.db.auth_tokens, token.token, token)
        return token

    def get_token(self, token):
        with self.db.lock:
            return self.db.auth_tokens.get(token)

    def delete_token(self, token):
        with self.db.lock:
            removed = self.db.auth_tokens.pop(token, None)
            if removed is not None:
                table = self.db.auth_tokens
                self.store.journal.append(lambda: table.__setitem__(token, removed))


class MemoryLedgerRepository(_MemoryRepository, LedgerRepository):

    def append(self, entry):
        with self.db.lock:
            apply_column_defaults(entry)
            entry.id = self.db.next_id("transactions")
            self._insert(self.db.transactions, entry.id, entry)
        return entry

    def list_for_user(self, user_id, skip=0, limit=100):
        return [e for e in self.list_all(0, None) if e.user_id == user_id][skip:skip + limit]

    def list_for_order(self, order_id):
        return [e for e in self.list_all(0, None) if e.order_id == order_id]

    def list_all(self, skip=0, limit=100):
        with self.db.lock:
            entries = sorted(self.db.transactions.values(), key=lambda e: (e.created_at, e.id), reverse=True)
        end = None if limit is None else skip + limit
        return entries[skip:end]


class MemoryStore(Store):

    def __init__(self, db: MemoryDatabase = None):
        self.db = db or MemoryDatabase()
        self.journal = []
        self.catalog = MemoryCatalogRepository(self)
        self.orders = MemoryOrderRepository(self)
        self.accounts = MemoryAccountRepository(self)
        self.ledger = MemoryLedgerRepository(self)

    def commit(self):
        self.journal = []

    def rollback(self):
        with self.db.lock:
            while self.journal:
                undo = self.journal.pop()
                undo()
