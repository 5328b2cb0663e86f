"""
仓储接口定义

库存和余额是仅有的并发竞争资源，对应的写操作必须是单条带条件的原子更新，
不允许在应用层先读后写。
"""
from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from app.core.clock import utc_now
from app.models import AuthToken, FoodItem, LedgerEntry, Order, User


def apply_column_defaults(obj):
    """在写入前补齐标量列默认值和创建/更新时间（内存实现不经过数据库，必须手动补齐）"""
    for column in obj.__table__.columns:
        key = column.key
        if getattr(obj, key, None) is not None:
            continue
        default = column.default
        if default is not None and default.is_scalar:
            setattr(obj, key, default.arg)
    now = utc_now()
    if hasattr(obj, "created_at") and obj.created_at is None:
        obj.created_at = now
    if hasattr(obj, "updated_at") and obj.updated_at is None:
        obj.updated_at = now


class CatalogRepository(ABC):
    """菜品仓储"""

    @abstractmethod
    def get(self, item_id: int) -> Optional[FoodItem]: ...

    @abstractmethod
    def list(
        self,
        category: Optional[str] = None,
        is_available: Optional[bool] = None,
        search: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[FoodItem]: ...

    @abstractmethod
    def add(self, item: FoodItem) -> FoodItem: ...

    @abstractmethod
    def update(self, item: FoodItem, values: dict) -> FoodItem:
        """修改字段后校验跨字段约束，校验失败时抛出 ValidationError"""

    @abstractmethod
    def delete(self, item: FoodItem) -> None: ...

    @abstractmethod
    def try_decrement_stock(self, item_id: int, quantity: int) -> bool:
        """仅当菜品可点且 stock >= quantity 时扣减库存；库存扣到0时同时置为不可点"""

    @abstractmethod
    def restore_stock(self, item_id: int, quantity: int) -> bool:
        """归还库存（不超过 max_daily_stock）并重新上架（手动下架的除外），菜品已删除时返回 False"""

    @abstractmethod
    def reset_daily_stock(self) -> int:
        """所有菜品库存补满到 max_daily_stock，未被手动下架的重新上架，返回受影响的菜品数"""


class OrderRepository(ABC):
    """订单仓储"""

    @abstractmethod
    def add(self, order: Order) -> Order: ...

    @abstractmethod
    def get(self, order_id: int, user_id: Optional[int] = None) -> Optional[Order]: ...

    @abstractmethod
    def list(
        self,
        user_id: Optional[int] = None,
        status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        skip: int = 0,
        limit: int = 10,
    ) -> Tuple[List[Order], int]:
        """按创建时间倒序分页，返回 (订单列表, 总数)"""

    @abstractmethod
    def pending_payment(self, user_id: int) -> List[Order]:
        """用户所有未付款订单，按创建时间正序"""

    @abstractmethod
    def transition(self, order: Order, from_status: str, values: dict) -> bool:
        """仅当订单当前状态仍为 from_status 时写入 values（比较并交换）"""

    @abstractmethod
    def mark_paid(self, user_id: int, order_ids: List[int], payment_method: str) -> int:
        """把属于该用户且仍未付款的订单置为已付款，返回实际更新条数"""

    @abstractmethod
    def sweep_ready(self, now: datetime) -> int:
        """preparing 且预计出餐时间已到的订单置为 ready，返回更新条数"""

    @abstractmethod
    def pending_totals_by_user(self) -> Dict[int, Tuple[Decimal, int]]:
        """{user_id: (未付款总额, 未付款订单数)}"""


class AccountRepository(ABC):
    """用户仓储"""

    @abstractmethod
    def get(self, user_id: int) -> Optional[User]: ...

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def list(self, role: Optional[str] = None) -> List[User]: ...

    @abstractmethod
    def add(self, user: User) -> User: ...

    @abstractmethod
    def update(self, user: User, values: dict) -> User: ...

    @abstractmethod
    def adjust_balance(self, user_id: int, delta: Decimal) -> Optional[Tuple[Decimal, Decimal]]:
        """原子地调整余额，余额不能变为负数；成功返回 (变动前, 变动后)，失败返回 None"""

    @abstractmethod
    def add_token(self, token: AuthToken) -> AuthToken: ...

    @abstractmethod
    def get_token(self, token: str) -> Optional[AuthToken]: ...

    @abstractmethod
    def delete_token(self, token: str) -> None: ...


class LedgerRepository(ABC):
    """资金流水仓储（只追加）"""

    @abstractmethod
    def append(self, entry: LedgerEntry) -> LedgerEntry: ...

    @abstractmethod
    def list_for_user(self, user_id: int, skip: int = 0, limit: int = 100) -> List[LedgerEntry]: ...

    @abstractmethod
    def list_for_order(self, order_id: int) -> List[LedgerEntry]: ...

    @abstractmethod
    def list_all(self, skip: int = 0, limit: int = 100) -> List[LedgerEntry]: ...


class Store(ABC):
    """工作单元：一组仓储共享同一个事务"""

    catalog: CatalogRepository
    orders: OrderRepository
    accounts: AccountRepository
    ledger: LedgerRepository

    @abstractmethod
    def commit(self) -> None: ...

    @abstractmethod
    def rollback(self) -> None: ...

    def close(self) -> None:
        pass
