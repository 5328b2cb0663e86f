"""
用户、登录令牌与钱包
"""
import logging
import secrets
from datetime import timedelta
from decimal import Decimal
from typing import Callable, Optional, Tuple

import bcrypt

from app.core.clock import to_naive_utc, utc_now
from app.core.config import Settings
from app.core.errors import AuthError, ConflictError, NotFoundError, ValidationError
from app.models import AuthToken, LedgerEntry, User
from app.models.transaction import LEDGER_TYPES
from app.repositories.base import Store

logger = logging.getLogger(__name__)


def get_password_hash(password: str) -> str:
    """生成密码哈希"""
    # bcrypt限制密码长度不能超过72字节，需要截断
    encoded = password.encode("utf-8")[:72]
    return bcrypt.hashpw(encoded, bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """验证密码"""
    encoded = plain_password.encode("utf-8")[:72]
    return bcrypt.checkpw(encoded, hashed_password.encode("utf-8"))


class AccountService:

    def __init__(self, store: Store, settings: Settings, clock: Callable = utc_now):
        self.store = store
        self.settings = settings
        self.clock = clock

    # ---------- 注册登录 ----------

    def register(self, data: dict) -> User:
        """自助注册只能创建学生账号"""
        user = self.create_user(data, role="student")
        logger.info("user %s registered", user.id)
        return user

    def create_user(self, data: dict, role: str) -> User:
        """管理员创建账号（初始化脚本也使用）"""
        email = data["email"].lower()
        if self.store.accounts.get_by_email(email):
            raise ConflictError("email is already registered")
        user = User(
            name=data["name"],
            email=email,
            password_hash=get_password_hash(data["password"]),
            role=role,
            student_id=data.get("student_id"),
            department=data.get("department"),
            phone=data.get("phone"),
            balance=Decimal(str(data.get("balance", 0))),
            is_active=True,
        )
        try:
            self.store.accounts.add(user)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return user

    def login(self, email: str, password: str) -> User:
        user = self.store.accounts.get_by_email(email.lower())
        if not user or not verify_password(password, user.password_hash):
            raise AuthError("invalid email or password")
        if not user.is_active:
            raise AuthError("account is disabled")
        return user

    def issue_token(self, user: User) -> str:
        now = self.clock()
        token = AuthToken(
            token=secrets.token_urlsafe(32),
            user_id=user.id,
            created_at=now,
            expires_at=now + timedelta(hours=self.settings.token_ttl_hours),
        )
        try:
            self.store.accounts.add_token(token)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return token.token

    def revoke_token(self, token: str):
        try:
            self.store.accounts.delete_token(token)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise

    def authenticate(self, token: Optional[str]) -> User:
        """根据访问令牌解析当前用户"""
        if not token:
            raise AuthError("not authenticated")
        record = self.store.accounts.get_token(token)
        if record is None or to_naive_utc(record.expires_at) <= self.clock():
            raise AuthError("invalid or expired token")
        user = self.store.accounts.get(record.user_id)
        if user is None or not user.is_active:
            raise AuthError("invalid or expired token")
        return user

    # ---------- 个人资料 ----------

    def update_profile(self, user: User, data: dict) -> User:
        values = {
            k: v for k, v in data.items()
            if k in ("name", "department", "phone", "student_id") and v is not None
        }
        if "password" in data and data["password"]:
            values["password_hash"] = get_password_hash(data["password"])
        try:
            self.store.accounts.update(user, values)
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        return user

    # ---------- 钱包 ----------

    def add_balance(self, user_id: int, amount: Decimal, description: Optional[str] = None) -> LedgerEntry:
        """充值，余额原子递增并记一条入账流水"""
        if amount is None or amount <= 0:
            raise ValidationError("amount must be a positive number")
        if self.store.accounts.get(user_id) is None:
            raise NotFoundError("user not found")
        try:
            result = self.store.accounts.adjust_balance(user_id, amount)
            if result is None:
                raise NotFoundError("user not found")
            before, after = result
            entry = self.store.ledger.append(LedgerEntry(
                user_id=user_id,
                type="credit",
                amount=amount,
                description=description or "Wallet top-up",
                balance_before=before,
                balance_after=after,
                created_at=self.clock(),
            ))
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("credited %s to user %s, balance %s -> %s", amount, user_id, before, after)
        return entry

    def create_payment(
        self,
        user: User,
        amount: Decimal,
        type: str,
        description: Optional[str] = None,
        order_id: Optional[int] = None,
    ) -> Tuple[LedgerEntry, Decimal]:
        """用户自助收支：credit 充值，debit 从钱包扣款

        debit 指定自己的待付款订单时，金额必须等于订单总额，
        扣款、记流水和订单标记已付款在同一个事务里完成。
        返回 (流水, 变动后余额)
        """
        if amount is None or amount <= 0:
            raise ValidationError("amount must be a positive number")
        if type not in LEDGER_TYPES:
            raise ValidationError("type must be credit or debit")

        settles_order = False
        if order_id is not None:
            order = self.store.orders.get(order_id, user.id)
            if order is None:
                raise NotFoundError("order not found")
            if type == "debit":
                if order.payment_status != "pending":
                    raise ConflictError("order is not awaiting payment")
                if Decimal(str(order.total_amount)) != amount:
                    raise ValidationError(
                        f"amount must equal the order total {order.total_amount}"
                    )
                settles_order = True

        delta = amount if type == "credit" else -amount
        try:
            result = self.store.accounts.adjust_balance(user.id, delta)
            if result is None:
                raise ConflictError("insufficient balance")
            before, after = result
            if settles_order and self.store.orders.mark_paid(user.id, [order_id], "balance") != 1:
                raise ConflictError("order was settled concurrently, please reload")
            entry = self.store.ledger.append(LedgerEntry(
                user_id=user.id,
                type=type,
                amount=amount,
                description=description or ("Wallet top-up" if type == "credit" else "Payment"),
                order_id=order_id,
                balance_before=before,
                balance_after=after,
                created_at=self.clock(),
            ))
            self.store.commit()
        except Exception:
            self.store.rollback()
            raise
        logger.info("%s of %s for user %s, balance %s -> %s", type, amount, user.id, before, after)
        return entry, after

    def transactions(self, user_id: int, skip: int = 0, limit: int = 100):
        return self.store.ledger.list_for_user(user_id, skip=skip, limit=limit)

    def all_transactions(self, skip: int = 0, limit: int = 100):
        return self.store.ledger.list_all(skip=skip, limit=limit)
