"""
资金流水模型（只追加，不修改不删除）
"""
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from app.db.database import Base
from app.core.errors import ValidationError

LEDGER_TYPES = ("credit", "debit")


class LedgerEntry(Base):
    """资金流水表"""
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True, comment="用户ID")
    type = Column(String(10), nullable=False, comment="类型：credit=入账, debit=出账")
    amount = Column(Numeric(10, 2), nullable=False, comment="金额")
    description = Column(String(500), nullable=False, comment="说明")
    order_id = Column(Integer, nullable=True, index=True, comment="关联订单ID")
    balance_before = Column(Numeric(10, 2), nullable=False, comment="变动前余额")
    balance_after = Column(Numeric(10, 2), nullable=False, comment="变动后余额")
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False, comment="创建时间")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transactions_amount"),
        Index("idx_transactions_user_id", "user_id"),
        Index("idx_transactions_created_at", "created_at"),
    )

    @validates("type")
    def _validate_type(self, key, value):
        if value not in LEDGER_TYPES:
            raise ValidationError("transaction type must be credit or debit")
        return value
