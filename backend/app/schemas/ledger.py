"""
资金流水相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import Literal, Optional
from datetime import datetime
from decimal import Decimal
from app.core.clock import format_datetime_local


class LedgerEntryResponse(BaseModel):
    """资金流水响应模型"""
    id: int
    user_id: int
    type: str
    amount: Decimal
    description: str
    order_id: Optional[int] = None
    balance_before: Decimal
    balance_after: Decimal
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer('created_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        if dt is None:
            return None
        return format_datetime_local(dt)


class PaymentRequest(BaseModel):
    """自助收支请求模型"""
    amount: Decimal = Field(..., gt=0, description="金额")
    type: Literal["credit", "debit"] = Field(..., description="credit 充值 / debit 扣款")
    description: Optional[str] = Field(None, description="备注", max_length=500)
    order_id: Optional[int] = Field(None, description="关联订单（debit 时用钱包支付该订单）")


class PaymentResponse(BaseModel):
    """自助收支响应模型"""
    message: str
    transaction: LedgerEntryResponse
    new_balance: Decimal
