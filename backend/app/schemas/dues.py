"""
欠款与结算相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from app.core.clock import format_datetime_local
from app.schemas.order import OrderResponse
from app.schemas.user import UserResponse


class DuesSummary(BaseModel):
    """欠款汇总"""
    total_dues: Decimal = Field(..., description="未付款订单总额")
    pending_payments: int = Field(..., description="未付款订单数")
    overdue_payments: int = Field(..., description="逾期未付款订单数")
    next_due_date: Optional[datetime] = Field(None, description="最早一笔欠款的到期时间")

    @field_serializer('next_due_date')
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_datetime_local(dt)


class UserDues(BaseModel):
    """用户欠款明细"""
    total_dues: Decimal
    order_count: int
    pending_orders: List[OrderResponse]


class StudentDuesItem(BaseModel):
    """有欠款的学生"""
    student: UserResponse
    total_dues: Decimal
    pending_orders: int


class StudentDuesDetail(UserDues):
    """某个学生的欠款明细"""
    student: UserResponse


class MarkPaidRequest(BaseModel):
    """标记指定订单已付款"""
    order_ids: List[int] = Field(default_factory=list, description="订单ID列表")
    payment_method: Literal["balance", "cash", "card"] = Field("cash", description="付款方式")


class MarkAllPaidRequest(BaseModel):
    """结清全部欠款"""
    payment_method: Literal["balance", "cash", "card"] = Field("cash", description="付款方式")


class MarkPaidResponse(BaseModel):
    message: str
    modified_count: int
    total_amount: Decimal
    payment_method: str


class MarkAllPaidResponse(BaseModel):
    message: str
    orders_count: int
    total_amount: Decimal
    payment_method: str
