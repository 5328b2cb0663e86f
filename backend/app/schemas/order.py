"""
订单相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import List, Literal, Optional
from datetime import datetime
from decimal import Decimal
from app.core.clock import format_datetime_local
from app.schemas.common import Pagination


class OrderLineCreate(BaseModel):
    """下单明细"""
    food_item_id: int = Field(..., description="菜品ID")
    quantity: int = Field(..., ge=1, description="数量")


class OrderCreate(BaseModel):
    """创建订单模型"""
    items: List[OrderLineCreate] = Field(..., min_length=1, description="菜品列表")
    order_type: Literal["immediate", "scheduled"] = Field("immediate", description="immediate=立即取餐, scheduled=预约")
    scheduled_time: Optional[datetime] = Field(None, description="预约取餐时间（预约单必填）")
    notes: Optional[str] = Field(None, description="备注", max_length=500)
    payment_method: Literal["balance", "cash", "card"] = Field("balance", description="付款方式")


class OrderItemResponse(BaseModel):
    """订单明细响应模型（下单时的菜品快照）"""
    food_item_id: int
    name: str
    price: Decimal
    quantity: int
    preparation_time: int
    line_total: Decimal

    class Config:
        from_attributes = True


class OrderResponse(BaseModel):
    """订单响应模型"""
    id: int
    user_id: int
    items: List[OrderItemResponse] = []
    total_amount: Decimal
    status: str
    order_type: str
    scheduled_time: Optional[datetime] = None
    payment_status: str
    payment_method: str
    notes: Optional[str] = None
    preparation_started_at: Optional[datetime] = None
    estimated_ready_time: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer(
        'scheduled_time', 'preparation_started_at', 'estimated_ready_time', 'created_at', 'updated_at'
    )
    def serialize_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_datetime_local(dt)


class OrderListResponse(BaseModel):
    """订单分页列表"""
    data: List[OrderResponse]
    pagination: Pagination


class OrderStatusUpdate(BaseModel):
    """订单状态修改模型"""
    status: str = Field(..., description="pending/confirmed/preparing/ready/completed/cancelled")


class SweepResponse(BaseModel):
    message: str
    modified_count: int
