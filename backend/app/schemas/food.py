"""
菜品相关的Pydantic模型
"""
from pydantic import BaseModel, Field, field_serializer
from typing import Literal, Optional
from datetime import datetime
from decimal import Decimal
from app.core.clock import format_datetime_local

Category = Literal["breakfast", "lunch", "dinner", "snacks", "beverages"]


class FoodItemBase(BaseModel):
    """菜品基础模型"""
    name: str = Field(..., description="名称", min_length=1, max_length=100)
    description: str = Field("", description="描述", max_length=500)
    price: Decimal = Field(..., ge=0, description="单价")
    category: Category = Field(..., description="分类")
    image: Optional[str] = Field("", description="图片地址", max_length=500)
    is_available: bool = Field(True, description="是否可点（库存为0时自动下架）")
    preparation_time: int = Field(10, ge=1, description="制作时间（分钟）")
    stock: int = Field(0, ge=0, description="当日剩余库存")
    max_daily_stock: int = Field(50, ge=1, description="每日最大库存")
    calories: Optional[int] = Field(None, ge=0, description="热量")
    protein: Optional[Decimal] = Field(None, ge=0, description="蛋白质（克）")
    carbs: Optional[Decimal] = Field(None, ge=0, description="碳水（克）")
    fat: Optional[Decimal] = Field(None, ge=0, description="脂肪（克）")


class FoodItemCreate(FoodItemBase):
    """创建菜品模型"""
    pass


class FoodItemUpdate(BaseModel):
    """更新菜品模型"""
    name: Optional[str] = Field(None, description="名称", min_length=1, max_length=100)
    description: Optional[str] = Field(None, description="描述", max_length=500)
    price: Optional[Decimal] = Field(None, ge=0, description="单价")
    category: Optional[Category] = Field(None, description="分类")
    image: Optional[str] = Field(None, description="图片地址", max_length=500)
    is_available: Optional[bool] = Field(None, description="是否可点")
    preparation_time: Optional[int] = Field(None, ge=1, description="制作时间（分钟）")
    stock: Optional[int] = Field(None, ge=0, description="当日剩余库存")
    max_daily_stock: Optional[int] = Field(None, ge=1, description="每日最大库存")
    calories: Optional[int] = Field(None, ge=0)
    protein: Optional[Decimal] = Field(None, ge=0)
    carbs: Optional[Decimal] = Field(None, ge=0)
    fat: Optional[Decimal] = Field(None, ge=0)


class FoodItemResponse(FoodItemBase):
    """菜品响应模型"""
    manually_disabled: bool = Field(False, description="是否被管理员手动下架")
    id: int
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True

    @field_serializer('created_at', 'updated_at')
    def serialize_datetime(self, dt: datetime) -> str:
        if dt is None:
            return ""
        return format_datetime_local(dt)


class StockUpdate(BaseModel):
    """库存修改模型"""
    stock: int = Field(..., ge=0, description="新的库存数量")


class AvailabilityUpdate(BaseModel):
    """可点状态修改模型"""
    is_available: bool = Field(..., description="是否可点")


class StockResetResponse(BaseModel):
    message: str
    modified_count: int
