"""
用户相关的Pydantic模型
"""
from pydantic import BaseModel, Field, EmailStr, field_serializer
from typing import Optional
from datetime import datetime
from decimal import Decimal
from app.core.clock import format_datetime_local


class RegisterRequest(BaseModel):
    """注册请求"""
    name: str = Field(..., description="姓名", min_length=1, max_length=100)
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., description="密码", min_length=6)
    student_id: Optional[str] = Field(None, description="学号", max_length=50)
    department: Optional[str] = Field(None, description="院系", max_length=100)
    phone: Optional[str] = Field(None, description="电话", max_length=20)


class LoginRequest(BaseModel):
    """登录请求"""
    email: EmailStr = Field(..., description="邮箱")
    password: str = Field(..., description="密码")


class ProfileUpdate(BaseModel):
    """修改个人资料"""
    name: Optional[str] = Field(None, description="姓名", min_length=1, max_length=100)
    department: Optional[str] = Field(None, description="院系", max_length=100)
    phone: Optional[str] = Field(None, description="电话", max_length=20)
    password: Optional[str] = Field(None, description="新密码", min_length=6)


class UserResponse(BaseModel):
    """用户响应模型"""
    id: int
    name: str
    email: str
    role: str
    student_id: Optional[str] = None
    department: Optional[str] = None
    phone: Optional[str] = None
    balance: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True

    @field_serializer('created_at')
    def serialize_datetime(self, dt: datetime) -> Optional[str]:
        if dt is None:
            return None
        return format_datetime_local(dt)


class AuthResponse(BaseModel):
    """登录/注册响应"""
    access_token: str = Field(..., description="访问令牌")
    token_type: str = "bearer"
    user: UserResponse


class BalanceResponse(BaseModel):
    balance: Decimal


class AddBalanceRequest(BaseModel):
    """充值请求"""
    amount: Decimal = Field(..., gt=0, description="充值金额")
    description: Optional[str] = Field(None, description="说明", max_length=500)
