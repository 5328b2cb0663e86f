"""
通用响应模型
"""
from pydantic import BaseModel, Field


class MessageResponse(BaseModel):
    """只带提示信息的响应"""
    message: str


class Pagination(BaseModel):
    """分页信息"""
    current_page: int = Field(..., description="当前页")
    total_pages: int = Field(..., description="总页数")
    total_orders: int = Field(..., description="总条数")
    limit: int = Field(..., description="每页条数")

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(current_page=page, total_pages=(total + limit - 1) // limit, total_orders=total, limit=limit)
