"""
订单API
"""
from fastapi import APIRouter, Depends, Query
from typing import Optional
from datetime import date
from app.api.deps import get_current_user, get_order_service, require_roles
from app.models import User
from app.schemas.common import Pagination
from app.schemas.order import (
    OrderCreate, OrderListResponse, OrderResponse, OrderStatusUpdate, SweepResponse
)
from app.services.orders import OrderLine, OrderService

router = APIRouter(prefix="/orders", tags=["订单管理"])


@router.post("", response_model=OrderResponse, status_code=201)
def create_order(
    request: OrderCreate,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    """下单：校验库存并在同一事务中扣减"""
    return orders.create_order(
        user,
        [OrderLine(line.food_item_id, line.quantity) for line in request.items],
        order_type=request.order_type,
        scheduled_time=request.scheduled_time,
        notes=request.notes,
        payment_method=request.payment_method,
    )


@router.get("/my-orders", response_model=OrderListResponse)
def get_my_orders(
    status: Optional[str] = None,
    limit: int = Query(10, ge=1, le=100),
    page: int = Query(1, ge=1),
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    """当前用户的订单（按下单时间倒序）"""
    data, total = orders.list_orders(user_id=user.id, status=status, page=page, limit=limit)
    return {"data": data, "pagination": Pagination.build(page, limit, total)}


@router.get("/admin/all", response_model=OrderListResponse)
def get_all_orders(
    status: Optional[str] = None,
    order_date: Optional[date] = Query(None, alias="date", description="下单日期，格式：YYYY-MM-DD"),
    limit: int = Query(50, ge=1, le=200),
    page: int = Query(1, ge=1),
    operator: User = Depends(require_roles("admin", "staff")),
    orders: OrderService = Depends(get_order_service),
):
    """全部订单（管理员/员工）"""
    data, total = orders.list_orders(status=status, day=order_date, page=page, limit=limit)
    return {"data": data, "pagination": Pagination.build(page, limit, total)}


@router.patch("/admin/auto-update-ready", response_model=SweepResponse)
def auto_update_ready(
    operator: User = Depends(require_roles("admin", "staff")),
    orders: OrderService = Depends(get_order_service),
):
    """把预计出餐时间已到的备餐订单置为 ready"""
    count = orders.sweep_ready()
    return {"message": f"updated {count} order(s) to ready", "modified_count": count}


@router.patch("/admin/{order_id}/status", response_model=OrderResponse)
def update_order_status(
    order_id: int,
    request: OrderStatusUpdate,
    operator: User = Depends(require_roles("admin", "staff")),
    orders: OrderService = Depends(get_order_service),
):
    """修改订单状态（管理员/员工）"""
    return orders.update_status(order_id, request.status)


@router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: int,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    """订单详情（只能查看自己的订单）"""
    return orders.get_order(order_id, user)


@router.patch("/{order_id}/cancel", response_model=OrderResponse)
def cancel_order(
    order_id: int,
    user: User = Depends(get_current_user),
    orders: OrderService = Depends(get_order_service),
):
    """取消订单，仅限待确认状态，库存按原数量归还"""
    return orders.cancel_order(user, order_id)
