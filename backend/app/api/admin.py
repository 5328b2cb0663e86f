"""
管理员API：菜单库存、学生欠款结算、资金流水
"""
from fastapi import APIRouter, Depends
from typing import List
from app.api.deps import get_account_service, get_catalog_service, get_dues_service, require_roles
from app.models import User
from app.schemas.dues import (
    MarkAllPaidRequest, MarkAllPaidResponse, MarkPaidRequest, MarkPaidResponse,
    StudentDuesDetail, StudentDuesItem
)
from app.schemas.food import AvailabilityUpdate, FoodItemResponse, StockResetResponse, StockUpdate
from app.schemas.ledger import LedgerEntryResponse
from app.services.accounts import AccountService
from app.services.catalog import CatalogService
from app.services.dues import DuesService

router = APIRouter(prefix="/admin", tags=["管理员"])

admin_only = require_roles("admin")


@router.patch("/menu/{item_id}/stock", response_model=FoodItemResponse)
def update_stock(
    item_id: int,
    request: StockUpdate,
    operator: User = Depends(admin_only),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """修改库存（不能超过每日最大库存，改为0时自动下架）"""
    return catalog.set_stock(item_id, request.stock)


@router.patch("/menu/{item_id}/availability", response_model=FoodItemResponse)
def update_availability(
    item_id: int,
    request: AvailabilityUpdate,
    operator: User = Depends(admin_only),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """上架/下架菜品（无库存的菜品不能上架）"""
    return catalog.set_availability(item_id, request.is_available)


@router.post("/menu/reset-daily-stock", response_model=StockResetResponse)
def reset_daily_stock(
    operator: User = Depends(admin_only),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """每日补货：所有菜品库存补满到每日最大库存"""
    count = catalog.reset_daily_stock()
    return {"message": f"restocked {count} item(s)", "modified_count": count}


@router.get("/students/dues", response_model=List[StudentDuesItem])
def get_students_with_dues(
    operator: User = Depends(admin_only),
    dues: DuesService = Depends(get_dues_service),
):
    """有欠款的学生（按欠款金额倒序）"""
    return dues.students_with_dues()


@router.get("/students/{student_id}/dues", response_model=StudentDuesDetail)
def get_student_dues(
    student_id: int,
    operator: User = Depends(admin_only),
    dues: DuesService = Depends(get_dues_service),
):
    """某个学生的欠款明细"""
    return dues.student_dues(student_id)


@router.post("/students/{student_id}/mark-paid", response_model=MarkPaidResponse)
def mark_paid(
    student_id: int,
    request: MarkPaidRequest,
    operator: User = Depends(admin_only),
    dues: DuesService = Depends(get_dues_service),
):
    """把指定订单标记为已付款"""
    result = dues.mark_paid(student_id, request.order_ids, request.payment_method)
    return {"message": f"marked {result['modified_count']} order(s) as paid", **result}


@router.post("/students/{student_id}/mark-all-paid", response_model=MarkAllPaidResponse)
def mark_all_paid(
    student_id: int,
    request: MarkAllPaidRequest = MarkAllPaidRequest(),
    operator: User = Depends(admin_only),
    dues: DuesService = Depends(get_dues_service),
):
    """结清学生全部欠款"""
    result = dues.mark_all_paid(student_id, request.payment_method)
    return {"message": f"marked all {result['orders_count']} pending order(s) as paid", **result}


@router.get("/transactions", response_model=List[LedgerEntryResponse])
def get_all_transactions(
    skip: int = 0,
    limit: int = 100,
    operator: User = Depends(admin_only),
    accounts: AccountService = Depends(get_account_service),
):
    """全部资金流水"""
    return accounts.all_transactions(skip=skip, limit=limit)
