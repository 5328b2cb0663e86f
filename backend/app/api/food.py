"""
菜品管理API
"""
from fastapi import APIRouter, Depends, Query
from typing import List, Optional
from app.api.deps import get_catalog_service, require_roles
from app.models import User
from app.schemas.common import MessageResponse
from app.schemas.food import FoodItemCreate, FoodItemResponse, FoodItemUpdate
from app.services.catalog import CatalogService

router = APIRouter(prefix="/food", tags=["菜品管理"])


@router.get("", response_model=List[FoodItemResponse])
def get_food_items(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    category: Optional[str] = None,
    available: Optional[bool] = None,
    search: Optional[str] = None,
    catalog: CatalogService = Depends(get_catalog_service),
):
    """获取菜单（无需登录）"""
    return catalog.list_items(category=category, is_available=available, search=search, skip=skip, limit=limit)


@router.get("/{item_id}", response_model=FoodItemResponse)
def get_food_item(item_id: int, catalog: CatalogService = Depends(get_catalog_service)):
    """获取菜品详情"""
    return catalog.get_item(item_id)


@router.post("", response_model=FoodItemResponse, status_code=201)
def create_food_item(
    item: FoodItemCreate,
    operator: User = Depends(require_roles("admin", "staff")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """创建菜品"""
    return catalog.create_item(item.model_dump())


@router.put("/{item_id}", response_model=FoodItemResponse)
def update_food_item(
    item_id: int,
    item_update: FoodItemUpdate,
    operator: User = Depends(require_roles("admin", "staff")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """更新菜品"""
    return catalog.update_item(item_id, item_update.model_dump(exclude_unset=True))


@router.delete("/{item_id}", response_model=MessageResponse)
def delete_food_item(
    item_id: int,
    operator: User = Depends(require_roles("admin", "staff")),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """删除菜品（历史订单保留下单时的快照）"""
    catalog.delete_item(item_id)
    return {"message": "food item deleted"}
