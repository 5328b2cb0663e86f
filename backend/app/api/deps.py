"""
公共依赖：存储、服务、当前用户与角色校验
"""
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.core.config import Settings, get_settings
from app.core.errors import PermissionDeniedError
from app.db.database import get_db
from app.models import User
from app.repositories import SqlStore, Store
from app.services.accounts import AccountService
from app.services.catalog import CatalogService
from app.services.dues import DuesService
from app.services.orders import OrderService

security = HTTPBearer(auto_error=False)


def get_store(db: Session = Depends(get_db)) -> Store:
    return SqlStore(db)


def get_account_service(
    store: Store = Depends(get_store), settings: Settings = Depends(get_settings)
) -> AccountService:
    return AccountService(store, settings)


def get_catalog_service(store: Store = Depends(get_store)) -> CatalogService:
    return CatalogService(store)


def get_order_service(
    store: Store = Depends(get_store), settings: Settings = Depends(get_settings)
) -> OrderService:
    return OrderService(store, settings)


def get_dues_service(
    store: Store = Depends(get_store), settings: Settings = Depends(get_settings)
) -> DuesService:
    return DuesService(store, settings)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    accounts: AccountService = Depends(get_account_service),
) -> User:
    """解析 Authorization: Bearer <token>，无效时返回401"""
    token = credentials.credentials if credentials else None
    return accounts.authenticate(token)


def require_roles(*roles: str):
    """角色校验依赖，角色不符返回403"""

    def checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise PermissionDeniedError("access denied")
        return user

    return checker
