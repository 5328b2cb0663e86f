"""
认证与钱包相关API
"""
from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials
from typing import List
from app.api.deps import (
    get_account_service, get_current_user, get_dues_service, require_roles, security
)
from app.models import User
from app.schemas.common import MessageResponse
from app.schemas.dues import UserDues
from app.schemas.ledger import LedgerEntryResponse, PaymentRequest, PaymentResponse
from app.schemas.user import (
    AddBalanceRequest, AuthResponse, BalanceResponse, LoginRequest, ProfileUpdate,
    RegisterRequest, UserResponse
)
from app.services.accounts import AccountService
from app.services.dues import DuesService

router = APIRouter(prefix="/auth", tags=["认证"])


@router.post("/register", response_model=AuthResponse, status_code=201)
def register(request: RegisterRequest, accounts: AccountService = Depends(get_account_service)):
    """学生注册，注册成功后直接登录"""
    user = accounts.register(request.model_dump())
    token = accounts.issue_token(user)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=AuthResponse)
def login(request: LoginRequest, accounts: AccountService = Depends(get_account_service)):
    """用户登录"""
    user = accounts.login(request.email, request.password)
    token = accounts.issue_token(user)
    return AuthResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
def logout(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """退出登录，令牌立即失效"""
    accounts.revoke_token(credentials.credentials)
    return {"message": "logged out"}


@router.get("/profile", response_model=UserResponse)
def get_profile(user: User = Depends(get_current_user)):
    """获取个人资料"""
    return user


@router.put("/profile", response_model=UserResponse)
def update_profile(
    request: ProfileUpdate,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """修改个人资料"""
    return accounts.update_profile(user, request.model_dump(exclude_unset=True))


@router.get("/balance", response_model=BalanceResponse)
def get_balance(user: User = Depends(get_current_user)):
    """钱包余额"""
    return {"balance": user.balance}


@router.get("/dues", response_model=UserDues)
def get_dues(user: User = Depends(get_current_user), dues: DuesService = Depends(get_dues_service)):
    """当前用户的未付款订单"""
    return dues.user_dues(user)


@router.get("/transactions", response_model=List[LedgerEntryResponse])
def get_transactions(
    skip: int = 0,
    limit: int = 100,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """当前用户的资金流水"""
    return accounts.transactions(user.id, skip=skip, limit=limit)


@router.post("/add-balance/{user_id}", response_model=LedgerEntryResponse, status_code=201)
def add_balance(
    user_id: int,
    request: AddBalanceRequest,
    operator: User = Depends(require_roles("admin", "staff")),
    accounts: AccountService = Depends(get_account_service),
):
    """给用户钱包充值（管理员/员工）"""
    return accounts.add_balance(user_id, request.amount, request.description)


@router.post("/payments", response_model=PaymentResponse, status_code=201)
def create_payment(
    request: PaymentRequest,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """自助收支：充值或用钱包付款（可指定自己的待付款订单）"""
    entry, new_balance = accounts.create_payment(
        user, request.amount, request.type, request.description, request.order_id
    )
    return PaymentResponse(
        message="payment recorded",
        transaction=LedgerEntryResponse.model_validate(entry),
        new_balance=new_balance,
    )


@router.get("/payments/all", response_model=List[LedgerEntryResponse])
def get_all_payments(
    skip: int = 0,
    limit: int = 100,
    operator: User = Depends(require_roles("admin")),
    accounts: AccountService = Depends(get_account_service),
):
    """全部用户的资金流水（管理员）"""
    return accounts.all_transactions(skip=skip, limit=limit)


@router.get("/payments", response_model=List[LedgerEntryResponse])
def get_payments(
    skip: int = 0,
    limit: int = 100,
    user: User = Depends(get_current_user),
    accounts: AccountService = Depends(get_account_service),
):
    """当前用户的收支记录"""
    return accounts.transactions(user.id, skip=skip, limit=limit)
