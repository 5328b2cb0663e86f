"""
欠款API
"""
from fastapi import APIRouter, Depends
from app.api.deps import get_current_user, get_dues_service
from app.models import User
from app.schemas.dues import DuesSummary
from app.services.dues import DuesService

router = APIRouter(prefix="/dues", tags=["欠款"])


@router.get("/summary", response_model=DuesSummary)
def get_dues_summary(user: User = Depends(get_current_user), dues: DuesService = Depends(get_dues_service)):
    """当前用户的欠款汇总"""
    return dues.summary(user)
