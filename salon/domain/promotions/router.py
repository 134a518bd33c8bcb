"""Promotion router - public promotion code check"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import PromotionCheckRequest, PromotionCheckResponse
from .service import PromotionService

promotion_check_limit = create_rate_limiter(limit=30, window_seconds=60, key_prefix="promotions")

router = APIRouter(prefix="/promotions", tags=["Promotions"])


def get_promotion_service(db: Session = Depends(get_db)) -> PromotionService:
    """Dependency injection for PromotionService"""
    return PromotionService(db)


@router.post(
    "/validate",
    response_model=PromotionCheckResponse,
    dependencies=[Depends(promotion_check_limit)],
)
async def validate_promotion(
    data: PromotionCheckRequest,
    service: PromotionService = Depends(get_promotion_service),
):
    return service.check_code(data)
