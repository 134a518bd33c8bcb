"""Promotion service - Code checks for the booking form"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from ..errors import ValidationError
from ..scheduling.repository import SchedulingRepository
from . import engine
from .repository import PromotionRepository
from .schemas import PromotionCheckRequest, PromotionCheckResponse

logger = logging.getLogger(__name__)


class PromotionService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.repo = PromotionRepository()

    def check_code(self, data: PromotionCheckRequest) -> PromotionCheckResponse:
        """Discount the code would give; ValidationError when it cannot be used"""
        now = self.clock()
        service = SchedulingRepository.get_service(self.db, data.service_id)
        if not service or not service.is_active:
            raise ValidationError("Service not found")

        promotion = self.repo.get_by_code(self.db, data.code)
        if not promotion or not engine.is_valid(promotion, now):
            logger.info(f"Rejected promotion code {data.code}")
            raise ValidationError("Invalid or expired promotion code")
        if not engine.is_applicable(promotion, service, data.date, now):
            raise ValidationError("This promotion does not apply to this service or date")

        amount = data.amount if data.amount is not None else service.price
        discount = engine.compute_discount(promotion, amount)
        return PromotionCheckResponse(
            code=promotion.code,
            name=promotion.name,
            type=promotion.type,
            amount=amount,
            discount_amount=discount,
            final_amount=amount - discount,
        )
