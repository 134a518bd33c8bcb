"""Promotion repository - Database operations for promotion codes and their usage"""

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from ...models import AppointmentPromotion, Promotion


class PromotionRepository:
    """Repository for promotion database operations"""

    @staticmethod
    def get_by_code(db: Session, code: str) -> Optional[Promotion]:
        return db.query(Promotion).filter(Promotion.code == code.strip().upper()).first()

    @staticmethod
    def link_to_appointment(
        db: Session, appointment_id: int, promotion_id: int, discount_amount: int
    ) -> AppointmentPromotion:
        link = AppointmentPromotion(
            appointment_id=appointment_id,
            promotion_id=promotion_id,
            discount_amount=discount_amount,
        )
        db.add(link)
        db.flush()
        return link

    @staticmethod
    def get_links(db: Session, appointment_id: int) -> list[AppointmentPromotion]:
        return (
            db.query(AppointmentPromotion)
            .filter(AppointmentPromotion.appointment_id == appointment_id)
            .all()
        )

    @staticmethod
    def increment_usage(db: Session, promotion_id: int) -> bool:
        """
        Atomically add one use. Returns False, leaving the count unchanged, when
        the usage limit has already been reached.
        """
        updated = (
            db.query(Promotion)
            .filter(
                Promotion.id == promotion_id,
                or_(Promotion.usage_limit.is_(None), Promotion.used_count < Promotion.usage_limit),
            )
            .update({Promotion.used_count: Promotion.used_count + 1}, synchronize_session=False)
        )
        return updated == 1
