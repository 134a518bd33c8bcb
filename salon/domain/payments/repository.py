"""Payment repository - Database operations for deposit payments"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import Payment


class PaymentRepository:
    """Repository for payment database operations"""

    @staticmethod
    def get_by_reference(db: Session, provider_payment_id: str) -> Optional[Payment]:
        return db.query(Payment).filter(Payment.provider_payment_id == provider_payment_id).first()

    @staticmethod
    def save(db: Session, payment: Payment) -> Payment:
        db.add(payment)
        db.flush()
        return payment
