"""Payment service - Applies payment collaborator signals to appointments"""

import logging
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from ...models import Payment
from ..appointments.repository import AppointmentRepository
from ..appointments.schemas import DepositConfirmation
from ..appointments.service import AppointmentService
from ..errors import NotFoundError, ValidationError
from .repository import PaymentRepository
from .schemas import PAYMENT_STATUS_MAP, PaymentWebhookEvent, PaymentWebhookResponse

logger = logging.getLogger(__name__)


class PaymentService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.repo = PaymentRepository()
        self.appointments = AppointmentService(db, clock)

    def handle_webhook_event(self, event: PaymentWebhookEvent) -> PaymentWebhookResponse:
        """
        Approved payments confirm the deposit; any other status is recorded on the
        ledger and acknowledged without touching the appointment.
        """
        logger.info(
            f"🔔 Payment {event.payment_reference} for appointment {event.appointment_id}: {event.status}"
        )

        if event.is_approved:
            appointment = self.appointments.confirm_deposit_payment(
                event.appointment_id,
                DepositConfirmation(
                    payment_reference=event.payment_reference,
                    amount=event.amount,
                    payment_method=event.payment_method or "unknown",
                    payment_provider=event.payment_provider,
                ),
            )
            self._attach_metadata(event)
            return PaymentWebhookResponse(
                status="processed",
                appointment_id=appointment.id,
                payment_reference=event.payment_reference,
                appointment_status=appointment.status,
            )

        self.record_payment_status(event)
        return PaymentWebhookResponse(
            status="recorded",
            appointment_id=event.appointment_id,
            payment_reference=event.payment_reference,
        )

    def record_payment_status(self, event: PaymentWebhookEvent) -> Payment:
        """Upsert the ledger row for a non-approved signal; a completed row is never downgraded"""
        appointment = AppointmentRepository.get_appointment(self.db, event.appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")

        payment = self.repo.get_by_reference(self.db, event.payment_reference)
        if payment is not None and payment.appointment_id != appointment.id:
            raise ValidationError("Payment reference belongs to another appointment")
        if payment is not None and payment.status == "completed" and event.status != "refunded":
            logger.info(f"Ignoring {event.status} for completed payment {event.payment_reference}")
            return payment

        try:
            payment = payment or Payment(
                appointment_id=appointment.id, provider_payment_id=event.payment_reference
            )
            payment.amount = event.amount
            payment.payment_method = event.payment_method
            payment.payment_provider = event.payment_provider
            payment.status = PAYMENT_STATUS_MAP[event.status]
            payment.payment_metadata = event.metadata
            self.repo.save(self.db, payment)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return payment

    def _attach_metadata(self, event: PaymentWebhookEvent) -> None:
        if not event.metadata:
            return
        payment = self.repo.get_by_reference(self.db, event.payment_reference)
        if payment is not None and payment.payment_metadata is None:
            payment.payment_metadata = event.metadata
            self.db.commit()
