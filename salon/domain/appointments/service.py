"""Appointment service - Booking and lifecycle transitions"""

import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Appointment, Client, Payment, Promotion, Service
from ..errors import BookingError, NotFoundError, ValidationError
from ..payments.deposit import deposit_for_service
from ..payments.repository import PaymentRepository
from ..promotions import engine as promotion_engine
from ..promotions.repository import PromotionRepository
from ..scheduling.availability import AvailabilityResolver
from ..scheduling.repository import SchedulingRepository
from . import lifecycle
from .lifecycle import AppointmentStatus
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentResponse, DepositConfirmation, SlotSelection

logger = logging.getLogger(__name__)


class AppointmentService:
    """
    Service layer for appointments.

    Every write runs as one transaction: validation, the slot claim and the status
    change commit together or not at all. ``clock`` supplies "now" so transitions
    and overdue checks are deterministic under test.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.repo = AppointmentRepository()
        self.scheduling = SchedulingRepository()
        self.promotions = PromotionRepository()
        self.payments = PaymentRepository()
        self.resolver = AvailabilityResolver(db, clock)

    # ------------------------------------------------------------------ reads

    def get_appointment(self, appointment_id: int) -> Appointment:
        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise NotFoundError("Appointment not found")
        return appointment

    def search_appointments(
        self,
        start_date=None,
        end_date=None,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> list[Appointment]:
        start = datetime.combine(start_date, datetime.min.time()) if start_date else None
        end = datetime.combine(end_date, datetime.min.time()) + timedelta(days=1) if end_date else None
        return self.repo.search_appointments(
            self.db, start, end, status, client_id, employee_id, service_id
        )

    def list_overdue(self) -> list[Appointment]:
        """Confirmed appointments past the grace period, for admin alerting"""
        now = self.clock()
        cutoff = now - timedelta(minutes=config.OVERDUE_GRACE_MINUTES)
        return [
            appointment
            for appointment in self.repo.get_started_before(self.db, cutoff)
            if lifecycle.is_overdue(appointment, now)
        ]

    def to_response(self, appointment: Appointment) -> AppointmentResponse:
        now = self.clock()
        discount = sum(link.discount_amount for link in appointment.promotion_links)
        return AppointmentResponse(
            id=appointment.id,
            service_id=appointment.service_id,
            client_id=appointment.client_id,
            employee_id=appointment.employee_id,
            scheduled_at=appointment.scheduled_at,
            ends_at=appointment.ends_at,
            status=appointment.status,
            effective_status=lifecycle.effective_status(appointment),
            total_price=appointment.total_price,
            deposit_amount=appointment.deposit_amount,
            deposit_paid=appointment.deposit_paid,
            deposit_paid_at=appointment.deposit_paid_at,
            reschedule_count=appointment.reschedule_count,
            can_be_rescheduled=lifecycle.can_be_rescheduled(appointment),
            is_overdue=lifecycle.is_overdue(appointment, now),
            special_requests=appointment.special_requests,
            reference_photo=appointment.reference_photo,
            admin_notes=appointment.admin_notes,
            discount_amount=discount,
            created_at=appointment.created_at,
        )

    # ---------------------------------------------------------------- helpers

    def _check_notice(self, starts_at: datetime, now: datetime) -> None:
        if starts_at < now + timedelta(hours=config.MIN_BOOKING_NOTICE_HOURS):
            raise ValidationError(
                f"Appointments must be booked at least {config.MIN_BOOKING_NOTICE_HOURS} hours in advance"
            )

    def _resolve_employee(self, service: Service, selection: SlotSelection, employee_id: Optional[int]) -> int:
        employee_id = employee_id if employee_id is not None else selection.employee_id
        if employee_id is None:
            return self.resolver.first_free_employee(service, selection.starts_at)
        if not self.scheduling.is_qualified(self.db, employee_id, service.id):
            raise ValidationError("The selected employee does not offer this service")
        return employee_id

    def _resolve_client(self, data: AppointmentCreate) -> Client:
        if data.client_id is not None:
            client = self.repo.get_client_by_id(self.db, data.client_id)
            if not client:
                raise ValidationError("Client not found")
            return client

        client = self.repo.get_client_by_whatsapp(self.db, data.client.whatsapp)
        if client:
            return client
        logger.info(f"Creating client for WhatsApp {data.client.whatsapp}")
        return self.repo.create_client(
            self.db,
            name=data.client.name,
            whatsapp=data.client.whatsapp,
            email=data.client.email,
            is_active=True,
        )

    def _resolve_promotion(self, code: str, service: Service, starts_at: datetime, now: datetime) -> Promotion:
        promotion = self.promotions.get_by_code(self.db, code)
        if not promotion or not promotion_engine.is_valid(promotion, now):
            raise ValidationError("Invalid or expired promotion code")
        if not promotion_engine.is_applicable(promotion, service, starts_at.date(), now):
            raise ValidationError("This promotion does not apply to this service or date")
        return promotion

    def _count_promotion_usage(self, appointment: Appointment) -> None:
        """Record one use of each promotion on a newly confirmed appointment"""
        for link in self.promotions.get_links(self.db, appointment.id):
            if link.usage_counted:
                continue
            if not self.promotions.increment_usage(self.db, link.promotion_id):
                logger.warning(
                    f"Promotion {link.promotion_id} reached its usage limit before "
                    f"appointment {appointment.id} was confirmed"
                )
            link.usage_counted = True

    def _commit(self, appointment: Appointment) -> Appointment:
        self.db.commit()
        self.db.refresh(appointment)
        return appointment

    # ----------------------------------------------------------------- writes

    def create_appointment(self, data: AppointmentCreate) -> Appointment:
        """Book a free slot; raises ValidationError or ConflictError"""
        now = self.clock()
        selection = data.slot
        starts_at = selection.starts_at

        service = self.scheduling.get_service(self.db, data.service_id)
        if not service or not service.is_active:
            raise ValidationError("Service not found")
        self._check_notice(starts_at, now)

        try:
            employee_id = self._resolve_employee(service, selection, data.employee_id)
            slot = self.resolver.find_slot(service, employee_id, starts_at)

            price = service.price
            promotion = None
            discount = 0
            if data.promotion_code:
                promotion = self._resolve_promotion(data.promotion_code, service, starts_at, now)
                discount = promotion_engine.compute_discount(promotion, price)

            total_price = price - discount
            deposit_amount = deposit_for_service(service, total_price)
            status = lifecycle.initial_status(service.requires_deposit, deposit_amount)

            client = self._resolve_client(data)
            appointment = self.repo.add_appointment(
                self.db,
                Appointment(
                    service_id=service.id,
                    client_id=client.id,
                    employee_id=employee_id,
                    scheduled_at=slot.starts_at,
                    ends_at=slot.ends_at,
                    status=status.value,
                    total_price=total_price,
                    deposit_amount=deposit_amount,
                    deposit_paid=False,
                    reschedule_count=0,
                    special_requests=data.special_requests,
                    reference_photo=data.reference_photo,
                ),
            )

            # Re-validated against committed data under the reservation guard
            self.scheduling.claim_slot(
                self.db,
                appointment=appointment,
                service_id=service.id,
                employee_id=employee_id,
                starts_at=slot.starts_at,
                ends_at=slot.ends_at,
            )

            if promotion is not None:
                self.promotions.link_to_appointment(self.db, appointment.id, promotion.id, discount)
                if status == AppointmentStatus.CONFIRMED:
                    self._count_promotion_usage(appointment)

            self._commit(appointment)
        except BookingError as e:
            self.db.rollback()
            logger.info(f"Booking rejected for service {data.service_id} at {starts_at}: {e.message}")
            raise
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Appointment {appointment.id} booked: service={service.id} employee={employee_id} "
            f"at {appointment.scheduled_at} status={appointment.status} "
            f"total={appointment.total_price} deposit={appointment.deposit_amount}"
        )
        return appointment

    def confirm_deposit_payment(self, appointment_id: int, data: DepositConfirmation) -> Appointment:
        """
        Mark the deposit as paid and confirm the appointment.

        Idempotent on the appointment: replaying a payment reference is a no-op, and a
        new reference on an already confirmed appointment is only added to the ledger.
        A reference recorded against another appointment is rejected.
        """
        now = self.clock()
        try:
            appointment = self.repo.get_appointment_for_update(self.db, appointment_id)
            if not appointment:
                raise NotFoundError("Appointment not found")

            existing = self.payments.get_by_reference(self.db, data.payment_reference)
            if existing is not None and existing.appointment_id != appointment.id:
                raise ValidationError("Payment reference belongs to another appointment")
            if existing is not None and existing.status == "completed":
                logger.info(f"Payment {data.payment_reference} already applied; ignoring replay")
                self.db.rollback()
                return self.get_appointment(appointment_id)

            # A further payment on a confirmed appointment is still recorded
            already_confirmed = lifecycle.effective_status(appointment) == AppointmentStatus.CONFIRMED
            if already_confirmed:
                logger.info(
                    f"Appointment {appointment.id} already confirmed; recording payment "
                    f"{data.payment_reference} only"
                )
            else:
                if data.amount is not None and data.amount < appointment.deposit_amount:
                    raise ValidationError(
                        f"Paid amount {data.amount} does not cover the deposit of {appointment.deposit_amount}"
                    )
                lifecycle.confirm_deposit(appointment, now)

            payment = existing or Payment(
                appointment_id=appointment.id, provider_payment_id=data.payment_reference
            )
            payment.amount = data.amount if data.amount is not None else appointment.deposit_amount
            payment.payment_method = data.payment_method
            payment.payment_provider = data.payment_provider
            payment.status = "completed"
            payment.paid_at = now
            self.payments.save(self.db, payment)

            self._count_promotion_usage(appointment)
            self._commit(appointment)
        except BookingError:
            self.db.rollback()
            raise
        except Exception:
            self.db.rollback()
            raise

        if not already_confirmed:
            logger.info(f"Deposit confirmed for appointment {appointment.id} (ref {data.payment_reference})")
        return appointment

    def cancel_appointment(self, appointment_id: int, reason: str) -> Appointment:
        now = self.clock()
        try:
            appointment = self.repo.get_appointment_for_update(self.db, appointment_id)
            if not appointment:
                raise NotFoundError("Appointment not found")
            lifecycle.cancel(appointment, reason, now)
            self.scheduling.release_slot(self.db, appointment)
            self._commit(appointment)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} cancelled: {reason}")
        return appointment

    def reschedule_appointment(self, appointment_id: int, selection: SlotSelection) -> Appointment:
        """
        Move the appointment to a new slot. The old slot is released and the new one
        claimed in a single transaction.
        """
        now = self.clock()
        starts_at = selection.starts_at
        try:
            appointment = self.repo.get_appointment_for_update(self.db, appointment_id)
            if not appointment:
                raise NotFoundError("Appointment not found")
            lifecycle.check_reschedule(appointment)
            self._check_notice(starts_at, now)

            service = appointment.service
            employee_id = selection.employee_id or appointment.employee_id
            if employee_id is None:
                employee_id = self.resolver.first_free_employee(service, starts_at)
            elif not self.scheduling.is_qualified(self.db, employee_id, service.id):
                raise ValidationError("The selected employee does not offer this service")

            slot = self.resolver.find_slot(
                service, employee_id, starts_at, exclude_appointment_id=appointment.id
            )

            previous = appointment.scheduled_at
            self.scheduling.release_slot(self.db, appointment)
            self.scheduling.claim_slot(
                self.db,
                appointment=appointment,
                service_id=service.id,
                employee_id=employee_id,
                starts_at=slot.starts_at,
                ends_at=slot.ends_at,
            )
            appointment.employee_id = employee_id
            lifecycle.reschedule(appointment, slot.starts_at, slot.ends_at)
            self._commit(appointment)
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            f"Appointment {appointment.id} rescheduled from {previous} to {appointment.scheduled_at} "
            f"({appointment.reschedule_count}/{config.MAX_RESCHEDULES})"
        )
        return appointment

    def mark_completed(self, appointment_id: int) -> Appointment:
        try:
            appointment = self.repo.get_appointment_for_update(self.db, appointment_id)
            if not appointment:
                raise NotFoundError("Appointment not found")
            lifecycle.complete(appointment)
            self._commit(appointment)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} completed")
        return appointment

    def mark_no_show(self, appointment_id: int) -> Appointment:
        now = self.clock()
        try:
            appointment = self.repo.get_appointment_for_update(self.db, appointment_id)
            if not appointment:
                raise NotFoundError("Appointment not found")
            lifecycle.mark_no_show(appointment, now)
            self._commit(appointment)
        except Exception:
            self.db.rollback()
            raise

        logger.info(f"Appointment {appointment.id} marked as no-show")
        return appointment
