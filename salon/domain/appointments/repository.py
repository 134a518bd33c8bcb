"""Appointment repository - Database operations for appointments and clients"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Client
from .lifecycle import AppointmentStatus


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: int) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.service), joinedload(Appointment.client))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_appointment_for_update(db: Session, appointment_id: int) -> Optional[Appointment]:
        """Load and row-lock an appointment for a status change"""
        return (
            db.query(Appointment)
            .filter(Appointment.id == appointment_id)
            .with_for_update()
            .first()
        )

    @staticmethod
    def search_appointments(
        db: Session,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        status: Optional[str] = None,
        client_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        service_id: Optional[int] = None,
    ) -> list[Appointment]:
        query = db.query(Appointment).options(
            joinedload(Appointment.service), joinedload(Appointment.client)
        )
        if start is not None:
            query = query.filter(Appointment.scheduled_at >= start)
        if end is not None:
            query = query.filter(Appointment.scheduled_at < end)
        if status:
            query = query.filter(Appointment.status == status)
        if client_id is not None:
            query = query.filter(Appointment.client_id == client_id)
        if employee_id is not None:
            query = query.filter(Appointment.employee_id == employee_id)
        if service_id is not None:
            query = query.filter(Appointment.service_id == service_id)
        return query.order_by(Appointment.scheduled_at).all()

    @staticmethod
    def get_started_before(db: Session, moment: datetime) -> list[Appointment]:
        """Confirmed or rescheduled appointments whose start is before ``moment``"""
        return (
            db.query(Appointment)
            .filter(
                Appointment.status.in_(
                    [AppointmentStatus.CONFIRMED.value, AppointmentStatus.RESCHEDULED.value]
                ),
                Appointment.scheduled_at < moment,
            )
            .order_by(Appointment.scheduled_at)
            .all()
        )

    # Clients
    @staticmethod
    def get_client_by_id(db: Session, client_id: int) -> Optional[Client]:
        return db.query(Client).filter(Client.id == client_id).first()

    @staticmethod
    def get_client_by_whatsapp(db: Session, whatsapp: str) -> Optional[Client]:
        return db.query(Client).filter(Client.whatsapp == whatsapp).first()

    @staticmethod
    def create_client(db: Session, **client_data) -> Client:
        client = Client(**client_data)
        db.add(client)
        db.flush()
        return client

    @staticmethod
    def add_appointment(db: Session, appointment: Appointment) -> Appointment:
        db.add(appointment)
        db.flush()
        return appointment
