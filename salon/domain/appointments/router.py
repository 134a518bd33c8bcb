"""Appointment router - FastAPI endpoints for booking and lifecycle transitions"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    CancelRequest,
    DepositConfirmation,
    RescheduleRequest,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

booking_limit = create_rate_limiter(limit=10, window_seconds=600, key_prefix="booking")

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


# ============================================================================
# BOOKING (public)
# ============================================================================


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=201,
    dependencies=[Depends(booking_limit)],
)
async def create_appointment(
    data: AppointmentCreate,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book a slot returned by /availability/slots"""
    appointment = service.create_appointment(data)
    return service.to_response(appointment)


# ============================================================================
# ADMIN READS
# ============================================================================


@router.get("", response_model=list[AppointmentResponse])
async def list_appointments(
    start_date: Optional[date] = Query(None),
    end_date: Optional[date] = Query(None),
    status: Optional[str] = Query(None),
    client_id: Optional[int] = Query(None),
    employee_id: Optional[int] = Query(None),
    service_id: Optional[int] = Query(None),
    service: AppointmentService = Depends(get_appointment_service),
):
    appointments = service.search_appointments(
        start_date, end_date, status, client_id, employee_id, service_id
    )
    return [service.to_response(a) for a in appointments]


@router.get("/overdue", response_model=list[AppointmentResponse])
async def list_overdue_appointments(
    service: AppointmentService = Depends(get_appointment_service),
):
    """Confirmed appointments whose start passed more than the grace period ago"""
    return [service.to_response(a) for a in service.list_overdue()]


@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.to_response(service.get_appointment(appointment_id))


# ============================================================================
# LIFECYCLE TRANSITIONS
# ============================================================================


@router.post("/{appointment_id}/confirm-deposit", response_model=AppointmentResponse)
async def confirm_deposit(
    appointment_id: int,
    data: DepositConfirmation,
    service: AppointmentService = Depends(get_appointment_service),
):
    """Record a manually received deposit (transfer, cash)"""
    return service.to_response(service.confirm_deposit_payment(appointment_id, data))


@router.post("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    data: CancelRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.to_response(service.cancel_appointment(appointment_id, data.reason))


@router.post("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.to_response(service.reschedule_appointment(appointment_id, data.slot))


@router.post("/{appointment_id}/complete", response_model=AppointmentResponse)
async def complete_appointment(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.to_response(service.mark_completed(appointment_id))


@router.post("/{appointment_id}/no-show", response_model=AppointmentResponse)
async def mark_no_show(
    appointment_id: int,
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.to_response(service.mark_no_show(appointment_id))
