"""Scheduling router - availability, working hours and slot administration endpoints"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...database import get_db
from ...rate_limiter import create_rate_limiter
from .availability import AvailabilityResolver
from .calendar import WorkingHoursCalendar
from .schemas import (
    AvailableDaysResponse,
    BlockSlotRequest,
    BulkSlotRequest,
    BulkSlotResponse,
    SlotResponse,
    TimeSlotResponse,
    WorkingIntervalResponse,
    WorkingIntervalUpdate,
)
from .service import SchedulingService

logger = logging.getLogger(__name__)

availability_limit = create_rate_limiter(limit=120, window_seconds=60, key_prefix="availability")

availability_router = APIRouter(prefix="/availability", tags=["Availability"])
working_hours_router = APIRouter(prefix="/employees", tags=["Working Hours"])
slots_router = APIRouter(prefix="/time-slots", tags=["Time Slots"])


def get_availability_resolver(db: Session = Depends(get_db)) -> AvailabilityResolver:
    """Dependency injection for AvailabilityResolver"""
    return AvailabilityResolver(db)


def get_calendar(db: Session = Depends(get_db)) -> WorkingHoursCalendar:
    """Dependency injection for WorkingHoursCalendar"""
    return WorkingHoursCalendar(db)


def get_scheduling_service(db: Session = Depends(get_db)) -> SchedulingService:
    """Dependency injection for SchedulingService"""
    return SchedulingService(db)


# ============================================================================
# AVAILABILITY (public)
# ============================================================================


@availability_router.get(
    "/slots", response_model=list[SlotResponse], dependencies=[Depends(availability_limit)]
)
async def list_available_slots(
    service_id: int = Query(...),
    on_date: date = Query(..., alias="date"),
    employee_id: Optional[int] = Query(None),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    """Free slots for a service on a date; an empty list when nothing is bookable"""
    return resolver.available_slots(service_id, on_date, employee_id)


@availability_router.get(
    "/days", response_model=AvailableDaysResponse, dependencies=[Depends(availability_limit)]
)
async def list_available_days(
    service_id: int = Query(...),
    start_date: date = Query(...),
    end_date: date = Query(...),
    employee_id: Optional[int] = Query(None),
    resolver: AvailabilityResolver = Depends(get_availability_resolver),
):
    """Dates with at least one free slot, for calendar highlighting"""
    days = resolver.available_days(service_id, start_date, end_date, employee_id)
    return AvailableDaysResponse(service_id=service_id, employee_id=employee_id, days=days)


# ============================================================================
# WORKING HOURS (admin)
# ============================================================================


@working_hours_router.get(
    "/{employee_id}/working-hours", response_model=list[WorkingIntervalResponse]
)
async def get_working_hours(
    employee_id: int,
    calendar: WorkingHoursCalendar = Depends(get_calendar),
):
    return calendar.get_week(employee_id)


@working_hours_router.put(
    "/{employee_id}/working-hours/{day_of_week}", response_model=WorkingIntervalResponse
)
async def set_working_hours(
    employee_id: int,
    day_of_week: int,
    data: WorkingIntervalUpdate,
    calendar: WorkingHoursCalendar = Depends(get_calendar),
):
    """Set (or replace) the employee's hours for a weekday, 1 = Monday"""
    return calendar.set_interval(employee_id, day_of_week, data.start_time, data.end_time, data.notes)


@working_hours_router.delete(
    "/{employee_id}/working-hours/{day_of_week}", response_model=WorkingIntervalResponse
)
async def deactivate_working_hours(
    employee_id: int,
    day_of_week: int,
    calendar: WorkingHoursCalendar = Depends(get_calendar),
):
    return calendar.deactivate(employee_id, day_of_week)


# ============================================================================
# MATERIALIZED SLOTS (admin)
# ============================================================================


@slots_router.get("", response_model=list[TimeSlotResponse])
async def list_time_slots(
    on_date: Optional[date] = Query(None, alias="date"),
    service_id: Optional[int] = Query(None),
    employee_id: Optional[int] = Query(None),
    status: Optional[str] = Query(None),
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.list_slots(
        on_date=on_date, service_id=service_id, employee_id=employee_id, status=status
    )


@slots_router.post("/bulk", response_model=BulkSlotResponse, status_code=201)
async def pregenerate_slots(
    data: BulkSlotRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.pregenerate_slots(data)


@slots_router.post("/block", response_model=TimeSlotResponse, status_code=201)
async def block_slot(
    data: BlockSlotRequest,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.block_slot(data)


@slots_router.patch("/{slot_id}/toggle-block", response_model=TimeSlotResponse)
async def toggle_block(
    slot_id: int,
    service: SchedulingService = Depends(get_scheduling_service),
):
    return service.toggle_block(slot_id)
