"""Availability resolver - free slots for a service, date and optional employee"""

import logging
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ... import config
from ...models import Service
from ..errors import ConflictError, ValidationError
from .repository import SchedulingRepository
from .slots import Slot, free_slots, generate_slots

logger = logging.getLogger(__name__)

MAX_RANGE_DAYS = 92


class AvailabilityResolver:
    """
    Candidate slots come from each scheduled employee's working interval; slots
    overlapping a blocking appointment or a blocked window are removed.

    An unknown service or an unqualified employee yields no slots rather than an
    error, the same as a day nobody works. Listings only offer slots starting at
    least MIN_BOOKING_NOTICE_HOURS after ``clock()``, so past dates come back empty.
    """

    def __init__(self, db: Session, clock: Callable[[], datetime] = datetime.now):
        self.db = db
        self.clock = clock
        self.repo = SchedulingRepository()

    def _candidates(
        self,
        service: Service,
        on_date: date,
        employee_id: Optional[int] = None,
        exclude_appointment_id: Optional[int] = None,
    ) -> list[Slot]:
        scheduled = self.repo.get_scheduled_employees(
            self.db, service.id, on_date.isoweekday(), employee_id
        )
        if not scheduled:
            return []

        employee_ids = [employee.id for employee, _ in scheduled]
        busy = self.repo.get_busy_windows(self.db, employee_ids, on_date, exclude_appointment_id)
        blocked = self.repo.get_blocked_windows(self.db, employee_ids, on_date)

        slots = []
        for employee, interval in scheduled:
            candidates = generate_slots(
                interval.start_time,
                interval.end_time,
                service.duration_minutes,
                on_date,
                employee_id=employee.id,
                service_id=service.id,
            )
            unavailable = busy.get(employee.id, []) + blocked.get(employee.id, []) + blocked.get(None, [])
            slots.extend(free_slots(candidates, unavailable))

        # Same start for two employees stays as two options
        slots.sort(key=lambda slot: (slot.start_time, slot.employee_id))
        return slots

    def available_slots(
        self, service_id: int, on_date: date, employee_id: Optional[int] = None
    ) -> list[Slot]:
        service = self.repo.get_service(self.db, service_id)
        if not service or not service.is_active:
            return []

        earliest = self.clock() + timedelta(hours=config.MIN_BOOKING_NOTICE_HOURS)
        if on_date < earliest.date():
            return []
        slots = [
            slot
            for slot in self._candidates(service, on_date, employee_id)
            if slot.starts_at >= earliest
        ]
        logger.debug(
            f"{len(slots)} free slots for service {service_id} on {on_date} "
            f"(employee={employee_id or 'any'})"
        )
        return slots

    def available_days(
        self,
        service_id: int,
        start_date: date,
        end_date: date,
        employee_id: Optional[int] = None,
    ) -> list[date]:
        """Dates in [start_date, end_date] with at least one free slot"""
        if end_date < start_date:
            raise ValidationError("end_date must not be before start_date")
        if (end_date - start_date).days >= MAX_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

        days = []
        current = start_date
        while current <= end_date:
            if self.available_slots(service_id, current, employee_id):
                days.append(current)
            current += timedelta(days=1)
        return days

    def find_slot(
        self,
        service: Service,
        employee_id: int,
        starts_at: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> Slot:
        """
        The free slot starting at ``starts_at`` for the employee.

        Raises ValidationError when no slot of the employee's working hours starts
        there, and ConflictError when one does but is taken or blocked.
        """
        on_date = starts_at.date()
        scheduled = self.repo.get_scheduled_employees(
            self.db, service.id, on_date.isoweekday(), employee_id
        )
        if not scheduled:
            raise ValidationError("The employee does not work on that day")

        _, interval = scheduled[0]
        grid = generate_slots(
            interval.start_time, interval.end_time, service.duration_minutes, on_date,
            employee_id=employee_id, service_id=service.id,
        )
        if not any(slot.starts_at == starts_at for slot in grid):
            raise ValidationError("The selected time is outside the employee's working hours")

        for slot in self._candidates(service, on_date, employee_id, exclude_appointment_id):
            if slot.starts_at == starts_at:
                return slot
        raise ConflictError("The selected time is no longer available")

    def first_free_employee(self, service: Service, starts_at: datetime) -> int:
        """Lowest-id qualified employee free at exactly ``starts_at``"""
        on_date = starts_at.date()
        for slot in self._candidates(service, on_date):
            if slot.starts_at == starts_at:
                return slot.employee_id

        scheduled = self.repo.get_scheduled_employees(self.db, service.id, on_date.isoweekday())
        on_grid = any(
            slot.starts_at == starts_at
            for _, interval in scheduled
            for slot in generate_slots(
                interval.start_time, interval.end_time, service.duration_minutes, on_date
            )
        )
        if not on_grid:
            raise ValidationError("The selected time is outside working hours")
        raise ConflictError("No employee is available at the selected time")
