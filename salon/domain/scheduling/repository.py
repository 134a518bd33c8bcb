"""Scheduling repository - Database operations for working hours, slots and reservations"""

import logging
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Appointment, Employee, EmployeeService, Service, TimeSlot, WorkingInterval
from ..appointments.lifecycle import BLOCKING_STATUSES
from ..errors import ConflictError
from .slots import SlotStatus

logger = logging.getLogger(__name__)

BLOCKING_STATUS_VALUES = [status.value for status in BLOCKING_STATUSES]


def _day_bounds(on_date: date) -> tuple[datetime, datetime]:
    start = datetime.combine(on_date, time.min)
    return start, start + timedelta(days=1)


class SchedulingRepository:
    """Repository for scheduling database operations"""

    @staticmethod
    def get_service(db: Session, service_id: int) -> Optional[Service]:
        return db.query(Service).filter(Service.id == service_id).first()

    @staticmethod
    def get_employee(db: Session, employee_id: int) -> Optional[Employee]:
        return db.query(Employee).filter(Employee.id == employee_id).first()

    @staticmethod
    def get_employee_ids(db: Session) -> list[int]:
        return [employee_id for (employee_id,) in db.query(Employee.id).order_by(Employee.id)]

    @staticmethod
    def is_qualified(db: Session, employee_id: int, service_id: int) -> bool:
        """Active employee with an active assignment to the service"""
        return (
            db.query(EmployeeService.id)
            .join(Employee, Employee.id == EmployeeService.employee_id)
            .filter(
                EmployeeService.employee_id == employee_id,
                EmployeeService.service_id == service_id,
                EmployeeService.is_active.is_(True),
                Employee.is_active.is_(True),
            )
            .first()
            is not None
        )

    @staticmethod
    def get_scheduled_employees(
        db: Session, service_id: int, day_of_week: int, employee_id: Optional[int] = None
    ) -> list[tuple[Employee, WorkingInterval]]:
        """Qualified, active employees with an active working interval on the weekday"""
        query = (
            db.query(Employee, WorkingInterval)
            .join(EmployeeService, EmployeeService.employee_id == Employee.id)
            .join(WorkingInterval, WorkingInterval.employee_id == Employee.id)
            .filter(
                Employee.is_active.is_(True),
                EmployeeService.service_id == service_id,
                EmployeeService.is_active.is_(True),
                WorkingInterval.day_of_week == day_of_week,
                WorkingInterval.is_active.is_(True),
            )
        )
        if employee_id is not None:
            query = query.filter(Employee.id == employee_id)
        return query.order_by(Employee.id).all()

    # Working hours
    @staticmethod
    def get_working_intervals(db: Session, employee_id: int) -> list[WorkingInterval]:
        return (
            db.query(WorkingInterval)
            .filter(WorkingInterval.employee_id == employee_id)
            .order_by(WorkingInterval.day_of_week)
            .all()
        )

    @staticmethod
    def get_working_interval(
        db: Session, employee_id: int, day_of_week: int
    ) -> Optional[WorkingInterval]:
        return (
            db.query(WorkingInterval)
            .filter(
                WorkingInterval.employee_id == employee_id,
                WorkingInterval.day_of_week == day_of_week,
            )
            .first()
        )

    # Busy time
    @staticmethod
    def get_busy_windows(
        db: Session,
        employee_ids: list[int],
        on_date: date,
        exclude_appointment_id: Optional[int] = None,
    ) -> dict[int, list[tuple[datetime, datetime]]]:
        """Windows taken by appointments that still occupy the employee, keyed by employee"""
        day_start, day_end = _day_bounds(on_date)
        query = db.query(Appointment.employee_id, Appointment.scheduled_at, Appointment.ends_at).filter(
            Appointment.employee_id.in_(employee_ids),
            Appointment.status.in_(BLOCKING_STATUS_VALUES),
            Appointment.scheduled_at < day_end,
            Appointment.ends_at > day_start,
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)

        windows = defaultdict(list)
        for employee_id, starts_at, ends_at in query.all():
            windows[employee_id].append((starts_at, ends_at))
        return windows

    @staticmethod
    def get_blocked_windows(
        db: Session, employee_ids: list[int], on_date: date
    ) -> dict[Optional[int], list[tuple[datetime, datetime]]]:
        """Blocked slots on the date; the ``None`` key holds salon-wide blocks"""
        rows = (
            db.query(TimeSlot.employee_id, TimeSlot.start_time, TimeSlot.end_time)
            .filter(
                TimeSlot.date == on_date,
                TimeSlot.status == SlotStatus.BLOCKED.value,
                or_(TimeSlot.employee_id.in_(employee_ids), TimeSlot.employee_id.is_(None)),
            )
            .all()
        )
        windows = defaultdict(list)
        for employee_id, start_time, end_time in rows:
            windows[employee_id].append(
                (datetime.combine(on_date, start_time), datetime.combine(on_date, end_time))
            )
        return windows

    @staticmethod
    def has_conflict(
        db: Session,
        employee_id: int,
        starts_at: datetime,
        ends_at: datetime,
        exclude_appointment_id: Optional[int] = None,
    ) -> bool:
        busy = SchedulingRepository.get_busy_windows(
            db, [employee_id], starts_at.date(), exclude_appointment_id
        )
        blocked = SchedulingRepository.get_blocked_windows(db, [employee_id], starts_at.date())
        windows = busy.get(employee_id, []) + blocked.get(employee_id, []) + blocked.get(None, [])
        return any(start < ends_at and starts_at < end for start, end in windows)

    # Materialized slots
    @staticmethod
    def get_slot(db: Session, slot_id: int) -> Optional[TimeSlot]:
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def get_slot_at(
        db: Session, employee_id: Optional[int], on_date: date, start_time: time
    ) -> Optional[TimeSlot]:
        query = db.query(TimeSlot).filter(
            TimeSlot.date == on_date, TimeSlot.start_time == start_time
        )
        if employee_id is None:
            query = query.filter(TimeSlot.employee_id.is_(None))
        else:
            query = query.filter(TimeSlot.employee_id == employee_id)
        return query.first()

    @staticmethod
    def get_slots(
        db: Session,
        on_date: Optional[date] = None,
        service_id: Optional[int] = None,
        employee_id: Optional[int] = None,
        status: Optional[str] = None,
    ) -> list[TimeSlot]:
        query = db.query(TimeSlot)
        if on_date is not None:
            query = query.filter(TimeSlot.date == on_date)
        if service_id is not None:
            query = query.filter(TimeSlot.service_id == service_id)
        if employee_id is not None:
            query = query.filter(TimeSlot.employee_id == employee_id)
        if status is not None:
            query = query.filter(TimeSlot.status == status)
        return query.order_by(TimeSlot.date, TimeSlot.start_time, TimeSlot.employee_id).all()

    @staticmethod
    def claim_slot(
        db: Session,
        *,
        appointment: Appointment,
        service_id: int,
        employee_id: int,
        starts_at: datetime,
        ends_at: datetime,
    ) -> TimeSlot:
        """
        Reserve (employee_id, date, start) for ``appointment`` inside the caller's
        transaction. Raises ConflictError if any other booking or block holds the
        window, including one committed by a concurrent request.
        """
        # Serialize reservations per employee on databases that support row locks
        db.query(Employee.id).filter(Employee.id == employee_id).with_for_update().first()

        if SchedulingRepository.has_conflict(
            db, employee_id, starts_at, ends_at, exclude_appointment_id=appointment.id
        ):
            raise ConflictError("The selected time is no longer available")

        on_date = starts_at.date()
        existing = SchedulingRepository.get_slot_at(db, employee_id, on_date, starts_at.time())
        if existing is not None:
            claimed = (
                db.query(TimeSlot)
                .filter(
                    TimeSlot.id == existing.id,
                    TimeSlot.status.in_([SlotStatus.AVAILABLE.value, SlotStatus.CANCELLED.value]),
                )
                .update(
                    {
                        TimeSlot.status: SlotStatus.RESERVED.value,
                        TimeSlot.appointment_id: appointment.id,
                        TimeSlot.service_id: service_id,
                        TimeSlot.end_time: ends_at.time(),
                    },
                    synchronize_session=False,
                )
            )
            if claimed != 1:
                raise ConflictError("The selected time is no longer available")
            db.refresh(existing)
            return existing

        slot = TimeSlot(
            service_id=service_id,
            employee_id=employee_id,
            date=on_date,
            start_time=starts_at.time(),
            end_time=ends_at.time(),
            status=SlotStatus.RESERVED.value,
            appointment_id=appointment.id,
        )
        db.add(slot)
        try:
            db.flush()
        except IntegrityError as e:
            logger.warning(
                f"Concurrent reservation detected for employee {employee_id} at {starts_at}"
            )
            raise ConflictError("The selected time is no longer available") from e
        return slot

    @staticmethod
    def release_slot(db: Session, appointment: Appointment) -> Optional[TimeSlot]:
        """Return the appointment's reserved slot to the available pool"""
        slot = db.query(TimeSlot).filter(TimeSlot.appointment_id == appointment.id).first()
        if slot is None:
            return None
        slot.status = SlotStatus.AVAILABLE.value
        slot.appointment_id = None
        db.flush()
        return slot

    @staticmethod
    def add_slots(db: Session, slots: list[TimeSlot]) -> None:
        db.add_all(slots)
        db.flush()
