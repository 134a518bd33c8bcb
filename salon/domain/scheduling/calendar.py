"""Working hours calendar - each employee's weekly working intervals"""

import logging
from datetime import time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import WorkingInterval
from ..errors import NotFoundError, ValidationError
from .repository import SchedulingRepository

logger = logging.getLogger(__name__)

WEEKDAY_NAMES = {
    1: "Monday",
    2: "Tuesday",
    3: "Wednesday",
    4: "Thursday",
    5: "Friday",
    6: "Saturday",
    7: "Sunday",
}


def validate_interval(day_of_week: int, start_time: time, end_time: time) -> None:
    if day_of_week not in WEEKDAY_NAMES:
        raise ValidationError("day_of_week must be between 1 (Monday) and 7 (Sunday)")
    if start_time >= end_time:
        raise ValidationError("start_time must be before end_time")


class WorkingHoursCalendar:
    """
    One interval per employee per weekday. Setting hours for a day replaces the
    existing interval; removing them only deactivates the row.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def _get_employee(self, employee_id: int):
        employee = self.repo.get_employee(self.db, employee_id)
        if not employee:
            raise NotFoundError("Employee not found")
        return employee

    def get_week(self, employee_id: int) -> list[WorkingInterval]:
        self._get_employee(employee_id)
        return self.repo.get_working_intervals(self.db, employee_id)

    def set_interval(
        self,
        employee_id: int,
        day_of_week: int,
        start_time: time,
        end_time: time,
        notes: Optional[str] = None,
    ) -> WorkingInterval:
        validate_interval(day_of_week, start_time, end_time)
        self._get_employee(employee_id)

        interval = self.repo.get_working_interval(self.db, employee_id, day_of_week)
        if interval is None:
            interval = WorkingInterval(employee_id=employee_id, day_of_week=day_of_week)
            self.db.add(interval)

        interval.start_time = start_time
        interval.end_time = end_time
        interval.is_active = True
        if notes is not None:
            interval.notes = notes

        self.db.commit()
        self.db.refresh(interval)
        logger.info(
            f"Working hours set for employee {employee_id} on {WEEKDAY_NAMES[day_of_week]}: "
            f"{start_time:%H:%M}-{end_time:%H:%M}"
        )
        return interval

    def deactivate(self, employee_id: int, day_of_week: int) -> WorkingInterval:
        interval = self.repo.get_working_interval(self.db, employee_id, day_of_week)
        if interval is None:
            raise NotFoundError("No working hours set for that day")
        interval.is_active = False
        self.db.commit()
        self.db.refresh(interval)
        logger.info(
            f"Working hours deactivated for employee {employee_id} on {WEEKDAY_NAMES[day_of_week]}"
        )
        return interval
