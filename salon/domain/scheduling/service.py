"""Scheduling service - Slot administration: pre-generation and blocking"""

import logging
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from ...models import TimeSlot
from ..errors import ConflictError, InvalidStateError, NotFoundError, ValidationError
from .availability import MAX_RANGE_DAYS
from .repository import SchedulingRepository
from .schemas import BlockSlotRequest, BulkSlotRequest
from .slots import SlotStatus, generate_slots

logger = logging.getLogger(__name__)


class SchedulingService:
    """Service layer for materialized slots"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = SchedulingRepository()

    def pregenerate_slots(self, data: BulkSlotRequest) -> dict:
        """
        Persist available slots for a service over a date range from the working
        hours of every scheduled employee. Existing rows and busy windows are skipped.
        """
        service = self.repo.get_service(self.db, data.service_id)
        if not service:
            raise ValidationError("Service not found")
        if (data.end_date - data.start_date).days >= MAX_RANGE_DAYS:
            raise ValidationError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")

        processed_days = 0
        created = 0
        current = data.start_date
        while current <= data.end_date:
            scheduled = self.repo.get_scheduled_employees(
                self.db, service.id, current.isoweekday(), data.employee_id
            )
            if scheduled:
                processed_days += 1
                busy = self.repo.get_busy_windows(self.db, [e.id for e, _ in scheduled], current)
                new_rows = []
                for employee, interval in scheduled:
                    for slot in generate_slots(
                        interval.start_time,
                        interval.end_time,
                        service.duration_minutes,
                        current,
                        employee_id=employee.id,
                        service_id=service.id,
                    ):
                        if self.repo.get_slot_at(self.db, employee.id, current, slot.start_time):
                            continue
                        if any(slot.overlaps(s, e) for s, e in busy.get(employee.id, [])):
                            continue
                        new_rows.append(
                            TimeSlot(
                                service_id=service.id,
                                employee_id=employee.id,
                                date=current,
                                start_time=slot.start_time,
                                end_time=slot.end_time,
                                status=SlotStatus.AVAILABLE.value,
                            )
                        )
                self.repo.add_slots(self.db, new_rows)
                created += len(new_rows)
            current += timedelta(days=1)

        self.db.commit()
        logger.info(
            f"Pre-generated {created} slots for service {service.id} "
            f"({data.start_date} to {data.end_date}, {processed_days} working days)"
        )
        return {"processed_days": processed_days, "created_slots": created}

    def list_slots(self, **filters) -> list[TimeSlot]:
        return self.repo.get_slots(self.db, **filters)

    def block_slot(self, data: BlockSlotRequest) -> TimeSlot:
        if data.employee_id is not None and not self.repo.get_employee(self.db, data.employee_id):
            raise ValidationError("Employee not found")

        starts_at = datetime.combine(data.date, data.start_time)
        ends_at = datetime.combine(data.date, data.end_time)
        # A salon-wide block covers every employee's appointments
        if data.employee_id is not None:
            employee_ids = [data.employee_id]
        else:
            employee_ids = self.repo.get_employee_ids(self.db)
        busy = self.repo.get_busy_windows(self.db, employee_ids, data.date)
        for windows in busy.values():
            if any(s < ends_at and starts_at < e for s, e in windows):
                raise ConflictError("An appointment already occupies that window")

        slot = self.repo.get_slot_at(self.db, data.employee_id, data.date, data.start_time)
        if slot is None:
            slot = TimeSlot(
                employee_id=data.employee_id,
                service_id=data.service_id,
                date=data.date,
                start_time=data.start_time,
            )
            self.db.add(slot)
        elif slot.status == SlotStatus.RESERVED.value:
            raise ConflictError("That slot is reserved by an appointment")

        slot.end_time = data.end_time
        slot.status = SlotStatus.BLOCKED.value
        slot.notes = data.notes
        self.db.commit()
        self.db.refresh(slot)
        logger.info(
            f"Blocked {data.date} {data.start_time:%H:%M}-{data.end_time:%H:%M} "
            f"for employee {data.employee_id or 'all'}"
        )
        return slot

    def toggle_block(self, slot_id: int) -> TimeSlot:
        slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFoundError("Slot not found")

        if slot.status == SlotStatus.BLOCKED.value:
            slot.status = SlotStatus.AVAILABLE.value
        elif slot.status == SlotStatus.RESERVED.value:
            raise InvalidStateError("A reserved slot cannot be blocked; cancel the appointment first")
        else:
            slot.status = SlotStatus.BLOCKED.value

        self.db.commit()
        self.db.refresh(slot)
        logger.info(f"Slot {slot.id} is now {slot.status}")
        return slot
