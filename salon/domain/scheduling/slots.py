"""Slot generation - carve a working interval into back-to-back service slots"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum
from typing import Iterable, Optional


class SlotStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    BLOCKED = "blocked"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class Slot:
    """A bookable window for one employee on one date"""

    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    employee_id: Optional[int] = None
    service_id: Optional[int] = None
    status: SlotStatus = SlotStatus.AVAILABLE

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time)

    @property
    def ends_at(self) -> datetime:
        return datetime.combine(self.date, self.end_time)

    def overlaps(self, start: datetime, end: datetime) -> bool:
        """Half-open overlap: touching windows do not overlap"""
        return self.starts_at < end and start < self.ends_at


def to_minutes(value: time) -> int:
    return value.hour * 60 + value.minute


def from_minutes(minutes: int) -> time:
    return time(minutes // 60, minutes % 60)


def generate_slots(
    start_time: time,
    end_time: time,
    duration_minutes: int,
    on_date: date,
    employee_id: Optional[int] = None,
    service_id: Optional[int] = None,
) -> list[Slot]:
    """
    Produce the ordered, contiguous slots of ``duration_minutes`` that fit in
    [start_time, end_time).

    A remainder shorter than the duration at the end of the interval is dropped;
    no partial slot is ever emitted. Seconds are ignored.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")

    start = to_minutes(start_time)
    end = to_minutes(end_time)
    slots = []
    cursor = start
    while cursor + duration_minutes <= end:
        slots.append(
            Slot(
                date=on_date,
                start_time=from_minutes(cursor),
                end_time=from_minutes(cursor + duration_minutes),
                duration_minutes=duration_minutes,
                employee_id=employee_id,
                service_id=service_id,
            )
        )
        cursor += duration_minutes
    return slots


def free_slots(
    candidates: Iterable[Slot], busy: Iterable[tuple[datetime, datetime]]
) -> list[Slot]:
    """Drop every candidate overlapping one of the busy windows"""
    busy = list(busy)
    return [
        slot
        for slot in candidates
        if not any(slot.overlaps(busy_start, busy_end) for busy_start, busy_end in busy)
    ]
