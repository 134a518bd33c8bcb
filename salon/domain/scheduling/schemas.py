"""Scheduling domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from .slots import SlotStatus


class SlotResponse(BaseModel):
    """A free slot as returned by availability queries"""

    service_id: Optional[int] = None
    employee_id: Optional[int] = None
    date: date
    start_time: time
    end_time: time
    duration_minutes: int
    status: SlotStatus

    class Config:
        from_attributes = True


class AvailableDaysResponse(BaseModel):
    service_id: int
    employee_id: Optional[int] = None
    days: list[date]


class WorkingIntervalUpdate(BaseModel):
    """Schema for setting an employee's hours on one weekday"""

    start_time: time
    end_time: time
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self


class WorkingIntervalResponse(BaseModel):
    id: int
    employee_id: int
    day_of_week: int
    start_time: time
    end_time: time
    is_active: bool
    notes: Optional[str] = None

    class Config:
        from_attributes = True


class BulkSlotRequest(BaseModel):
    """Schema for pre-generating slots over a date range"""

    service_id: int
    start_date: date
    end_date: date
    employee_id: Optional[int] = None

    @model_validator(mode="after")
    def validate_range(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class BulkSlotResponse(BaseModel):
    processed_days: int
    created_slots: int


class BlockSlotRequest(BaseModel):
    """Schema for blocking a window; no employee means the whole salon"""

    date: date
    start_time: time
    end_time: time
    employee_id: Optional[int] = None
    service_id: Optional[int] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def validate_range(self):
        if self.start_time >= self.end_time:
            raise ValueError("start_time must be before end_time")
        return self

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v else v


class TimeSlotResponse(BaseModel):
    id: int
    service_id: Optional[int] = None
    employee_id: Optional[int] = None
    date: date
    start_time: time
    end_time: time
    status: str
    appointment_id: Optional[int] = None
    notes: Optional[str] = None

    class Config:
        from_attributes = True
