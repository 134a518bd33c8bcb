"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, datetime, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...shared.validators import validate_email, validate_whatsapp
from .lifecycle import AppointmentStatus


class ClientRef(BaseModel):
    """Who the booking is for; an unknown WhatsApp number creates a new client"""

    name: str
    whatsapp: str
    email: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("name is required")
        return v

    @field_validator("whatsapp")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("whatsapp is required")
        return validate_whatsapp(v)

    @field_validator("email")
    @classmethod
    def validate_email_format(cls, v):
        return validate_email(v)


class SlotSelection(BaseModel):
    """A slot picked from the availability list"""

    date: date
    start_time: time
    employee_id: Optional[int] = None

    @property
    def starts_at(self) -> datetime:
        return datetime.combine(self.date, self.start_time.replace(second=0, microsecond=0))


class AppointmentCreate(BaseModel):
    """Schema for booking a slot (public form or admin)"""

    service_id: int
    slot: SlotSelection
    employee_id: Optional[int] = None
    client: Optional[ClientRef] = None
    client_id: Optional[int] = None
    special_requests: Optional[str] = None
    reference_photo: Optional[str] = None
    promotion_code: Optional[str] = None

    @model_validator(mode="after")
    def validate_refs(self):
        if self.client is None and self.client_id is None:
            raise ValueError("Either client or client_id is required")
        if (
            self.employee_id is not None
            and self.slot.employee_id is not None
            and self.employee_id != self.slot.employee_id
        ):
            raise ValueError("employee_id does not match the selected slot")
        return self

    @field_validator("promotion_code")
    @classmethod
    def normalize_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().upper()
        return v or None


class DepositConfirmation(BaseModel):
    """Schema for confirming a deposit payment (webhook collaborator or admin)"""

    payment_reference: str
    amount: Optional[int] = None
    payment_method: str = "manual"
    payment_provider: str = "manual"

    @field_validator("payment_reference")
    @classmethod
    def validate_reference(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment_reference is required")
        return v


class CancelRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def validate_reason(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("A cancellation reason is required")
        return v


class RescheduleRequest(BaseModel):
    slot: SlotSelection


class AppointmentResponse(BaseModel):
    """Schema for appointment response"""

    id: int
    service_id: int
    client_id: int
    employee_id: Optional[int] = None
    scheduled_at: datetime
    ends_at: datetime
    status: AppointmentStatus
    effective_status: AppointmentStatus
    total_price: int
    deposit_amount: int
    deposit_paid: bool
    deposit_paid_at: Optional[datetime] = None
    reschedule_count: int
    can_be_rescheduled: bool
    is_overdue: bool
    special_requests: Optional[str] = None
    reference_photo: Optional[str] = None
    admin_notes: Optional[str] = None
    discount_amount: int = 0
    created_at: Optional[datetime] = None
