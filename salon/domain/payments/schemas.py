"""Payment domain schemas - webhook payload from the payment collaborator"""

from typing import Any, Optional

from pydantic import BaseModel, field_validator

# Provider status -> payments.status
PAYMENT_STATUS_MAP = {
    "approved": "completed",
    "pending": "pending",
    "in_process": "processing",
    "rejected": "failed",
    "cancelled": "failed",
    "refunded": "refunded",
}


class PaymentWebhookEvent(BaseModel):
    appointment_id: int
    payment_reference: str
    status: str
    amount: int
    payment_method: Optional[str] = None
    payment_provider: str = "mercadopago"
    metadata: Optional[dict[str, Any]] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in PAYMENT_STATUS_MAP:
            raise ValueError(f"Unknown payment status: {v}")
        return v

    @field_validator("payment_reference")
    @classmethod
    def validate_reference(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("payment_reference is required")
        return v

    @property
    def is_approved(self) -> bool:
        return self.status == "approved"


class PaymentWebhookResponse(BaseModel):
    status: str
    appointment_id: int
    payment_reference: str
    appointment_status: Optional[str] = None
