"""Promotion domain schemas - Pydantic models for validation"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, field_validator


class PromotionCheckRequest(BaseModel):
    """Schema for checking a promotion code before booking"""

    code: str
    service_id: int
    date: date
    amount: Optional[int] = None  # Defaults to the service price

    @field_validator("code")
    @classmethod
    def normalize_code(cls, v: str) -> str:
        v = v.strip().upper()
        if not v:
            raise ValueError("code is required")
        return v

    @field_validator("amount")
    @classmethod
    def validate_amount(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v < 0:
            raise ValueError("amount cannot be negative")
        return v


class PromotionCheckResponse(BaseModel):
    code: str
    name: str
    type: str
    amount: int
    discount_amount: int
    final_amount: int
