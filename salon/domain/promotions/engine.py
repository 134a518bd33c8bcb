"""Promotion rules - eligibility window, usage cap, applicability and discount math"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from ..payments.deposit import Number, round_currency


class PromotionType(str, Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def is_valid(promotion, now: datetime) -> bool:
    if not promotion.is_active:
        return False
    if promotion.starts_at and now < promotion.starts_at:
        return False
    if promotion.expires_at and now > promotion.expires_at:
        return False
    if promotion.usage_limit is not None and (promotion.used_count or 0) >= promotion.usage_limit:
        return False
    return True


def is_applicable(promotion, service, on_date: date, now: datetime) -> bool:
    """Valid now, and covers this service and the booking's weekday (1 = Monday)"""
    if not is_valid(promotion, now):
        return False

    services = promotion.applicable_services or []
    if services and service.id not in services:
        return False

    days = promotion.applicable_days or []
    if days and on_date.isoweekday() not in days:
        return False

    return True


def compute_discount(promotion, amount: Number) -> int:
    """Discount on ``amount``, never negative and never more than the amount itself"""
    amount = Decimal(str(amount))
    if amount <= 0:
        return 0

    if promotion.min_amount is not None and amount < Decimal(str(promotion.min_amount)):
        return 0

    value = Decimal(str(promotion.value or 0))
    if PromotionType(promotion.type) == PromotionType.PERCENTAGE:
        discount = amount * value / Decimal("100")
    else:
        discount = value

    if promotion.max_discount is not None and discount > Decimal(str(promotion.max_discount)):
        discount = Decimal(str(promotion.max_discount))

    discount = min(discount, amount)
    return max(0, min(round_currency(discount), int(amount)))
