"""Deposit math and the currency rounding policy

Amounts are whole currency units. Any derived amount (deposit, discount) is
rounded half-up to a whole unit, here and nowhere else, so the figure shown to a
client and the figure stored are always the same.
"""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float, Decimal, str]


def round_currency(amount: Number) -> int:
    return int(Decimal(str(amount)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def compute_deposit(base_amount: Number, deposit_percentage: Number) -> int:
    """round(base_amount * deposit_percentage / 100), half-up"""
    base = Decimal(str(base_amount))
    percentage = Decimal(str(deposit_percentage))
    if base < 0:
        raise ValueError("base_amount cannot be negative")
    if not Decimal("0") <= percentage <= Decimal("100"):
        raise ValueError("deposit_percentage must be between 0 and 100")
    return round_currency(base * percentage / Decimal("100"))


def deposit_for_service(service, total_price: int) -> int:
    """Deposit owed for a booking of ``service`` at ``total_price``; zero when none is required"""
    if not service.requires_deposit:
        return 0
    return compute_deposit(total_price, service.deposit_percentage or 0)
