from decimal import Decimal
from types import SimpleNamespace

import pytest

from salon.domain.payments.deposit import compute_deposit, deposit_for_service, round_currency


class TestRoundCurrency:
    def test_half_rounds_up(self):
        assert round_currency(Decimal("2.5")) == 3
        assert round_currency("3703.5") == 3704

    def test_below_half_rounds_down(self):
        assert round_currency(Decimal("10.49")) == 10


class TestComputeDeposit:
    def test_percentage_of_base(self):
        assert compute_deposit(10000, 30) == 3000

    def test_fraction_rounds_half_up(self):
        assert compute_deposit(12345, 30) == 3704  # 3703.5

    def test_bounds(self):
        assert compute_deposit(10000, 0) == 0
        assert compute_deposit(10000, 100) == 10000

    def test_decimal_percentage(self):
        assert compute_deposit(9999, Decimal("12.50")) == 1250  # 1249.875

    def test_negative_base_rejected(self):
        with pytest.raises(ValueError):
            compute_deposit(-1, 30)

    @pytest.mark.parametrize("percentage", [-1, 101])
    def test_percentage_out_of_range(self, percentage):
        with pytest.raises(ValueError):
            compute_deposit(10000, percentage)


def test_service_without_deposit_owes_nothing():
    service = SimpleNamespace(requires_deposit=False, deposit_percentage=50)
    assert deposit_for_service(service, 10000) == 0


def test_service_deposit_uses_given_total():
    service = SimpleNamespace(requires_deposit=True, deposit_percentage=Decimal("30.00"))
    assert deposit_for_service(service, 9000) == 2700


def test_half_deposit_scenario():
    service = SimpleNamespace(requires_deposit=True, deposit_percentage=50)
    assert deposit_for_service(service, 10000) == 5000


@pytest.mark.parametrize("amount", [0, 1, 999, 12345, 99999])
@pytest.mark.parametrize("percentage", [0, 15, 33, 50, 100])
def test_deposit_and_remainder_add_up(amount, percentage):
    deposit = compute_deposit(amount, percentage)
    assert 0 <= deposit <= amount
    assert deposit + (amount - deposit) == amount
