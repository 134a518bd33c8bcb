"""
Unit tests for the appointment state machine.

Appointments are plain namespaces here; the lifecycle only reads and sets attributes.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from salon.domain.appointments import lifecycle
from salon.domain.appointments.lifecycle import AppointmentStatus, Transition
from salon.domain.errors import InvalidStateError, RescheduleLimitExceeded

START = datetime(2030, 1, 9, 10, 0)


def appointment(status="pending_deposit", deposit_amount=3000, deposit_paid=False, **kwargs):
    values = dict(
        status=status,
        deposit_amount=deposit_amount,
        deposit_paid=deposit_paid,
        deposit_paid_at=None,
        scheduled_at=START,
        ends_at=START + timedelta(hours=1),
        reschedule_count=0,
        admin_notes=None,
    )
    values.update(kwargs)
    return SimpleNamespace(**values)


class TestInitialStatus:
    def test_deposit_owed_starts_pending(self):
        assert lifecycle.initial_status(True, 3000) == AppointmentStatus.PENDING_DEPOSIT

    def test_no_deposit_confirms(self):
        assert lifecycle.initial_status(False, 0) == AppointmentStatus.CONFIRMED

    def test_zero_deposit_confirms_even_when_required(self):
        assert lifecycle.initial_status(True, 0) == AppointmentStatus.CONFIRMED


class TestTransitions:
    def test_confirm_deposit(self):
        a = appointment()
        lifecycle.confirm_deposit(a, START - timedelta(days=1))
        assert a.status == "confirmed"
        assert a.deposit_paid is True
        assert a.deposit_paid_at == START - timedelta(days=1)

    def test_confirm_twice_is_rejected_by_the_table(self):
        a = appointment(status="confirmed", deposit_paid=True)
        with pytest.raises(InvalidStateError):
            lifecycle.confirm_deposit(a, START)

    @pytest.mark.parametrize("status", ["pending_deposit", "confirmed"])
    def test_cancel_from_active_statuses(self, status):
        a = appointment(status=status)
        lifecycle.cancel(a, "client request", datetime(2030, 1, 8, 15, 30))
        assert a.status == "cancelled"
        assert a.admin_notes == "[2030-01-08 15:30] Cancelled: client request"

    def test_cancel_appends_to_existing_notes(self):
        a = appointment(admin_notes="VIP")
        lifecycle.cancel(a, "sick", datetime(2030, 1, 8, 15, 30))
        assert a.admin_notes.startswith("VIP\n[2030-01-08 15:30]")

    def test_complete_requires_confirmed(self):
        with pytest.raises(InvalidStateError):
            lifecycle.complete(appointment(status="pending_deposit"))
        a = appointment(status="confirmed")
        lifecycle.complete(a)
        assert a.status == "completed"

    @pytest.mark.parametrize("status", ["completed", "cancelled", "no_show"])
    @pytest.mark.parametrize("transition", list(Transition))
    def test_terminal_statuses_accept_nothing(self, status, transition):
        with pytest.raises(InvalidStateError):
            lifecycle.ensure_transition(appointment(status=status), transition)

    def test_no_show_only_after_start(self):
        a = appointment(status="confirmed")
        with pytest.raises(InvalidStateError):
            lifecycle.mark_no_show(a, START - timedelta(minutes=1))
        lifecycle.mark_no_show(a, START + timedelta(minutes=30))
        assert a.status == "no_show"

    def test_no_show_requires_confirmed(self):
        with pytest.raises(InvalidStateError):
            lifecycle.mark_no_show(appointment(), START + timedelta(hours=2))


class TestReschedule:
    def test_reschedule_moves_and_counts(self):
        a = appointment(status="confirmed", deposit_paid=True)
        new_start = START + timedelta(days=1)
        lifecycle.reschedule(a, new_start, new_start + timedelta(hours=1))
        assert a.status == "rescheduled"
        assert a.scheduled_at == new_start
        assert a.reschedule_count == 1

    def test_limit(self):
        a = appointment(status="confirmed", deposit_paid=True, reschedule_count=2)
        assert not lifecycle.can_be_rescheduled(a)
        with pytest.raises(RescheduleLimitExceeded):
            lifecycle.check_reschedule(a)

    def test_rescheduled_paid_behaves_as_confirmed(self):
        a = appointment(status="rescheduled", deposit_paid=True, reschedule_count=1)
        assert lifecycle.effective_status(a) == AppointmentStatus.CONFIRMED
        lifecycle.complete(a)
        assert a.status == "completed"

    def test_rescheduled_unpaid_behaves_as_pending(self):
        a = appointment(status="rescheduled", reschedule_count=1)
        assert lifecycle.effective_status(a) == AppointmentStatus.PENDING_DEPOSIT
        with pytest.raises(InvalidStateError):
            lifecycle.complete(a)
        lifecycle.confirm_deposit(a, START)
        assert a.status == "confirmed"

    def test_rescheduled_without_deposit_is_confirmed(self):
        a = appointment(status="rescheduled", deposit_amount=0, reschedule_count=1)
        assert lifecycle.effective_status(a) == AppointmentStatus.CONFIRMED


class TestOverdue:
    def test_within_grace_period(self):
        a = appointment(status="confirmed", deposit_paid=True)
        assert not lifecycle.is_overdue(a, START + timedelta(minutes=10))

    def test_past_grace_period(self):
        a = appointment(status="confirmed", deposit_paid=True)
        assert lifecycle.is_overdue(a, START + timedelta(minutes=11))

    def test_pending_is_never_overdue(self):
        assert not lifecycle.is_overdue(appointment(), START + timedelta(hours=3))

    def test_overdue_does_not_change_status(self):
        a = appointment(status="confirmed", deposit_paid=True)
        lifecycle.is_overdue(a, START + timedelta(hours=3))
        assert a.status == "confirmed"


def test_overdue_scenario():
    start = datetime(2030, 1, 9, 14, 0)
    now = datetime(2030, 1, 9, 14, 11)
    assert lifecycle.is_overdue(appointment(status="confirmed", deposit_paid=True, scheduled_at=start), now)
    assert not lifecycle.is_overdue(appointment(status="completed", scheduled_at=start), now)
