"""
Appointment lifecycle - status values and the transition table.

pending_deposit ──confirm_deposit──▶ confirmed ──complete──▶ completed
       │                               │   └──mark_no_show──▶ no_show
       └────────────cancel─────────────┴──cancel──▶ cancelled

Rescheduling moves a pending or confirmed appointment to ``rescheduled``. That
status is a tag, not a dead end: for every other transition the appointment
behaves as its effective status, which is ``confirmed`` once the deposit is paid
(or when none is owed) and ``pending_deposit`` otherwise.

Functions here only decide and mutate the in-memory record. Persisting the
change is the caller's job.
"""

from datetime import datetime, timedelta
from enum import Enum

from ... import config
from ..errors import InvalidStateError, RescheduleLimitExceeded


class AppointmentStatus(str, Enum):
    PENDING_DEPOSIT = "pending_deposit"
    CONFIRMED = "confirmed"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class Transition(str, Enum):
    CONFIRM_DEPOSIT = "confirm_deposit"
    CANCEL = "cancel"
    COMPLETE = "complete"
    MARK_NO_SHOW = "mark_no_show"
    RESCHEDULE = "reschedule"


# Appointments in these statuses occupy their employee's time
BLOCKING_STATUSES = frozenset(
    {
        AppointmentStatus.PENDING_DEPOSIT,
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.COMPLETED,
        AppointmentStatus.RESCHEDULED,
    }
)

# transition -> (allowed effective statuses, resulting status)
TRANSITIONS: dict[Transition, tuple[frozenset, AppointmentStatus]] = {
    Transition.CONFIRM_DEPOSIT: (
        frozenset({AppointmentStatus.PENDING_DEPOSIT}),
        AppointmentStatus.CONFIRMED,
    ),
    Transition.CANCEL: (
        frozenset({AppointmentStatus.PENDING_DEPOSIT, AppointmentStatus.CONFIRMED}),
        AppointmentStatus.CANCELLED,
    ),
    Transition.COMPLETE: (
        frozenset({AppointmentStatus.CONFIRMED}),
        AppointmentStatus.COMPLETED,
    ),
    Transition.MARK_NO_SHOW: (
        frozenset({AppointmentStatus.CONFIRMED}),
        AppointmentStatus.NO_SHOW,
    ),
    Transition.RESCHEDULE: (
        frozenset({AppointmentStatus.PENDING_DEPOSIT, AppointmentStatus.CONFIRMED}),
        AppointmentStatus.RESCHEDULED,
    ),
}


def initial_status(requires_deposit: bool, deposit_amount: int) -> AppointmentStatus:
    """Status for a new booking; a zero deposit cannot be paid, so it confirms directly"""
    if requires_deposit and deposit_amount > 0:
        return AppointmentStatus.PENDING_DEPOSIT
    return AppointmentStatus.CONFIRMED


def effective_status(appointment) -> AppointmentStatus:
    status = AppointmentStatus(appointment.status)
    if status != AppointmentStatus.RESCHEDULED:
        return status
    if appointment.deposit_paid or not appointment.deposit_amount:
        return AppointmentStatus.CONFIRMED
    return AppointmentStatus.PENDING_DEPOSIT


def ensure_transition(appointment, transition: Transition) -> AppointmentStatus:
    """Return the target status, or raise InvalidStateError if the move is illegal"""
    allowed, target = TRANSITIONS[transition]
    current = effective_status(appointment)
    if current not in allowed:
        raise InvalidStateError(
            f"Cannot {transition.value.replace('_', ' ')} an appointment that is {appointment.status}"
        )
    return target


def can_be_rescheduled(appointment) -> bool:
    return (appointment.reschedule_count or 0) < config.MAX_RESCHEDULES


def is_overdue(appointment, now: datetime) -> bool:
    """Confirmed and more than the grace period past its start. Never changes state."""
    if effective_status(appointment) != AppointmentStatus.CONFIRMED:
        return False
    return now > appointment.scheduled_at + timedelta(minutes=config.OVERDUE_GRACE_MINUTES)


def confirm_deposit(appointment, now: datetime) -> None:
    appointment.status = ensure_transition(appointment, Transition.CONFIRM_DEPOSIT).value
    appointment.deposit_paid = True
    appointment.deposit_paid_at = now


def cancel(appointment, reason: str, now: datetime) -> None:
    appointment.status = ensure_transition(appointment, Transition.CANCEL).value
    note = f"[{now:%Y-%m-%d %H:%M}] Cancelled: {reason}"
    appointment.admin_notes = f"{appointment.admin_notes}\n{note}" if appointment.admin_notes else note


def complete(appointment) -> None:
    appointment.status = ensure_transition(appointment, Transition.COMPLETE).value


def mark_no_show(appointment, now: datetime) -> None:
    target = ensure_transition(appointment, Transition.MARK_NO_SHOW)
    if now < appointment.scheduled_at:
        raise InvalidStateError("Cannot mark a no-show before the appointment has started")
    appointment.status = target.value


def check_reschedule(appointment) -> AppointmentStatus:
    target = ensure_transition(appointment, Transition.RESCHEDULE)
    if not can_be_rescheduled(appointment):
        raise RescheduleLimitExceeded(
            f"Appointment has already been rescheduled {appointment.reschedule_count} times"
        )
    return target


def reschedule(appointment, starts_at: datetime, ends_at: datetime) -> None:
    target = check_reschedule(appointment)
    appointment.scheduled_at = starts_at
    appointment.ends_at = ends_at
    appointment.reschedule_count = (appointment.reschedule_count or 0) + 1
    appointment.status = target.value
