"""
Tests for availability resolution against working hours, appointments and blocks.
"""

from datetime import datetime, time, timedelta

import pytest
from conftest import BOOKING_DAY, NOW, SATURDAY, booking

from salon.domain.errors import ConflictError, ValidationError
from salon.domain.scheduling.availability import MAX_RANGE_DAYS, AvailabilityResolver
from salon.models import EmployeeService, TimeSlot


def at(hour, minute=0, on_date=BOOKING_DAY):
    return datetime.combine(on_date, time(hour, minute))


def starts(slots, employee_id=None):
    return [s.start_time for s in slots if employee_id is None or s.employee_id == employee_id]


@pytest.fixture
def resolver(db, clock):
    return AvailabilityResolver(db, clock)


class TestAvailableSlots:
    def test_every_qualified_employee_contributes(self, resolver, salon):
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY)
        assert len(slots) == 8
        # Same start offered once per employee, lower id first
        assert [(s.start_time, s.employee_id) for s in slots[:2]] == [
            (time(9, 0), salon.ana.id),
            (time(9, 0), salon.belen.id),
        ]

    def test_employee_filter(self, resolver, salon):
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY, salon.belen.id)
        assert starts(slots) == [time(9, 0), time(10, 0), time(11, 0), time(12, 0)]
        assert {s.employee_id for s in slots} == {salon.belen.id}

    def test_unqualified_employee_has_no_slots(self, resolver, salon):
        assert resolver.available_slots(salon.nail_art.id, BOOKING_DAY, salon.belen.id) == []

    def test_day_off(self, resolver, salon):
        assert resolver.available_slots(salon.manicure.id, SATURDAY) == []

    def test_unknown_or_inactive_service(self, db, resolver, salon):
        assert resolver.available_slots(9999, BOOKING_DAY) == []
        salon.manicure.is_active = False
        db.commit()
        assert resolver.available_slots(salon.manicure.id, BOOKING_DAY) == []

    def test_inactive_assignment_hides_employee(self, db, resolver, salon):
        link = (
            db.query(EmployeeService)
            .filter_by(employee_id=salon.belen.id, service_id=salon.manicure.id)
            .one()
        )
        link.is_active = False
        db.commit()
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY)
        assert {s.employee_id for s in slots} == {salon.ana.id}

    def test_appointment_of_another_service_blocks_overlap(self, resolver, salon, make_appointment):
        make_appointment(salon.nail_art, salon.ana, at(9, 45))  # 09:45-10:30
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY, salon.ana.id)
        assert starts(slots) == [time(11, 0), time(12, 0)]

    @pytest.mark.parametrize("status", ["pending_deposit", "confirmed", "rescheduled", "completed"])
    def test_blocking_statuses(self, resolver, salon, make_appointment, status):
        make_appointment(salon.manicure, salon.ana, at(10), status=status)
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY, salon.ana.id)
        assert time(10, 0) not in starts(slots)

    @pytest.mark.parametrize("status", ["cancelled", "no_show"])
    def test_released_statuses(self, resolver, salon, make_appointment, status):
        make_appointment(salon.manicure, salon.ana, at(10), status=status)
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY, salon.ana.id)
        assert time(10, 0) in starts(slots)

    def test_salon_wide_block(self, db, resolver, salon):
        db.add(
            TimeSlot(date=BOOKING_DAY, start_time=time(12, 0), end_time=time(13, 0), status="blocked")
        )
        db.commit()
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY)
        assert time(12, 0) not in starts(slots)
        assert len(slots) == 6

    def test_employee_block(self, db, resolver, salon):
        db.add(
            TimeSlot(
                employee_id=salon.belen.id, date=BOOKING_DAY,
                start_time=time(9, 0), end_time=time(11, 0), status="blocked",
            )
        )
        db.commit()
        slots = resolver.available_slots(salon.manicure.id, BOOKING_DAY)
        assert starts(slots, salon.belen.id) == [time(11, 0), time(12, 0)]
        assert len(starts(slots, salon.ana.id)) == 4


class TestAvailableDays:
    def test_working_days_only(self, resolver, salon):
        monday = BOOKING_DAY + timedelta(days=5)
        days = resolver.available_days(salon.manicure.id, monday, monday + timedelta(days=6))
        assert days == [monday + timedelta(days=n) for n in range(5)]

    def test_fully_booked_day_is_excluded(self, resolver, salon, make_appointment):
        for hour in (9, 10, 11, 12):
            make_appointment(salon.nail_art, salon.ana, at(hour))
        days = resolver.available_days(salon.nail_art.id, BOOKING_DAY, BOOKING_DAY)
        assert days == []

    def test_end_before_start(self, resolver, salon):
        with pytest.raises(ValidationError):
            resolver.available_days(salon.manicure.id, BOOKING_DAY, BOOKING_DAY - timedelta(days=1))

    def test_range_limit(self, resolver, salon):
        with pytest.raises(ValidationError):
            resolver.available_days(
                salon.manicure.id, BOOKING_DAY, BOOKING_DAY + timedelta(days=MAX_RANGE_DAYS)
            )
        resolver.available_days(
            salon.manicure.id, BOOKING_DAY, BOOKING_DAY + timedelta(days=MAX_RANGE_DAYS - 1)
        )


class TestFindSlot:
    def test_free_slot(self, resolver, salon):
        slot = resolver.find_slot(salon.manicure, salon.ana.id, at(10))
        assert slot.ends_at == at(11)

    def test_off_grid_start(self, resolver, salon):
        with pytest.raises(ValidationError):
            resolver.find_slot(salon.manicure, salon.ana.id, at(9, 30))

    def test_day_off(self, resolver, salon):
        with pytest.raises(ValidationError):
            resolver.find_slot(salon.manicure, salon.ana.id, at(10, on_date=SATURDAY))

    def test_taken(self, resolver, salon, make_appointment):
        make_appointment(salon.manicure, salon.ana, at(10))
        with pytest.raises(ConflictError):
            resolver.find_slot(salon.manicure, salon.ana.id, at(10))

    def test_first_free_employee(self, resolver, salon, make_appointment):
        assert resolver.first_free_employee(salon.manicure, at(10)) == salon.ana.id
        make_appointment(salon.manicure, salon.ana, at(10))
        assert resolver.first_free_employee(salon.manicure, at(10)) == salon.belen.id
        make_appointment(salon.manicure, salon.belen, at(10))
        with pytest.raises(ConflictError):
            resolver.first_free_employee(salon.manicure, at(10))


def test_repeated_reads_are_identical(resolver, salon, make_appointment):
    make_appointment(salon.manicure, salon.belen, at(11))
    first = resolver.available_slots(salon.manicure.id, BOOKING_DAY)
    assert resolver.available_slots(salon.manicure.id, BOOKING_DAY) == first


class TestBookingNotice:
    def test_past_date_has_no_slots(self, resolver, salon):
        past = BOOKING_DAY - timedelta(days=7)
        assert resolver.available_slots(salon.manicure.id, past) == []
        assert resolver.available_days(salon.manicure.id, past, past) == []

    def test_today_is_inside_the_notice_window(self, resolver, salon):
        assert resolver.available_slots(salon.manicure.id, NOW.date()) == []

    def test_notice_boundary(self, resolver, salon, clock):
        # NOW is Monday 09:00: Tuesday 09:00 is exactly 24 hours out
        tuesday = NOW.date() + timedelta(days=1)
        assert starts(resolver.available_slots(salon.manicure.id, tuesday, salon.ana.id))[0] == time(9, 0)

        clock.advance(minutes=1)
        assert starts(resolver.available_slots(salon.manicure.id, tuesday, salon.ana.id)) == [
            time(10, 0), time(11, 0), time(12, 0)
        ]

    def test_days_start_after_the_notice_window(self, resolver, salon):
        days = resolver.available_days(salon.manicure.id, NOW.date(), NOW.date() + timedelta(days=2))
        assert days == [NOW.date() + timedelta(days=1), NOW.date() + timedelta(days=2)]

    def test_listed_slot_can_be_booked(self, resolver, salon, appointments):
        tuesday = NOW.date() + timedelta(days=1)
        first = resolver.available_slots(salon.manicure.id, tuesday)[0]
        created = appointments.create_appointment(
            booking(salon.manicure.id, first.start_time, on_date=tuesday, employee_id=first.employee_id)
        )
        assert created.scheduled_at == first.starts_at
