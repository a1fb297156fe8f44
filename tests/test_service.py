"""End-to-end tests for AvailabilityService over in-memory repositories."""

import threading
import time
from datetime import date, datetime, timezone

import pytest
from botocore.exceptions import EndpointConnectionError

from slotengine.availability.exceptions import (
    ComputationCancelled,
    DataSourceError,
    InvalidRangeError,
    NotFoundError,
    TimezoneResolutionError,
)
from slotengine.schedule.models import DailyRule, Drop, WeeklyRule
from slotengine.storefronts.models import Service, Storefront
from tests.fakes import (
    HOLIDAY,
    MONDAY,
    NEXT_MONDAY,
    FakeAppointments,
    FakeSchedule,
    appointment,
    throttled,
)

UTC = timezone.utc


def holiday_blackout():
    return DailyRule(
        id=2,
        storefront_id=1,
        specific_date=HOLIDAY,
        start_time="00:00",
        end_time="24:00",
        is_available=False,
    )


def by_date(response):
    grouped = {}
    for slot in response.slots:
        grouped.setdefault(slot.local_date, []).append(slot)
    return grouped


# --- Slot computation ---


def test_weekly_hours_with_holiday_blackout(make_service, monday_rule):
    """Two open Mondays of sixteen half-hour slots each; the holiday Monday is closed."""
    svc = make_service(rules=[monday_rule, holiday_blackout()])
    response = svc.get_available_slots(1, 10, MONDAY, HOLIDAY)

    grouped = by_date(response)
    assert set(grouped) == {"2027-01-04", "2027-01-11"}
    assert len(grouped["2027-01-04"]) == 16
    assert len(grouped["2027-01-11"]) == 16

    first, last = grouped["2027-01-04"][0], grouped["2027-01-04"][-1]
    assert first.start_datetime == "2027-01-04T17:00:00Z"
    assert first.local_start_time == "09:00"
    assert last.local_start_time == "16:30"
    assert last.local_end_time == "17:00"
    assert all(s.available_capacity == 2 for s in response.slots)

    assert response.timezone == "America/Los_Angeles"
    assert response.service.name == "Haircut"
    assert response.service.duration_minutes == 30
    assert response.service.price == 45.0


def test_existing_booking_reduces_capacity(make_service, monday_rule):
    booked = appointment(
        1,
        datetime(2027, 1, 4, 18, 0, tzinfo=UTC),
        datetime(2027, 1, 4, 18, 30, tzinfo=UTC),
    )
    svc = make_service(rules=[monday_rule], appointments=[booked])
    slots = svc.get_available_slots(1, 10, MONDAY, MONDAY).slots

    capacity = {s.local_start_time: s.available_capacity for s in slots}
    assert capacity["10:00"] == 1
    assert capacity["09:30"] == 2
    assert capacity["10:30"] == 2


def test_full_slot_disappears(make_service, monday_rule):
    start = datetime(2027, 1, 4, 18, 0, tzinfo=UTC)
    end = datetime(2027, 1, 4, 18, 30, tzinfo=UTC)
    svc = make_service(
        rules=[monday_rule],
        appointments=[appointment(1, start, end), appointment(2, start, end, status="pending")],
    )
    starts = [s.local_start_time for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots]
    assert "10:00" not in starts
    assert len(starts) == 15


def test_cancelled_and_finished_bookings_do_not_count(make_service, monday_rule):
    start = datetime(2027, 1, 4, 18, 0, tzinfo=UTC)
    end = datetime(2027, 1, 4, 18, 30, tzinfo=UTC)
    svc = make_service(
        rules=[monday_rule],
        appointments=[
            appointment(1, start, end, status="cancelled"),
            appointment(2, start, end, status="completed"),
            appointment(3, start, end, status="no_show"),
        ],
    )
    slots = svc.get_available_slots(1, 10, MONDAY, MONDAY).slots
    assert all(s.available_capacity == 2 for s in slots)


def test_capacity_never_exceeds_block_limit(make_service, monday_rule):
    overlapping = [
        appointment(i, datetime(2027, 1, 4, 17 + i, 0, tzinfo=UTC), datetime(2027, 1, 4, 18 + i, 0, tzinfo=UTC))
        for i in range(4)
    ]
    svc = make_service(rules=[monday_rule], appointments=overlapping)
    for slot in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots:
        assert 1 <= slot.available_capacity <= 2


def test_no_slot_starts_inside_a_full_booking(make_service):
    """With room for one, a confirmed 10:00-10:30 booking blocks every start inside it."""
    single = WeeklyRule(
        id=1, storefront_id=1, day_of_week=1, start_time="09:00", end_time="17:00",
        max_concurrent_appointments=1,
    )
    trim = Service(id=10, storefront_id=1, name="Trim", duration_minutes=20)
    booked = appointment(1, datetime(2027, 1, 4, 18, 0, tzinfo=UTC), datetime(2027, 1, 4, 18, 30, tzinfo=UTC))
    svc = make_service(rules=[single], services=[trim], appointments=[booked])

    starts = [s.local_start_time for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots]
    assert "10:00" not in starts
    assert not [s for s in starts if "10:00" <= s < "10:30"]
    # 09:40-10:00 only touches the booking; 10:20-10:40 overlaps it.
    assert "09:40" in starts
    assert "10:20" not in starts
    assert "10:40" in starts


def test_remaining_capacity_equals_limit_minus_bookings(make_service):
    roomy = WeeklyRule(
        id=1, storefront_id=1, day_of_week=1, start_time="09:00", end_time="17:00",
        max_concurrent_appointments=3,
    )
    bookings = [
        appointment(1, datetime(2027, 1, 4, 20, 0, tzinfo=UTC), datetime(2027, 1, 4, 21, 0, tzinfo=UTC)),
        appointment(2, datetime(2027, 1, 4, 20, 0, tzinfo=UTC), datetime(2027, 1, 4, 21, 0, tzinfo=UTC)),
        appointment(3, datetime(2027, 1, 4, 23, 0, tzinfo=UTC), datetime(2027, 1, 4, 23, 30, tzinfo=UTC)),
    ]
    slots = make_service(rules=[roomy], appointments=bookings).get_available_slots(1, 10, MONDAY, MONDAY).slots

    assert len(slots) == 16
    for slot in slots:
        start = datetime.fromisoformat(slot.start_datetime.replace("Z", "+00:00"))
        end = datetime.fromisoformat(slot.end_datetime.replace("Z", "+00:00"))
        overlapping = sum(1 for b in bookings if b.overlaps(start, end))
        assert 3 - slot.available_capacity == overlapping
    capacity = {s.local_start_time: s.available_capacity for s in slots}
    assert (capacity["12:00"], capacity["12:30"], capacity["15:00"], capacity["15:30"]) == (1, 1, 2, 3)


def test_configured_rule_priorities_change_the_winner(make_service, monday_rule):
    """Default priorities come from the service's own settings."""
    blackout = DailyRule(
        id=2, storefront_id=1, specific_date=MONDAY, start_time="00:00", end_time="24:00",
        is_available=False,
    )
    assert make_service(rules=[monday_rule, blackout]).get_available_slots(1, 10, MONDAY, MONDAY).slots == []

    svc = make_service(rules=[monday_rule, blackout], weekly_priority=20, daily_priority=1)
    assert len(svc.get_available_slots(1, 10, MONDAY, MONDAY).slots) == 16
    assert svc.check_slot(1, 10, "2027-01-04T18:00:00Z", "2027-01-04T18:30:00Z").available


def test_repeated_calls_are_identical(make_service, monday_rule):
    svc = make_service(rules=[monday_rule, holiday_blackout()])
    assert svc.get_available_slots(1, 10, MONDAY, HOLIDAY) == svc.get_available_slots(1, 10, MONDAY, HOLIDAY)


def test_day_without_rules_is_closed(make_service, monday_rule):
    tuesday = date(2027, 1, 5)
    assert make_service(rules=[monday_rule]).get_available_slots(1, 10, tuesday, tuesday).slots == []
    assert make_service().get_available_slots(1, 10, MONDAY, MONDAY).slots == []


def test_string_dates_are_accepted(make_service, monday_rule):
    response = make_service(rules=[monday_rule]).get_available_slots(1, 10, "2027-01-04", "2027-01-04")
    assert len(response.slots) == 16


def test_past_slots_are_hidden(make_service, monday_rule):
    """With the clock at 12:00 local, only the afternoon remains."""
    noon = datetime(2027, 1, 4, 20, 0, tzinfo=UTC)
    svc = make_service(rules=[monday_rule], clock=lambda: noon)
    starts = [s.local_start_time for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots]
    assert starts[0] == "12:00"
    assert len(starts) == 10


def test_min_notice_pushes_the_cutoff(make_service, monday_rule):
    noon = datetime(2027, 1, 4, 20, 0, tzinfo=UTC)
    svc = make_service(rules=[monday_rule], clock=lambda: noon, min_notice_minutes=60)
    starts = [s.local_start_time for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots]
    assert starts[0] == "13:00"


def test_service_specific_rule_is_scoped(make_service, storefront, haircut, monday_rule):
    color = Service(id=11, storefront_id=1, name="Color", duration_minutes=60)
    evening = WeeklyRule(
        id=3, storefront_id=1, service_id=11, day_of_week=1,
        start_time="17:00", end_time="19:00", priority=3,
    )
    svc = make_service(rules=[monday_rule, evening], services=[haircut, color])
    haircut_starts = [s.local_start_time for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots]
    color_starts = [s.local_start_time for s in svc.get_available_slots(1, 11, MONDAY, MONDAY).slots]
    assert haircut_starts[-1] == "16:30"
    assert color_starts[-2:] == ["17:00", "18:00"]


# --- Drops ---


def test_drop_opens_a_closed_day(make_service, monday_rule):
    sunday = date(2027, 1, 10)
    drop = Drop(
        id=1, storefront_id=1, drop_date=sunday, start_time="10:00", end_time="12:00",
        max_concurrent_appointments=3, is_published=True,
    )
    slots = make_service(rules=[monday_rule], drops=[drop]).get_available_slots(1, 10, sunday, sunday).slots
    assert [s.local_start_time for s in slots] == ["10:00", "10:30", "11:00", "11:30"]
    assert all(s.available_capacity == 3 for s in slots)


def test_drop_overrides_a_blackout(make_service, monday_rule):
    drop = Drop(
        id=1, storefront_id=1, drop_date=HOLIDAY, start_time="10:00", end_time="11:00",
        is_published=True,
    )
    svc = make_service(rules=[monday_rule, holiday_blackout()], drops=[drop])
    starts = [s.local_start_time for s in svc.get_available_slots(1, 10, HOLIDAY, HOLIDAY).slots]
    assert starts == ["10:00", "10:30"]


def test_unpublished_drop_is_ignored(make_service):
    drop = Drop(id=1, storefront_id=1, drop_date=MONDAY, start_time="10:00", end_time="11:00")
    assert make_service(drops=[drop]).get_available_slots(1, 10, MONDAY, MONDAY).slots == []


# --- Capacity scope ---


def _other_service_booking():
    return appointment(
        1,
        datetime(2027, 1, 4, 18, 0, tzinfo=UTC),
        datetime(2027, 1, 4, 18, 30, tzinfo=UTC),
        service_id=11,
    )


def test_storefront_scope_counts_every_service(make_service, monday_rule):
    svc = make_service(rules=[monday_rule], appointments=[_other_service_booking()])
    capacity = {s.local_start_time: s.available_capacity for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots}
    assert capacity["10:00"] == 1
    assert svc.appointments.calls[0][1] is None


def test_service_scope_counts_only_the_service(make_service, monday_rule):
    svc = make_service(
        rules=[monday_rule], appointments=[_other_service_booking()], capacity_scope="service"
    )
    capacity = {s.local_start_time: s.available_capacity for s in svc.get_available_slots(1, 10, MONDAY, MONDAY).slots}
    assert capacity["10:00"] == 2
    assert svc.appointments.calls[0][1] == 10


def test_appointments_are_loaded_once_for_the_whole_range(make_service, monday_rule):
    svc = make_service(rules=[monday_rule])
    svc.get_available_slots(1, 10, MONDAY, HOLIDAY)
    assert len(svc.appointments.calls) == 1
    _, _, start, end = svc.appointments.calls[0]
    assert start == datetime(2027, 1, 4, 8, 0, tzinfo=UTC)
    assert end == datetime(2027, 1, 19, 8, 0, tzinfo=UTC)


# --- Errors ---


def test_range_validation(make_service):
    svc = make_service()
    with pytest.raises(InvalidRangeError):
        svc.get_available_slots(1, 10, NEXT_MONDAY, MONDAY)
    with pytest.raises(InvalidRangeError):
        svc.get_available_slots(1, 10, "2027-01-04", "01/05/2027")
    with pytest.raises(InvalidRangeError):
        svc.get_available_slots(1, 10, date(2027, 1, 1), date(2027, 2, 2))
    # exactly the limit is fine
    svc.get_available_slots(1, 10, date(2027, 1, 1), date(2027, 2, 1))


def test_range_limit_is_configurable(make_service):
    with pytest.raises(InvalidRangeError):
        make_service(max_range_days=7).get_available_slots(1, 10, MONDAY, HOLIDAY)


def test_unknown_or_inactive_storefront(make_service, storefront):
    with pytest.raises(NotFoundError):
        make_service().get_available_slots(99, 10, MONDAY, MONDAY)
    closed = Storefront(id=1, name="Closed", timezone="UTC", is_active=False)
    with pytest.raises(NotFoundError):
        make_service(storefronts=[closed]).get_available_slots(1, 10, MONDAY, MONDAY)


def test_unknown_foreign_or_inactive_service(make_service):
    with pytest.raises(NotFoundError):
        make_service().get_available_slots(1, 99, MONDAY, MONDAY)
    foreign = Service(id=10, storefront_id=2, name="Haircut", duration_minutes=30)
    with pytest.raises(NotFoundError):
        make_service(services=[foreign]).get_available_slots(1, 10, MONDAY, MONDAY)
    retired = Service(id=10, storefront_id=1, name="Haircut", duration_minutes=30, is_active=False)
    with pytest.raises(NotFoundError):
        make_service(services=[retired]).get_available_slots(1, 10, MONDAY, MONDAY)


def test_bad_timezone_surfaces(make_service):
    broken = Storefront(id=1, name="Nowhere", timezone="Not/AZone")
    with pytest.raises(TimezoneResolutionError):
        make_service(storefronts=[broken]).get_available_slots(1, 10, MONDAY, MONDAY)


def test_data_source_failures_never_look_like_empty_availability(make_service, monday_rule):
    with pytest.raises(DataSourceError):
        make_service(schedule=FakeSchedule(error=throttled())).get_available_slots(1, 10, MONDAY, MONDAY)
    with pytest.raises(DataSourceError):
        make_service(
            rules=[monday_rule],
            appointment_source=FakeAppointments(error=EndpointConnectionError(endpoint_url="http://localhost:8000")),
        ).get_available_slots(1, 10, MONDAY, MONDAY)


def test_programming_errors_are_not_reported_as_outages(make_service):
    """Only boto failures are wrapped; a plain bug surfaces as itself."""

    class Buggy(FakeSchedule):
        def get_active_rules(self, storefront_id, service_id):
            raise TypeError("unexpected keyword argument")

    with pytest.raises(TypeError):
        make_service(schedule=Buggy()).get_available_slots(1, 10, MONDAY, MONDAY)

    with pytest.raises(DataSourceError):
        make_service(schedule=FakeSchedule(error=DataSourceError("Malformed drop record"))).get_available_slots(
            1, 10, MONDAY, MONDAY
        )


# --- Cancellation ---


def test_cancel_event_aborts(make_service, monday_rule):
    cancel = threading.Event()
    cancel.set()
    with pytest.raises(ComputationCancelled):
        make_service(rules=[monday_rule]).get_available_slots(1, 10, MONDAY, HOLIDAY, cancel=cancel)


def test_expired_deadline_aborts(make_service, monday_rule):
    with pytest.raises(ComputationCancelled):
        make_service(rules=[monday_rule]).get_available_slots(
            1, 10, MONDAY, HOLIDAY, deadline=time.monotonic() - 1
        )


def test_generous_deadline_completes(make_service, monday_rule):
    response = make_service(rules=[monday_rule]).get_available_slots(
        1, 10, MONDAY, MONDAY, cancel=threading.Event(), deadline=time.monotonic() + 60
    )
    assert len(response.slots) == 16


# --- Single slot check ---


def test_check_open_slot(make_service, monday_rule):
    result = make_service(rules=[monday_rule]).check_slot(1, 10, "2027-01-04T18:00:00Z", "2027-01-04T18:30:00Z")
    assert result.available
    assert result.current_bookings == 0
    assert result.max_concurrent == 2


def test_check_full_slot(make_service, monday_rule):
    start = datetime(2027, 1, 4, 18, 0, tzinfo=UTC)
    end = datetime(2027, 1, 4, 18, 30, tzinfo=UTC)
    svc = make_service(rules=[monday_rule], appointments=[appointment(1, start, end), appointment(2, start, end)])
    result = svc.check_slot(1, 10, start, end)
    assert not result.available
    assert result.reason == "Maximum concurrent bookings reached"
    assert result.current_bookings == 2


def test_check_outside_hours_and_past(make_service, monday_rule):
    svc = make_service(rules=[monday_rule])
    # 08:00 local, before the weekly window opens
    outside = svc.check_slot(1, 10, "2027-01-04T16:00:00Z", "2027-01-04T16:30:00Z")
    assert not outside.available and outside.reason == "Slot is outside working hours"
    # straddling the 17:00 local close
    late = svc.check_slot(1, 10, "2027-01-05T00:45:00Z", "2027-01-05T01:15:00Z")
    assert not late.available
    past = svc.check_slot(1, 10, "2026-11-02T18:00:00Z", "2026-11-02T18:30:00Z")
    assert not past.available and past.reason == "Cannot book slots in the past"


def test_check_rejects_bad_windows(make_service):
    svc = make_service()
    with pytest.raises(InvalidRangeError):
        svc.check_slot(1, 10, "2027-01-04T18:30:00Z", "2027-01-04T18:00:00Z")
    with pytest.raises(InvalidRangeError):
        svc.check_slot(1, 10, "tomorrow", "2027-01-04T18:00:00Z")
