"""Shared fixtures wiring AvailabilityService to the in-memory fakes."""

import pytest

from slotengine.availability.service import AvailabilityService
from slotengine.config import AvailabilitySettings
from slotengine.schedule.models import WeeklyRule
from slotengine.storefronts.models import Service, Storefront
from tests.fakes import NOW, FakeAppointments, FakeSchedule, FakeStorefronts


@pytest.fixture
def storefront():
    return Storefront(id=1, name="Fade Factory", timezone="America/Los_Angeles")


@pytest.fixture
def haircut():
    return Service(id=10, storefront_id=1, name="Haircut", duration_minutes=30, price=45.0)


@pytest.fixture
def monday_rule():
    # 0 = Sunday, so Monday is 1
    return WeeklyRule(
        id=1,
        storefront_id=1,
        day_of_week=1,
        start_time="09:00",
        end_time="17:00",
        max_concurrent_appointments=2,
    )


@pytest.fixture
def make_service(storefront, haircut):
    """Build an AvailabilityService over fakes; override any collaborator per test."""

    def _make(
        rules=(),
        drops=(),
        appointments=(),
        storefronts=None,
        services=None,
        schedule=None,
        appointment_source=None,
        clock=lambda: NOW,
        **config,
    ):
        return AvailabilityService(
            storefronts=FakeStorefronts(
                storefronts if storefronts is not None else [storefront],
                services if services is not None else [haircut],
            ),
            schedule=schedule or FakeSchedule(rules, drops),
            appointments=appointment_source or FakeAppointments(appointments),
            config=AvailabilitySettings(**config),
            clock=clock,
        )

    return _make
