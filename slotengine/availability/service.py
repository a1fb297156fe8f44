import threading
import time
from datetime import date, datetime, timedelta, timezone
from typing import Callable

from botocore.exceptions import BotoCoreError, ClientError
from loguru import logger

from slotengine.appointments.repository import AppointmentRepository
from slotengine.availability.exceptions import (
    ComputationCancelled,
    DataSourceError,
    InvalidRangeError,
    NotFoundError,
)
from slotengine.availability.normalizer import events_for_day
from slotengine.availability.occupancy import OccupancyIndex
from slotengine.availability.resolver import TimeBlock, open_blocks, resolve_day
from slotengine.availability.schemas import (
    AvailabilityResponse,
    AvailableSlot,
    ServiceSummary,
    SlotCheckResponse,
)
from slotengine.availability.slots import generate_slots
from slotengine.availability.timezones import TimezoneTranslator
from slotengine.clock import parse_date, parse_instant
from slotengine.config import AvailabilitySettings, settings
from slotengine.schedule.models import Drop, ScheduleRule
from slotengine.schedule.repository import ScheduleRepository
from slotengine.storefronts.models import Service, Storefront
from slotengine.storefronts.repository import StorefrontRepository


def _iterate_dates(start: date, end: date):
    d = start
    while d <= end:
        yield d
        d += timedelta(days=1)


def _check_cancelled(cancel: threading.Event | None, deadline: float | None) -> None:
    if cancel is not None and cancel.is_set():
        raise ComputationCancelled("Availability computation was cancelled")
    if deadline is not None and time.monotonic() >= deadline:
        raise ComputationCancelled("Availability computation exceeded its deadline")


class AvailabilityService:
    """Computes bookable slots from rules, drops and existing appointments.

    Holds no state between calls; every request reads its own snapshot
    through the repositories.
    """

    def __init__(
        self,
        storefronts: StorefrontRepository | None = None,
        schedule: ScheduleRepository | None = None,
        appointments: AppointmentRepository | None = None,
        config: AvailabilitySettings | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.storefronts = storefronts if storefronts is not None else StorefrontRepository()
        self.schedule = schedule if schedule is not None else ScheduleRepository()
        self.appointments = appointments if appointments is not None else AppointmentRepository()
        self.config = config or settings.availability
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    # --- Collaborator access ---

    def _fetch(self, what: str, fn, *args):
        try:
            return fn(*args)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Data source failure while loading {what}: {e}")
            raise DataSourceError(f"Could not load {what}") from e

    def _load_context(self, storefront_id: int, service_id: int) -> tuple[Storefront, Service, TimezoneTranslator]:
        storefront = self._fetch("storefront", self.storefronts.get_storefront, storefront_id)
        if storefront is None or not storefront.is_active:
            raise NotFoundError("Storefront not found")
        service = self._fetch("service", self.storefronts.get_service, service_id)
        if service is None:
            raise NotFoundError("Service not found")
        if service.storefront_id != storefront_id:
            raise NotFoundError("Service does not belong to this storefront")
        if not service.is_active:
            raise NotFoundError("Service is not active")
        return storefront, service, TimezoneTranslator(storefront.timezone or "UTC")

    def _occupancy(self, storefront_id: int, service_id: int, start: datetime, end: datetime) -> OccupancyIndex:
        scope = None if self.config.capacity_scope == "storefront" else service_id
        appointments = self._fetch(
            "appointments",
            self.appointments.get_overlapping_appointments,
            storefront_id,
            scope,
            start,
            end,
        )
        return OccupancyIndex(appointments)

    # --- Engine ---

    def validate_range(self, start_date, end_date) -> tuple[date, date]:
        try:
            start, end = parse_date(start_date), parse_date(end_date)
        except ValueError as e:
            raise InvalidRangeError("Dates must be in YYYY-MM-DD format") from e
        if end < start:
            raise InvalidRangeError("Start date must be before or equal to end date")
        if (end - start).days > self.config.max_range_days:
            raise InvalidRangeError(f"Date range cannot exceed {self.config.max_range_days} days")
        return start, end

    def resolve_blocks(
        self,
        day: date,
        rules: list[ScheduleRule],
        drops: list[Drop],
        service_id: int,
    ) -> list[TimeBlock]:
        events = events_for_day(day, rules, drops, service_id, config=self.config)
        return resolve_day(events)

    def get_available_slots(
        self,
        storefront_id: int,
        service_id: int,
        start_date,
        end_date,
        *,
        cancel: threading.Event | None = None,
        deadline: float | None = None,
    ) -> AvailabilityResponse:
        """
        Bookable slots for a service over an inclusive civil date range.

        Slots starting before now + min notice are hidden; `cancel` and the
        monotonic `deadline` are checked between days. Any failure aborts the
        whole range, an empty slot list only ever means no availability.
        """
        start, end = self.validate_range(start_date, end_date)
        storefront, service, translator = self._load_context(storefront_id, service_id)

        rules = self._fetch("schedule rules", self.schedule.get_active_rules, storefront_id, service_id)
        drops = self._fetch("drops", self.schedule.get_active_drops, storefront_id, service_id, start, end)
        range_start, _ = translator.day_window(start)
        _, range_end = translator.day_window(end)
        occupancy = self._occupancy(storefront_id, service_id, range_start, range_end)

        now = self.clock()
        not_before = now + timedelta(minutes=self.config.min_notice_minutes)

        slots: list[AvailableSlot] = []
        for day in _iterate_dates(start, end):
            _check_cancelled(cancel, deadline)
            blocks = self.resolve_blocks(day, rules, drops, service_id)
            day_start, day_end = translator.day_window(day)
            day_slots = generate_slots(
                day,
                blocks,
                service,
                occupancy.window(day_start, day_end),
                translator,
                not_before=not_before,
            )
            logger.debug(
                f"storefront={storefront_id} service={service_id} {day}: "
                f"[{', '.join(str(b) for b in open_blocks(blocks))}] -> {len(day_slots)} slots"
            )
            slots.extend(day_slots)

        logger.info(
            f"Computed {len(slots)} slots for storefront={storefront_id} "
            f"service={service_id} {start}..{end} ({storefront.timezone})"
        )
        return AvailabilityResponse(
            storefront_id=storefront_id,
            service_id=service_id,
            timezone=translator.zone_name,
            service=ServiceSummary(
                name=service.name,
                duration_minutes=service.duration_minutes,
                buffer_time_minutes=service.buffer_time_minutes,
                price=service.price,
            ),
            slots=slots,
        )

    def check_slot(
        self,
        storefront_id: int,
        service_id: int,
        start_datetime,
        end_datetime,
    ) -> SlotCheckResponse:
        """Re-validate one requested booking window against the same model."""
        try:
            start, end = parse_instant(start_datetime), parse_instant(end_datetime)
        except ValueError as e:
            raise InvalidRangeError("start_datetime and end_datetime must be ISO-8601") from e
        if end <= start:
            raise InvalidRangeError("end_datetime must be after start_datetime")

        _, _, translator = self._load_context(storefront_id, service_id)

        now = self.clock()
        if start < now + timedelta(minutes=self.config.min_notice_minutes):
            return SlotCheckResponse(available=False, reason="Cannot book slots in the past")

        day = translator.to_local(start).date()
        rules = self._fetch("schedule rules", self.schedule.get_active_rules, storefront_id, service_id)
        drops = self._fetch("drops", self.schedule.get_active_drops, storefront_id, service_id, day, day)
        block = next(
            (
                b for b in open_blocks(self.resolve_blocks(day, rules, drops, service_id))
                if translator.to_utc(day, b.start_minute) <= start
                and end <= translator.to_utc(day, b.end_minute)
            ),
            None,
        )
        if block is None:
            return SlotCheckResponse(available=False, reason="Slot is outside working hours")

        current = self._occupancy(storefront_id, service_id, start, end).peak_between(start, end)
        if current >= block.max_concurrent:
            return SlotCheckResponse(
                available=False,
                reason="Maximum concurrent bookings reached",
                current_bookings=current,
                max_concurrent=block.max_concurrent,
            )
        return SlotCheckResponse(
            available=True,
            current_bookings=current,
            max_concurrent=block.max_concurrent,
        )
