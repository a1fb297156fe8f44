"""
Slot generation: slice a day's OPEN blocks into bookable, capacity-checked slots.

Candidates start at each block's start and advance by duration + buffer.
The booking span [start, start + duration) must fit inside the block; the
buffer tail may run past the block end since it is dead time, not a booking.
"""

from datetime import date, datetime, timedelta
from typing import Iterable

from slotengine.availability.occupancy import OccupancyIndex
from slotengine.availability.resolver import TimeBlock, open_blocks
from slotengine.availability.schemas import AvailableSlot
from slotengine.availability.timezones import TimezoneTranslator
from slotengine.clock import format_instant
from slotengine.storefronts.models import Service


def _slot(
    start: datetime,
    end: datetime,
    capacity: int,
    translator: TimezoneTranslator,
) -> AvailableSlot:
    return AvailableSlot(
        start_datetime=format_instant(start),
        end_datetime=format_instant(end),
        local_date=translator.local_date(start),
        local_start_time=translator.local_clock(start),
        local_end_time=translator.local_clock(end),
        available_capacity=capacity,
    )


def block_slots(
    day: date,
    block: TimeBlock,
    service: Service,
    occupancy: OccupancyIndex,
    translator: TimezoneTranslator,
    not_before: datetime | None = None,
) -> list[AvailableSlot]:
    # Stepping happens in absolute time, so DST days yield their true 23 or 25 hours.
    block_start = translator.to_utc(day, block.start_minute)
    block_end = translator.to_utc(day, block.end_minute)
    duration = timedelta(minutes=service.duration_minutes)
    step = timedelta(minutes=service.step_minutes)

    slots: list[AvailableSlot] = []
    start = block_start
    while start + duration <= block_end:
        end = start + duration
        if not_before is None or start >= not_before:
            capacity = block.max_concurrent - occupancy.peak_between(start, end)
            if capacity > 0:
                slots.append(_slot(start, end, capacity, translator))
        start += step
    return slots


def generate_slots(
    day: date,
    blocks: Iterable[TimeBlock],
    service: Service,
    occupancy: OccupancyIndex,
    translator: TimezoneTranslator,
    not_before: datetime | None = None,
) -> list[AvailableSlot]:
    """Chronological slots for one civil day."""
    slots: list[AvailableSlot] = []
    for block in open_blocks(blocks):
        slots.extend(block_slots(day, block, service, occupancy, translator, not_before))
    return slots
