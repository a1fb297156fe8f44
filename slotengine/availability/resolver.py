"""
Day resolution: collapse overlapping CalendarEvents into non-overlapping TimeBlocks.

The output always covers [00:00, 24:00) of the civil day. Each atomic
sub-interval between two cut points is governed by one covering event:

1. highest priority wins;
2. on equal priority a blackout (is_available=False) wins;
3. then the smaller max_concurrent, then the smallest source_id.

Sub-intervals that no event covers are CLOSED. Adjacent sub-intervals with the
same (is_available, max_concurrent) are merged.
"""

from dataclasses import dataclass, replace
from typing import Iterable

from slotengine.availability.normalizer import CalendarEvent
from slotengine.clock import MINUTES_PER_DAY, format_clock


@dataclass(frozen=True)
class TimeBlock:
    start_minute: int
    end_minute: int
    is_available: bool
    max_concurrent: int
    priority: int | None = None
    source_id: str | None = None

    @property
    def is_open(self) -> bool:
        return self.is_available and self.max_concurrent > 0

    def __str__(self) -> str:
        state = f"OPEN x{self.max_concurrent}" if self.is_open else "CLOSED"
        return f"{format_clock(self.start_minute)}-{format_clock(self.end_minute)} {state}"


def _closed(start: int, end: int) -> TimeBlock:
    return TimeBlock(start_minute=start, end_minute=end, is_available=False, max_concurrent=0)


def _precedence(event: CalendarEvent) -> tuple:
    # Sorted ascending, the first element governs.
    return (-event.priority, event.is_available, event.max_concurrent, event.source_id)


def governing_event(events: Iterable[CalendarEvent]) -> CalendarEvent | None:
    return min(events, key=_precedence, default=None)


def cut_points(events: Iterable[CalendarEvent]) -> list[int]:
    points = {0, MINUTES_PER_DAY}
    for e in events:
        points.add(e.start_minute)
        points.add(e.end_minute)
    return sorted(p for p in points if 0 <= p <= MINUTES_PER_DAY)


def merge_adjacent(blocks: list[TimeBlock]) -> list[TimeBlock]:
    merged: list[TimeBlock] = []
    for block in blocks:
        prev = merged[-1] if merged else None
        if (
            prev is not None
            and prev.end_minute == block.start_minute
            and prev.is_available == block.is_available
            and prev.max_concurrent == block.max_concurrent
        ):
            merged[-1] = replace(prev, end_minute=block.end_minute)
        else:
            merged.append(block)
    return merged


def resolve_day(events: list[CalendarEvent]) -> list[TimeBlock]:
    """Resolve one day's events into an ordered, gap-free list of TimeBlocks."""
    points = cut_points(events)
    atomic: list[TimeBlock] = []
    for start, end in zip(points, points[1:]):
        winner = governing_event(e for e in events if e.covers(start, end))
        if winner is None:
            atomic.append(_closed(start, end))
        elif not winner.is_available:
            atomic.append(
                TimeBlock(
                    start_minute=start,
                    end_minute=end,
                    is_available=False,
                    max_concurrent=0,
                    priority=winner.priority,
                    source_id=winner.source_id,
                )
            )
        else:
            atomic.append(
                TimeBlock(
                    start_minute=start,
                    end_minute=end,
                    is_available=True,
                    max_concurrent=winner.max_concurrent,
                    priority=winner.priority,
                    source_id=winner.source_id,
                )
            )
    return merge_adjacent(atomic)


def open_blocks(blocks: Iterable[TimeBlock]) -> list[TimeBlock]:
    return [b for b in blocks if b.is_open]
