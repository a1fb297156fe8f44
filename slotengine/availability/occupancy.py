"""
Occupancy accounting: how much capacity existing bookings consume at any instant.
"""

from datetime import datetime
from typing import Iterable

from slotengine.appointments.models import Appointment


class OccupancyIndex:
    """Immutable view over the capacity-consuming appointments of a window."""

    def __init__(self, appointments: Iterable[Appointment]) -> None:
        self._appointments: tuple[Appointment, ...] = tuple(
            sorted(
                (a for a in appointments if a.consumes_capacity),
                key=lambda a: (a.start_datetime, a.end_datetime, a.id),
            )
        )

    def __len__(self) -> int:
        return len(self._appointments)

    @property
    def appointments(self) -> tuple[Appointment, ...]:
        return self._appointments

    def window(self, start: datetime, end: datetime) -> "OccupancyIndex":
        """Narrow to appointments overlapping [start, end)."""
        return OccupancyIndex(self.overlapping(start, end))

    def overlapping(self, start: datetime, end: datetime) -> list[Appointment]:
        return [a for a in self._appointments if a.overlaps(start, end)]

    def consumed_at(self, instant: datetime) -> int:
        """Number of appointments active at `instant` (start inclusive, end exclusive)."""
        return sum(1 for a in self._appointments if a.start_datetime <= instant < a.end_datetime)

    def peak_between(self, start: datetime, end: datetime) -> int:
        """Highest concurrent count anywhere in [start, end).

        The count only rises at an appointment start, so the span start plus
        every start inside the span are the only points worth sampling.
        """
        if end <= start:
            return 0
        points = {start}
        points.update(
            a.start_datetime for a in self._appointments if start < a.start_datetime < end
        )
        return max(self.consumed_at(p) for p in points)
