"""
Civil wall-clock <-> UTC conversion for a storefront timezone.

Resolution policy for civil times that do not map to exactly one instant:
- inside a spring-forward gap -> the transition instant, i.e. the first valid
  instant after the gap (02:30 on a 02:00->03:00 jump resolves to 03:00);
- inside a fall-back overlap -> the first occurrence (fold=0).
Every other civil time round-trips exactly.
"""

from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from slotengine.availability.exceptions import TimezoneResolutionError


class TimezoneTranslator:
    def __init__(self, zone_name: str) -> None:
        try:
            self.zone = ZoneInfo(zone_name)
        except (ZoneInfoNotFoundError, ValueError, TypeError, OSError) as e:
            raise TimezoneResolutionError(f"Unknown timezone {zone_name!r}") from e
        self.zone_name = zone_name

    @staticmethod
    def civil(day: date, minute_of_day: int) -> datetime:
        """Naive wall-clock datetime; minute 1440 is the next day's midnight."""
        return datetime.combine(day, time()) + timedelta(minutes=minute_of_day)

    def to_utc(self, day: date, minute_of_day: int = 0) -> datetime:
        return self.resolve(self.civil(day, minute_of_day))

    def resolve(self, wall: datetime) -> datetime:
        """Map a naive wall-clock datetime to a UTC instant."""
        first = wall.replace(tzinfo=self.zone, fold=0).astimezone(timezone.utc)
        if first.astimezone(self.zone).replace(tzinfo=None) == wall:
            return first
        return self._end_of_gap(wall)

    def _end_of_gap(self, wall: datetime) -> datetime:
        # fold=0 and fold=1 straddle the transition; bisect to the first second
        # that carries the post-transition offset.
        a = wall.replace(tzinfo=self.zone, fold=0).astimezone(timezone.utc)
        b = wall.replace(tzinfo=self.zone, fold=1).astimezone(timezone.utc)
        lo, hi = (int(a.timestamp()), int(b.timestamp())) if a < b else (int(b.timestamp()), int(a.timestamp()))
        target = self._offset_at(hi)
        while hi - lo > 1:
            mid = (lo + hi) // 2
            if self._offset_at(mid) == target:
                hi = mid
            else:
                lo = mid
        return datetime.fromtimestamp(hi, tz=timezone.utc)

    def _offset_at(self, ts: int) -> timedelta:
        return datetime.fromtimestamp(ts, tz=self.zone).utcoffset()

    def to_local(self, instant: datetime) -> datetime:
        return instant.astimezone(self.zone)

    def day_window(self, day: date) -> tuple[datetime, datetime]:
        """UTC [start, end) of the civil day in this zone."""
        return self.to_utc(day, 0), self.to_utc(day + timedelta(days=1), 0)

    def local_date(self, instant: datetime) -> str:
        return self.to_local(instant).strftime("%Y-%m-%d")

    def local_clock(self, instant: datetime) -> str:
        return self.to_local(instant).strftime("%H:%M")
