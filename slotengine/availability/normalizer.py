"""
Rule normalization: weekly / daily / monthly rules and drops -> CalendarEvents for one day.
"""

from dataclasses import dataclass
from datetime import date
from typing import Iterable

from slotengine.config import AvailabilitySettings, settings
from slotengine.schedule.models import Drop, ScheduleRule


@dataclass(frozen=True)
class CalendarEvent:
    """One rule's contribution to a civil day, in minutes after local midnight."""

    start_minute: int
    end_minute: int
    is_available: bool
    max_concurrent: int
    priority: int
    source_id: str

    def covers(self, start: int, end: int) -> bool:
        return self.start_minute <= start and end <= self.end_minute


def rule_priority(rule: ScheduleRule, config: AvailabilitySettings) -> int:
    """The rule's own priority, else the configured default for its type."""
    if rule.priority is not None:
        return rule.priority
    return {
        "daily": config.daily_priority,
        "monthly": config.monthly_priority,
        "weekly": config.weekly_priority,
    }[rule.rule_type]


def rule_event(rule: ScheduleRule, config: AvailabilitySettings) -> CalendarEvent:
    return CalendarEvent(
        start_minute=rule.start_minute,
        end_minute=rule.end_minute,
        is_available=rule.is_available,
        max_concurrent=rule.max_concurrent_appointments,
        priority=rule_priority(rule, config),
        source_id=f"rule:{rule.id}",
    )


def drop_event(drop: Drop, priority: int) -> CalendarEvent:
    return CalendarEvent(
        start_minute=drop.start_minute,
        end_minute=drop.end_minute,
        is_available=True,
        max_concurrent=drop.max_concurrent_appointments,
        priority=priority,
        source_id=f"drop:{drop.id}",
    )


def matching_rules(day: date, rules: Iterable[ScheduleRule], service_id: int) -> list[ScheduleRule]:
    return [
        r for r in rules
        if r.is_live and r.applies_to_service(service_id) and r.matches(day)
    ]


def matching_drops(day: date, drops: Iterable[Drop], service_id: int) -> list[Drop]:
    return [
        d for d in drops
        if d.is_live and d.applies_to_service(service_id) and d.matches(day)
    ]


def events_for_day(
    day: date,
    rules: Iterable[ScheduleRule],
    drops: Iterable[Drop],
    service_id: int,
    config: AvailabilitySettings | None = None,
) -> list[CalendarEvent]:
    """
    Normalize every rule and drop that applies to `day` for `service_id`.

    Drops outrank every rule matched on the same day: their priority is the
    configured drop priority, raised above the day's highest rule if needed.
    An empty list means the day is closed.
    """
    config = config or settings.availability
    events = [rule_event(r, config) for r in matching_rules(day, rules, service_id)]
    day_drops = matching_drops(day, drops, service_id)
    if day_drops:
        floor = config.drop_priority
        top_rule = max((e.priority for e in events), default=floor - 1)
        priority = max(floor, top_rule + 1)
        events.extend(drop_event(d, priority) for d in day_drops)
    return events
