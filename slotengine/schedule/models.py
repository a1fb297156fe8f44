from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import ClassVar, Literal

from slotengine.clock import parse_clock, parse_date

RuleType = Literal["weekly", "daily", "monthly"]


def sunday_weekday(day: date) -> int:
    """Weekday number with 0 = Sunday .. 6 = Saturday, as stored on weekly rules."""
    return day.isoweekday() % 7


@dataclass(kw_only=True)
class ScheduleRule(ABC):
    """Fields shared by every rule shape. Use one of the concrete subclasses.

    `priority` left as None takes the per-type default from the availability
    settings when the rule is evaluated.
    """

    rule_type: ClassVar[RuleType]

    id: int
    storefront_id: int
    service_id: int | None = None
    start_time: str
    end_time: str
    is_available: bool = True
    max_concurrent_appointments: int = 1
    priority: int | None = None
    is_active: bool = True
    deleted_at: str | None = None
    notes: str | None = None

    def __post_init__(self):
        if parse_clock(self.start_time) >= parse_clock(self.end_time):
            raise ValueError("start_time must be before end_time")
        if self.max_concurrent_appointments < 1:
            raise ValueError("max_concurrent_appointments must be greater than 0")

    @property
    def start_minute(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_clock(self.end_time)

    @property
    def is_live(self) -> bool:
        return self.is_active and self.deleted_at is None

    def applies_to_service(self, service_id: int) -> bool:
        return self.service_id is None or self.service_id == service_id

    @abstractmethod
    def matches(self, day: date) -> bool:
        """Whether the rule applies to the civil date `day`."""

    @abstractmethod
    def anchor_item(self) -> dict:
        """Variant-specific fields for the stored item."""

    def to_dynamo_item(self) -> dict:
        """Convert to a DynamoDB item dict."""
        item = {
            "PK": f"STOREFRONT#{self.storefront_id}",
            "SK": f"RULE#{self.id}",
            "id": self.id,
            "storefront_id": self.storefront_id,
            "rule_type": self.rule_type,
            "start_time": self.start_time,
            "end_time": self.end_time,
            "is_available": self.is_available,
            "max_concurrent_appointments": self.max_concurrent_appointments,
            "is_active": self.is_active,
            **self.anchor_item(),
        }
        if self.service_id is not None:
            item["service_id"] = self.service_id
        if self.priority is not None:
            item["priority"] = self.priority
        if self.deleted_at is not None:
            item["deleted_at"] = self.deleted_at
        if self.notes is not None:
            item["notes"] = self.notes
        return item


@dataclass(kw_only=True)
class WeeklyRule(ScheduleRule):
    rule_type: ClassVar[RuleType] = "weekly"

    day_of_week: int

    def __post_init__(self):
        if not 0 <= self.day_of_week <= 6:
            raise ValueError("day_of_week must be between 0 (Sunday) and 6 (Saturday)")
        super().__post_init__()

    def matches(self, day: date) -> bool:
        return self.day_of_week == sunday_weekday(day)

    def anchor_item(self) -> dict:
        return {"day_of_week": self.day_of_week}


@dataclass(kw_only=True)
class DailyRule(ScheduleRule):
    rule_type: ClassVar[RuleType] = "daily"

    specific_date: date

    def matches(self, day: date) -> bool:
        return self.specific_date == day

    def anchor_item(self) -> dict:
        return {"specific_date": self.specific_date.isoformat()}


@dataclass(kw_only=True)
class MonthlyRule(ScheduleRule):
    rule_type: ClassVar[RuleType] = "monthly"

    month: int
    year: int | None = None  # None recurs every year

    def __post_init__(self):
        if not 1 <= self.month <= 12:
            raise ValueError("month must be between 1 and 12")
        super().__post_init__()

    def matches(self, day: date) -> bool:
        return self.month == day.month and (self.year is None or self.year == day.year)

    def anchor_item(self) -> dict:
        item = {"month": self.month}
        if self.year is not None:
            item["year"] = self.year
        return item


def _optional_int(value) -> int | None:
    return int(value) if value is not None else None


def rule_from_dynamo_item(item: dict) -> ScheduleRule:
    """Build the rule variant named by the item's rule_type."""
    common = dict(
        id=int(item["id"]),
        storefront_id=int(item["storefront_id"]),
        service_id=_optional_int(item.get("service_id")),
        start_time=item["start_time"],
        end_time=item["end_time"],
        is_available=item.get("is_available", True),
        max_concurrent_appointments=int(item.get("max_concurrent_appointments", 1)),
        priority=_optional_int(item.get("priority")),
        is_active=item.get("is_active", True),
        deleted_at=item.get("deleted_at"),
        notes=item.get("notes"),
    )
    rule_type = item.get("rule_type")
    if rule_type == "weekly":
        return WeeklyRule(day_of_week=int(item["day_of_week"]), **common)
    if rule_type == "daily":
        return DailyRule(specific_date=parse_date(item["specific_date"]), **common)
    if rule_type == "monthly":
        return MonthlyRule(month=int(item["month"]), year=_optional_int(item.get("year")), **common)
    raise ValueError(f"unknown rule_type {rule_type!r}")


@dataclass(kw_only=True)
class Drop:
    """A published one-off booking window that overrides every rule on its date."""

    id: int
    storefront_id: int
    service_id: int | None = None
    title: str = ""
    description: str | None = None
    drop_date: date
    start_time: str
    end_time: str
    max_concurrent_appointments: int = 1
    is_published: bool = False
    is_active: bool = True
    deleted_at: str | None = None

    def __post_init__(self):
        if parse_clock(self.start_time) >= parse_clock(self.end_time):
            raise ValueError("start_time must be before end_time")
        if self.max_concurrent_appointments < 1:
            raise ValueError("max_concurrent_appointments must be greater than 0")

    @property
    def start_minute(self) -> int:
        return parse_clock(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_clock(self.end_time)

    @property
    def is_live(self) -> bool:
        return self.is_published and self.is_active and self.deleted_at is None

    def applies_to_service(self, service_id: int) -> bool:
        return self.service_id is None or self.service_id == service_id

    def matches(self, day: date) -> bool:
        return self.drop_date == day

    def to_dynamo_item(self) -> dict:
        """Convert to a DynamoDB item dict."""
        item = {
            "PK": f"STOREFRONT#{self.storefront_id}",
            "SK": f"DROP#{self.drop_date.isoformat()}#{self.id}",
            "id": self.id,
            "storefront_id": self.storefront_id,
            "title": self.title,
            "drop_date": self.drop_date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "max_concurrent_appointments": self.max_concurrent_appointments,
            "is_published": self.is_published,
            "is_active": self.is_active,
        }
        if self.service_id is not None:
            item["service_id"] = self.service_id
        if self.description is not None:
            item["description"] = self.description
        if self.deleted_at is not None:
            item["deleted_at"] = self.deleted_at
        return item

    @classmethod
    def from_dynamo_item(cls, item: dict) -> "Drop":
        """Create a Drop from a DynamoDB item dict."""
        return cls(
            id=int(item["id"]),
            storefront_id=int(item["storefront_id"]),
            service_id=_optional_int(item.get("service_id")),
            title=item.get("title", ""),
            description=item.get("description"),
            drop_date=parse_date(item["drop_date"]),
            start_time=item["start_time"],
            end_time=item["end_time"],
            max_concurrent_appointments=int(item.get("max_concurrent_appointments", 1)),
            is_published=item.get("is_published", False),
            is_active=item.get("is_active", True),
            deleted_at=item.get("deleted_at"),
        )
