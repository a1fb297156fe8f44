from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from slotengine.clock import parse_clock

Weekday = Literal["sun", "mon", "tue", "wed", "thu", "fri", "sat"]

WEEKDAYS: tuple[Weekday, ...] = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")


class OpeningPeriod(BaseModel):
    start: str = Field(description="Opening time HH:MM (storefront timezone)")
    end: str = Field(description="Closing time HH:MM, may be 24:00")

    @field_validator("start", "end")
    @classmethod
    def must_be_clock(cls, v: str) -> str:
        parse_clock(v)
        return v

    @model_validator(mode="after")
    def start_before_end(self) -> "OpeningPeriod":
        if parse_clock(self.start) >= parse_clock(self.end):
            raise ValueError(f"period start {self.start} must be before end {self.end}")
        return self


class DayHours(BaseModel):
    is_open: bool = False
    periods: list[OpeningPeriod] = Field(default_factory=list)

    @model_validator(mode="after")
    def periods_must_not_overlap(self) -> "DayHours":
        if not self.is_open:
            if self.periods:
                raise ValueError("a closed day cannot list opening periods")
            return self
        if not self.periods:
            raise ValueError("an open day needs at least one period")
        bounds = [(parse_clock(p.start), parse_clock(p.end)) for p in self.periods]
        for (_, prev_end), (next_start, _) in zip(bounds, bounds[1:]):
            if next_start < prev_end:
                raise ValueError("periods must be ordered and non-overlapping")
        return self


class BusinessHours(BaseModel):
    """Typed weekly opening hours; weekdays that are not listed are closed."""

    days: dict[Weekday, DayHours] = Field(default_factory=dict)

    def for_weekday(self, day_of_week: int) -> DayHours:
        """Opening hours for a Sunday-based weekday number (0 = Sunday).

        Uses the same numbering as `WeeklyRule.day_of_week`, so callers showing a
        storefront's advertised hours can line them up with its weekly rules.
        Slot computation reads schedule rules only; these hours are descriptive.
        """
        return self.days.get(WEEKDAYS[day_of_week], DayHours())
